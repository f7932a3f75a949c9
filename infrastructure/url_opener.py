import logging
import subprocess
from typing import List, Optional

from core.redaction import redact_text

logger = logging.getLogger("things_mcp.url")


class ThingsOpenError(RuntimeError):
    pass


class ThingsURLOpener:
    """Hands a things:/// URL to the desktop via `open`."""

    def __init__(self, command: str = "open", timeout: float = 30.0) -> None:
        self.command = command
        self.timeout = timeout

    def _argv(self, url: str) -> List[str]:
        return [self.command, url]

    def open(self, url: str) -> None:
        logger.info("Opening %s", redact_text(url))
        try:
            result = subprocess.run(self._argv(url), capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise ThingsOpenError(f"Failed to open Things URL: timed out after {self.timeout:g}s") from exc
        except (OSError, ValueError) as exc:
            raise ThingsOpenError(f"Failed to open Things URL: {exc}") from exc
        if result.returncode != 0:
            stderr: Optional[str] = (result.stderr or "").strip() or None
            if stderr:
                logger.warning("open exited with %s: %s", result.returncode, redact_text(stderr))
            raise ThingsOpenError(f"Failed to open Things URL: process exited with code {result.returncode}")
