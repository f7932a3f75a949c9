import json
import logging
import subprocess
from pathlib import Path
from typing import Any, List

from core.redaction import redact_text

logger = logging.getLogger("things_mcp.evaluate")

# Shipped as package data next to this module.
BUNDLED_SCRIPT = Path(__file__).resolve().with_name("things_evaluate_url.jxa")


class EvaluateError(RuntimeError):
    pass


class EvaluateScriptError(EvaluateError):
    """The JXA script ran but reported an error payload."""


class EvaluateRunner:
    """Reads a Things object back as JSON through the bundled JXA script."""

    def __init__(self, osascript: Path, script: Path, timeout: float = 30.0) -> None:
        self.osascript = Path(osascript)
        self.script = Path(script)
        self.timeout = timeout

    def _argv(self, target: str) -> List[str]:
        return [str(self.osascript), "-l", "JavaScript", str(self.script), target]

    def _run(self, target: str) -> str:
        try:
            result = subprocess.run(self._argv(target), capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise EvaluateError(f"osascript timed out after {self.timeout:g}s") from exc
        except (OSError, ValueError) as exc:
            raise EvaluateError(str(exc)) from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise EvaluateError(f"osascript exited with code {result.returncode}: {stderr}".rstrip(": "))
        return result.stdout or ""

    @staticmethod
    def _decode(stdout: str) -> Any:
        trimmed = stdout.strip()
        if not trimmed:
            raise EvaluateError("No data returned from Things evaluate script.")
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError as exc:
            raise EvaluateError(f"Failed to parse Things evaluation result: {exc}") from exc
        if isinstance(parsed, dict) and isinstance(parsed.get("error"), str):
            message = parsed.get("message")
            if not isinstance(message, str):
                message = json.dumps(parsed, ensure_ascii=False)
            raise EvaluateScriptError(f"Things evaluate script returned error: {message}")
        return parsed

    def evaluate(self, target: str) -> Any:
        logger.info("Evaluating %s", redact_text(target))
        try:
            return self._decode(self._run(target))
        except EvaluateError as exc:
            raise type(exc)(f"Failed to evaluate Things item: {exc}") from exc
