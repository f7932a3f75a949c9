from typing import Any, List, Optional

from config import ThingsSettings, load_settings
from infrastructure.evaluate_runner import EvaluateRunner
from infrastructure.url_opener import ThingsURLOpener


class SubprocessThingsGateway:
    """ThingsGateway backed by `open` and `osascript` subprocesses."""

    def __init__(
        self,
        settings: Optional[ThingsSettings] = None,
        opener: Optional[ThingsURLOpener] = None,
        evaluator: Optional[EvaluateRunner] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.opener = opener or ThingsURLOpener(self.settings.open_command, timeout=self.settings.timeout)
        self.evaluator = evaluator or EvaluateRunner(
            self.settings.osascript,
            self.settings.evaluate_script,
            timeout=self.settings.timeout,
        )

    def open_url(self, url: str) -> None:
        self.opener.open(url)

    def evaluate(self, target: str) -> Any:
        return self.evaluator.evaluate(target)

    def preflight(self) -> List[str]:
        """Return startup problems; empty when the gateway can run."""
        problems: List[str] = []
        if not self.settings.evaluate_script.exists():
            problems.append(
                f"JXA script not found at: {self.settings.evaluate_script}\n"
                "Make sure the bundled things_evaluate_url.jxa file exists and is accessible."
            )
        if not self.settings.osascript.exists():
            problems.append(
                f"osascript binary not found at: {self.settings.osascript}\n"
                "This server requires macOS to function."
            )
        return problems
