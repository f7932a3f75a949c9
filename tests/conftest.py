from typing import Any, Dict, List

import pytest


class RecordingGateway:
    """ThingsGateway double: records opened URLs, serves canned evaluate results."""

    def __init__(self, evaluate_result: Any = None) -> None:
        self.urls: List[str] = []
        self.targets: List[str] = []
        self.evaluate_result = evaluate_result if evaluate_result is not None else {"type": "to-do", "id": "X"}

    def open_url(self, url: str) -> None:
        self.urls.append(url)

    def evaluate(self, target: str) -> Dict[str, Any]:
        self.targets.append(target)
        return self.evaluate_result


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the user's real token/config out of every test."""
    monkeypatch.delenv("THINGS_AUTH_TOKEN", raising=False)
    monkeypatch.delenv("THINGS_MCP_OSASCRIPT", raising=False)
    monkeypatch.delenv("THINGS_MCP_EVALUATE_SCRIPT", raising=False)
    path = tmp_path / "things_mcp_config.yaml"
    monkeypatch.setenv("THINGS_MCP_CONFIG", str(path))
    return path


@pytest.fixture
def gateway():
    return RecordingGateway()
