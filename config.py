from __future__ import annotations

import logging
import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any

from infrastructure.evaluate_runner import BUNDLED_SCRIPT

logger = logging.getLogger("things_mcp.config")

USER_CONFIG_PATH = Path.home() / ".things_mcp_config.yaml"

DEFAULT_OPEN_COMMAND = "open"
DEFAULT_OSASCRIPT = "/usr/bin/osascript"
DEFAULT_EVALUATE_SCRIPT = BUNDLED_SCRIPT
DEFAULT_TIMEOUT = 30.0

ENV_AUTH_TOKEN = "THINGS_AUTH_TOKEN"
ENV_CONFIG_PATH = "THINGS_MCP_CONFIG"
ENV_OSASCRIPT = "THINGS_MCP_OSASCRIPT"
ENV_EVALUATE_SCRIPT = "THINGS_MCP_EVALUATE_SCRIPT"


def _config_path() -> Path:
    env_path = os.environ.get(ENV_CONFIG_PATH, "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return USER_CONFIG_PATH


def _load_config() -> Dict[str, Any]:
    path = _config_path()
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _save_config(data: Dict[str, Any]) -> None:
    path = _config_path()
    if not data:
        if path.exists():
            path.unlink()
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")


def get_user_token() -> str:
    return str(_load_config().get("token", "") or "")


def set_user_token(value: str) -> None:
    data = _load_config()
    value = (value or "").strip()
    if value:
        data["token"] = value
    else:
        data.pop("token", None)
    _save_config(data)


@dataclass(frozen=True)
class ThingsSettings:
    open_command: str = DEFAULT_OPEN_COMMAND
    osascript: Path = Path(DEFAULT_OSASCRIPT)
    evaluate_script: Path = DEFAULT_EVALUATE_SCRIPT
    timeout: float = DEFAULT_TIMEOUT


def _as_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


def load_settings() -> ThingsSettings:
    """Merge defaults, the user config file and environment overrides (env wins)."""
    data = _load_config()
    osascript = os.environ.get(ENV_OSASCRIPT) or data.get("osascript") or DEFAULT_OSASCRIPT
    script = os.environ.get(ENV_EVALUATE_SCRIPT) or data.get("evaluate_script") or DEFAULT_EVALUATE_SCRIPT
    return ThingsSettings(
        open_command=str(data.get("open_command") or DEFAULT_OPEN_COMMAND),
        osascript=Path(str(osascript)).expanduser(),
        evaluate_script=Path(str(script)).expanduser(),
        timeout=_as_timeout(data.get("timeout", DEFAULT_TIMEOUT)),
    )
