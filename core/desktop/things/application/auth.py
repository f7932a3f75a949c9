import os
from typing import Optional

import config
from core.errors import AuthTokenRequiredError


TOKEN_REQUIRED_MESSAGE = (
    "Things auth token is required. Supply `auth-token` parameter or set THINGS_AUTH_TOKEN env var."
)


def _non_blank(value: Optional[str]) -> Optional[str]:
    if value and str(value).strip():
        return str(value)
    return None


def resolve_auth_token(param_token: Optional[str] = None, *, required: bool = True) -> Optional[str]:
    """Resolve the URL-scheme token.

    Priority:
    1. Explicit `auth-token` tool argument.
    2. THINGS_AUTH_TOKEN env variable.
    3. Token saved in the user config (`things-mcp --set-token`).
    """
    token = (
        _non_blank(param_token)
        or _non_blank(os.environ.get(config.ENV_AUTH_TOKEN))
        or _non_blank(config.get_user_token())
    )
    if token is None and required:
        raise AuthTokenRequiredError(TOKEN_REQUIRED_MESSAGE)
    return token


__all__ = ["resolve_auth_token", "TOKEN_REQUIRED_MESSAGE"]
