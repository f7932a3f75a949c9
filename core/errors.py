"""Domain errors raised while translating tool calls into Things requests."""

from __future__ import annotations


class ThingsError(Exception):
    """Base class for errors surfaced to the tool caller."""

    code = "ERROR"
    recovery = ""

    def __init__(self, message: str, *, recovery: str = "") -> None:
        super().__init__(message)
        if recovery:
            self.recovery = recovery

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class PayloadValidationError(ThingsError, ValueError):
    code = "INVALID_ARGUMENTS"

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class AuthTokenRequiredError(ThingsError):
    code = "AUTH_TOKEN_REQUIRED"
    recovery = "Copy the token from Things → Settings → General → Enable Things URLs → Manage."


class EmptyLayoutError(ThingsError):
    code = "EMPTY_LAYOUT"


__all__ = [
    "ThingsError",
    "PayloadValidationError",
    "AuthTokenRequiredError",
    "EmptyLayoutError",
]
