import re


_SENSITIVE_PATTERNS = [
    # Querystring-style secrets (things:///update?id=..&auth-token=..)
    re.compile(r"(?i)\b((?:auth-token|auth_token|token)=)[^\s&;]+"),
]


def redact_text(text: str) -> str:
    value = str(text or "")
    if not value:
        return ""
    out = value
    for pattern in _SENSITIVE_PATTERNS:
        out = pattern.sub(lambda m: f"{m.group(1)}<redacted>", out)
    return out


__all__ = ["redact_text"]
