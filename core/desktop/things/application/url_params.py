"""Things URL-scheme query construction.

Values follow the Things conventions: booleans are the strings "true"/"false",
tag-like lists are comma separated and multi-line lists are newline
separated. Encoding is plain application/x-www-form-urlencoded.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, quote_plus, urlencode, urlsplit


THINGS_SCHEME = "things"

TAG_SEPARATOR = ","
LINE_SEPARATOR = "\n"


class ThingsQuery:
    """Ordered query parameters for one Things command.

    `set*` helpers skip absent values. The `*_present` variants only skip
    None, so an explicit empty value reaches Things (used by update commands
    to clear a field).
    """

    def __init__(self) -> None:
        self._params: Dict[str, str] = {}

    def set(self, key: str, value: Optional[str]) -> "ThingsQuery":
        if value:
            self._params[key] = str(value)
        return self

    def set_present(self, key: str, value: Optional[str]) -> "ThingsQuery":
        if value is not None:
            self._params[key] = str(value)
        return self

    def set_bool(self, key: str, value: Optional[bool]) -> "ThingsQuery":
        if value is not None:
            self._params[key] = "true" if value else "false"
        return self

    def set_list(self, key: str, values: Optional[Iterable[str]], sep: str = TAG_SEPARATOR) -> "ThingsQuery":
        items = list(values or [])
        if items:
            self._params[key] = sep.join(items)
        return self

    def set_list_present(self, key: str, values: Optional[Iterable[str]], sep: str = TAG_SEPARATOR) -> "ThingsQuery":
        if values is not None:
            self._params[key] = sep.join(values)
        return self

    def items(self) -> List[Tuple[str, str]]:
        return list(self._params.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._params)

    def encode(self) -> str:
        return urlencode(self.items(), quote_via=quote_plus)


def things_url(command: str, query: Optional[ThingsQuery] = None) -> str:
    base = f"{THINGS_SCHEME}:///{command}"
    encoded = query.encode() if query is not None else ""
    return f"{base}?{encoded}" if encoded else base


def parse_things_url(url: str) -> Tuple[str, Dict[str, str]]:
    """Split a Things URL into its command and decoded parameters."""
    parts = urlsplit(url)
    if parts.scheme != THINGS_SCHEME:
        raise ValueError(f"not a Things URL: {url}")
    command = parts.path.lstrip("/") or parts.netloc
    return command, dict(parse_qsl(parts.query, keep_blank_values=True))


def split_list(value: Optional[str], sep: str = TAG_SEPARATOR) -> List[str]:
    if not value:
        return []
    return value.split(sep)


def dumps_payload(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


__all__ = [
    "ThingsQuery",
    "THINGS_SCHEME",
    "TAG_SEPARATOR",
    "LINE_SEPARATOR",
    "things_url",
    "parse_things_url",
    "split_list",
    "dumps_payload",
]
