from __future__ import annotations

import posixpath
import re
from typing import Optional
from urllib.parse import quote, unquote

URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
URI_UNSAFE_CHARS = frozenset('<>|"{}[]^`')


def canonical_member(name: str) -> str:
    normalized = posixpath.normpath((name or "").replace("\\", "/")).lstrip("/")
    while normalized.startswith("../"):
        normalized = normalized[3:]
    return "" if normalized in {"", ".", ".."} else normalized


def take_file_name(path: str) -> str:
    return (path or "").rsplit("/", 1)[-1]


def drop_file_name(path: str) -> str:
    idx = (path or "").rfind("/")
    return path[: idx + 1] if idx >= 0 else ""


def collapse_path(path: str) -> str:
    if not path:
        return ""
    collapsed = posixpath.normpath(path)
    return "" if collapsed == "." else collapsed


def join_member(root_dir: str, href: str) -> str:
    """Archive member name for an href relative to the package directory."""
    return canonical_member(posixpath.join(root_dir or "", href or ""))


def escape_uri(text: str) -> str:
    # 只转义空白与 URI 中不允许出现的字符，已有的 %XX 保持原样。
    return "".join(
        quote(ch, safe="") if ch.isspace() or ch in URI_UNSAFE_CHARS else ch
        for ch in text or ""
    )


def unescape_uri(text: str) -> str:
    return unquote(text or "")


def split_fragment(url: str) -> tuple[str, Optional[str]]:
    if "#" not in (url or ""):
        return url or "", None
    path, fragment = url.split("#", 1)
    return path, fragment


def has_uri_scheme(url: str) -> bool:
    return bool(URI_SCHEME_RE.match(url or ""))


def is_data_uri(url: str) -> bool:
    return (url or "").startswith("data:")
