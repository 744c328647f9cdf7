from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigError

LINK_MATCHING_MODES = ("boundary", "prefix")
DEFAULT_IMAGE_MEDIA_TYPES = ("image/gif", "image/jpeg", "image/png")


@dataclass
class ReaderOptions:
    link_matching: str = "boundary"
    image_media_types: tuple[str, ...] = field(default=DEFAULT_IMAGE_MEDIA_TYPES)


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default

    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    return content.rstrip("\r\n")


def parse_link_matching(value: Optional[str]) -> str:
    mode = (value or "boundary").strip().lower()
    if mode not in LINK_MATCHING_MODES:
        raise ConfigError(f"Unknown link matching mode: {value!r} (expected one of {', '.join(LINK_MATCHING_MODES)})")
    return mode


def parse_media_types(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return DEFAULT_IMAGE_MEDIA_TYPES
    types = tuple(part.strip().lower() for part in value.split(",") if part.strip())
    for media_type in types:
        if "/" not in media_type:
            raise ConfigError(f"Invalid media type: {media_type!r}")
    return types or DEFAULT_IMAGE_MEDIA_TYPES


def load_reader_options() -> ReaderOptions:
    return ReaderOptions(
        link_matching=parse_link_matching(read_env("EPUBWEAVE_LINK_MATCHING")),
        image_media_types=parse_media_types(read_env("EPUBWEAVE_IMAGE_TYPES")),
    )


def log_level() -> str:
    return (read_env("EPUBWEAVE_LOG_LEVEL", "WARNING") or "WARNING").strip().upper()
