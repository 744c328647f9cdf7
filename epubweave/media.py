from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Iterator, Optional, Union

from .archive import EpubArchive
from .errors import MissingEntry
from .models import Image, Inline
from .package import ManifestItem
from .paths import canonical_member, collapse_path, join_member, unescape_uri
from .walk import query_inlines

logger = logging.getLogger("epubweave.media")


@dataclass
class MediaItem:
    media_type: Optional[str]
    data: bytes


class MediaBag:
    """Collects the resources referenced by a converted document, keyed by reference path."""

    def __init__(self) -> None:
        self._items: dict[str, MediaItem] = {}

    def insert(self, path: str, media_type: Optional[str], data: bytes) -> None:
        self._items[path] = MediaItem(media_type=media_type, data=data)

    def lookup(self, path: str) -> Optional[MediaItem]:
        return self._items.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def items(self) -> list[tuple[str, MediaItem]]:
        return list(self._items.items())

    def write_to(self, directory: Union[str, Path]) -> list[Path]:
        base = Path(directory)
        written: list[Path] = []
        for path, item in self._items.items():
            relative = canonical_member(unescape_uri(path))
            if not relative:
                continue
            target = base.joinpath(*PurePosixPath(relative).parts)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(item.data)
            written.append(target)
        return written


def _image_url(inline: Inline) -> list[str]:
    if isinstance(inline, Image):
        return [inline.url]
    return []


def query_images(value: object) -> list[str]:
    return query_inlines(_image_url, value)


def fetch_images(
    manifest: Iterable[ManifestItem],
    root_dir: str,
    archive: EpubArchive,
    value: object,
    media: MediaBag,
) -> int:
    """Copy every manifest image the document refers to into ``media``.

    Returns the number of resources inserted.
    """
    media_types = {collapse_path(item.href): item.media_type for item in manifest}
    seen: set[str] = set()
    inserted = 0
    for url in query_images(value):
        if url in seen:
            continue
        seen.add(url)
        key = collapse_path(url)
        if not key or key not in media_types:
            logger.debug("image %r has no manifest entry, skipping", url)
            continue
        member = join_member(root_dir, unescape_uri(url))
        payload = archive.lookup(member)
        if payload is None:
            raise MissingEntry(member)
        media.insert(url, media_types[key], payload)
        inserted += 1
    return inserted
