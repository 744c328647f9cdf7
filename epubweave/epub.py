from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .archive import EpubArchive, locate_package
from .env import ReaderOptions
from .errors import ChapterError, ConversionError
from .html import html_to_document
from .media import MediaBag, fetch_images
from .models import Block, Document, anchor_block, image_page
from .package import SpineEntry, parse_package
from .paths import collapse_path, join_member, unescape_uri
from .references import chapter_name, escaped_spine_names, fix_internal_references, prepend_hash

XHTML_MEDIA_TYPE = "application/xhtml+xml"

logger = logging.getLogger("epubweave.reader")


def _decode_chapter(raw: bytes) -> str:
    return raw.decode("utf-8-sig", errors="replace")


def _read_spine_item(
    archive: EpubArchive, root_dir: str, entry: SpineEntry, options: ReaderOptions
) -> list[Block]:
    href = collapse_path(entry.href)
    media_type = (entry.media_type or "").strip().lower()
    blocks: list[Block] = [anchor_block(chapter_name(href))]

    if media_type == XHTML_MEDIA_TYPE:
        member = join_member(root_dir, unescape_uri(href))
        text = _decode_chapter(archive.read(member))
        try:
            converted = html_to_document(text, raw_html=True)
        except ConversionError as exc:
            raise ChapterError(member, str(exc)) from exc
        blocks.extend(fix_internal_references(href, converted.blocks))
        logger.debug("converted %s into %d blocks", member, len(blocks) - 1)
    elif media_type in options.image_media_types:
        blocks.extend(image_page(href).blocks)
        logger.debug("image spine item %s", href)
    else:
        logger.debug("skipping spine item %s with unsupported media type %r", href, media_type)
    return blocks


def archive_to_document(
    archive: EpubArchive,
    options: Optional[ReaderOptions] = None,
    media: Optional[MediaBag] = None,
) -> Document:
    """Merge the linear spine of ``archive`` into one document.

    Ids become ``<chapter>#<id>`` and links between spine documents become
    ``#<chapter>#<id>``.  Images the result refers to are copied into ``media``.
    """
    options = options or ReaderOptions()
    media = media if media is not None else MediaBag()

    root_dir, package_root = locate_package(archive)
    package = parse_package(package_root)
    spine_names = escaped_spine_names(entry.href for entry in package.spine)

    blocks: list[Block] = []
    for entry in package.spine:
        blocks.extend(_read_spine_item(archive, root_dir, entry, options))
    blocks = prepend_hash(spine_names, blocks, options.link_matching)

    cover = image_page(package.cover_href) if package.cover_href else Document()
    document = cover + Document(meta=package.metadata, blocks=blocks)
    fetched = fetch_images(package.manifest.values(), root_dir, archive, document, media)
    logger.info(
        "merged %d spine items into %d blocks (%d media files)",
        len(package.spine),
        len(document.blocks),
        fetched,
    )
    return document


def read_epub(
    data: bytes,
    options: Optional[ReaderOptions] = None,
    media: Optional[MediaBag] = None,
) -> Document:
    with EpubArchive.from_bytes(data) as archive:
        return archive_to_document(archive, options, media)


def read_epub_file(
    path: Union[str, Path],
    options: Optional[ReaderOptions] = None,
    media: Optional[MediaBag] = None,
) -> Document:
    with EpubArchive.open(path) as archive:
        return archive_to_document(archive, options, media)
