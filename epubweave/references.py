"""Identifier and link rewriting for merging spine documents.

Every chapter is converted on its own, so its ids are only unique inside that
file.  Ids are qualified as ``<chapter>#<id>`` and links are rewritten to
``#<chapter>#<id>`` so they keep resolving once all chapters share one tree.
"""

from __future__ import annotations

from dataclasses import replace
from functools import partial
from typing import Iterable, Optional, TypeVar

from .models import Attr, Block, CodeBlock, Code, Div, Header, Image, Inline, Link, Span
from .paths import collapse_path, drop_file_name, escape_uri, has_uri_scheme, is_data_uri, split_fragment, take_file_name
from .walk import walk_blocks, walk_inlines

T = TypeVar("T")

EPUB_ATTR_PREFIX = "epub:"


def chapter_name(path: str) -> str:
    return escape_uri(take_file_name(path))


def escaped_spine_names(paths: Iterable[str]) -> frozenset[str]:
    return frozenset(name for name in (chapter_name(path) for path in paths) if name)


def add_hash(filename: str, identifier: str) -> str:
    if not identifier:
        return ""
    return f"{take_file_name(filename)}#{identifier}"


def fix_attrs(filename: str, attr: Attr) -> Attr:
    return Attr(
        identifier=add_hash(filename, attr.identifier),
        classes=[name for name in attr.classes if name],
        attributes=[(key, value) for key, value in attr.attributes if not key.startswith(EPUB_ATTR_PREFIX)],
    )


def _fix_inline(filename: str, inline: Inline) -> Inline:
    if isinstance(inline, (Span, Code, Image)):
        return replace(inline, attr=fix_attrs(filename, inline.attr))
    if isinstance(inline, Link):
        url = inline.url
        if url.startswith("#"):
            # 空片段指向章节开头。
            url = add_hash(filename, url[1:]) or take_file_name(filename)
        return replace(inline, attr=fix_attrs(filename, inline.attr), url=url)
    return inline


def _fix_block(filename: str, block: Block) -> Block:
    if isinstance(block, (Div, Header, CodeBlock)):
        return replace(block, attr=fix_attrs(filename, block.attr))
    return block


def _rename_image(directory: str, inline: Inline) -> Inline:
    if not isinstance(inline, Image):
        return inline
    if is_data_uri(inline.url) or has_uri_scheme(inline.url) or not inline.url:
        return inline
    return replace(inline, url=collapse_path(f"{directory}{inline.url}"))


def fix_internal_references(path: str, value: T) -> T:
    """Qualify ids, fragment links and image paths of one spine document.

    ``path`` is the document href relative to the package directory.
    """
    directory = drop_file_name(path)
    filename = chapter_name(path)
    fixed = walk_inlines(partial(_fix_inline, filename), value)
    fixed = walk_blocks(partial(_fix_block, filename), fixed)
    return walk_inlines(partial(_rename_image, directory), fixed)


def cross_chapter_target(names: frozenset[str], url: str, mode: str = "boundary") -> Optional[str]:
    if mode == "prefix":
        if any(url.startswith(name) for name in names):
            return f"#{url}"
        return None
    if not url or url.startswith(("#", "/")) or has_uri_scheme(url):
        return None
    path, fragment = split_fragment(url)
    name = escape_uri(take_file_name(path))
    if name not in names:
        return None
    return f"#{name}#{fragment}" if fragment else f"#{name}"


def _prepend_hash(names: frozenset[str], mode: str, inline: Inline) -> Inline:
    if not isinstance(inline, Link):
        return inline
    target = cross_chapter_target(names, inline.url, mode)
    if target is None:
        return inline
    return replace(inline, url=target)


def prepend_hash(names: Iterable[str], value: T, mode: str = "boundary") -> T:
    """Turn links into other spine documents into internal anchor links."""
    return walk_inlines(partial(_prepend_hash, frozenset(names), mode), value)
