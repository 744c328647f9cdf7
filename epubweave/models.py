from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Union


@dataclass
class Attr:
    identifier: str = ""
    classes: list[str] = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)


# Inline nodes


@dataclass
class Str:
    text: str


@dataclass
class Space:
    pass


@dataclass
class LineBreak:
    pass


@dataclass
class Emph:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Strong:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Strikeout:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Superscript:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Subscript:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Code:
    attr: Attr
    text: str


@dataclass
class Link:
    attr: Attr
    content: list["Inline"]
    url: str
    title: str = ""


@dataclass
class Image:
    attr: Attr
    content: list["Inline"]
    url: str
    title: str = ""


@dataclass
class Span:
    attr: Attr
    content: list["Inline"] = field(default_factory=list)


@dataclass
class RawInline:
    format: str
    text: str


# Block nodes


@dataclass
class Plain:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Para:
    content: list["Inline"] = field(default_factory=list)


@dataclass
class Header:
    level: int
    attr: Attr
    content: list["Inline"] = field(default_factory=list)


@dataclass
class CodeBlock:
    attr: Attr
    text: str


@dataclass
class RawBlock:
    format: str
    text: str


@dataclass
class BlockQuote:
    blocks: list["Block"] = field(default_factory=list)


@dataclass
class BulletList:
    items: list[list["Block"]] = field(default_factory=list)


@dataclass
class OrderedList:
    items: list[list["Block"]] = field(default_factory=list)
    start: int = 1


@dataclass
class HorizontalRule:
    pass


@dataclass
class Div:
    attr: Attr
    blocks: list["Block"] = field(default_factory=list)


Inline = Union[
    Str, Space, LineBreak, Emph, Strong, Strikeout, Superscript, Subscript,
    Code, Link, Image, Span, RawInline,
]
Block = Union[
    Plain, Para, Header, CodeBlock, RawBlock, BlockQuote, BulletList,
    OrderedList, HorizontalRule, Div,
]
INLINE_TYPES = (
    Str, Space, LineBreak, Emph, Strong, Strikeout, Superscript, Subscript,
    Code, Link, Image, Span, RawInline,
)
BLOCK_TYPES = (
    Plain, Para, Header, CodeBlock, RawBlock, BlockQuote, BulletList,
    OrderedList, HorizontalRule, Div,
)
MetaValue = Union[str, list[str]]


@dataclass
class Document:
    meta: dict[str, MetaValue] = field(default_factory=dict)
    blocks: list[Block] = field(default_factory=list)

    def __add__(self, other: "Document") -> "Document":
        # 元数据左侧优先，正文按顺序拼接。
        merged = dict(other.meta)
        merged.update(self.meta)
        return Document(meta=merged, blocks=[*self.blocks, *other.blocks])


def add_meta_field(meta: dict[str, MetaValue], key: str, value: str) -> None:
    """Add ``value`` under ``key``; a repeated key turns into a list of values."""
    current = meta.get(key)
    if current is None:
        meta[key] = value
    elif isinstance(current, list):
        current.append(value)
    else:
        meta[key] = [current, value]


def meta_values(meta: dict[str, MetaValue], key: str) -> list[str]:
    current = meta.get(key)
    if current is None:
        return []
    if isinstance(current, list):
        return list(current)
    return [current]


def image_page(url: str) -> Document:
    return Document(blocks=[Para([Image(Attr(), [], url)])])


def anchor_block(identifier: str) -> Block:
    return Para([Span(Attr(identifier=identifier))])


def attr_to_dict(attr: Attr) -> dict:
    return {
        "id": attr.identifier,
        "classes": list(attr.classes),
        "attributes": [[key, value] for key, value in attr.attributes],
    }


def _value_to_dict(value: object) -> object:
    if isinstance(value, Attr):
        return attr_to_dict(value)
    if is_dataclass(value) and not isinstance(value, type):
        return node_to_dict(value)
    if isinstance(value, (list, tuple)):
        return [_value_to_dict(item) for item in value]
    return value


def node_to_dict(node: object) -> dict:
    data: dict[str, object] = {"type": type(node).__name__}
    for item in fields(node):
        data[item.name] = _value_to_dict(getattr(node, item.name))
    return data


def document_to_dict(document: Document) -> dict:
    return {
        "meta": {key: (list(value) if isinstance(value, list) else value) for key, value in document.meta.items()},
        "blocks": [node_to_dict(block) for block in document.blocks],
    }
