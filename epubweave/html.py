from __future__ import annotations

import html
import re
from typing import Optional

from lxml import etree as LXML_ET
from lxml import html as lxml_html

from .errors import ConversionError
from .models import (
    Attr,
    Block,
    BlockQuote,
    BulletList,
    Code,
    CodeBlock,
    Div,
    Document,
    Emph,
    Header,
    HorizontalRule,
    Image,
    Inline,
    LineBreak,
    Link,
    OrderedList,
    Para,
    Plain,
    RawBlock,
    RawInline,
    Space,
    Span,
    Str,
    Strikeout,
    Strong,
    Subscript,
    Superscript,
)

OPS_NS = "http://www.idpf.org/2007/ops"
XML_NS = "http://www.w3.org/XML/1998/namespace"
NAMESPACE_PREFIXES = {OPS_NS: "epub", XML_NS: "xml"}

XML_DECL_RE = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
HTML_WHITESPACE_RE = re.compile(r"([ \t\r\n\f]+)")

HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}
DIV_TAGS = {
    "div", "section", "article", "aside", "nav", "header", "footer", "main",
    "figure", "figcaption", "hgroup", "address", "center",
}
BLOCK_LEVEL_TAGS = DIV_TAGS | set(HEADING_LEVELS) | {
    "p", "blockquote", "pre", "ul", "ol", "li", "hr", "table", "thead", "tbody",
    "tfoot", "tr", "td", "th", "caption", "colgroup", "col", "dl", "dt", "dd",
    "details", "summary", "fieldset", "form", "body",
}
INLINE_WRAPPERS = {
    "em": Emph,
    "i": Emph,
    "strong": Strong,
    "b": Strong,
    "s": Strikeout,
    "del": Strikeout,
    "strike": Strikeout,
    "sup": Superscript,
    "sub": Subscript,
}
CODE_TAGS = {"code", "tt", "kbd", "samp"}
SKIP_TAGS = {"script", "style", "head", "title", "meta", "link", "base"}
VOID_TAGS = {"area", "col", "embed", "input", "param", "source", "track", "wbr"}


def _attribute_name(key: str) -> str:
    if not key.startswith("{"):
        return key
    namespace, local = key[1:].split("}", 1)
    prefix = NAMESPACE_PREFIXES.get(namespace)
    return f"{prefix}:{local}" if prefix else local


def _tag_name(element: LXML_ET._Element) -> str:
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    return tag.lower()


def _element_attr(element: LXML_ET._Element) -> Attr:
    identifier = ""
    classes: list[str] = []
    attributes: list[tuple[str, str]] = []
    for key, value in element.attrib.items():
        name = _attribute_name(key)
        if name == "id":
            identifier = value
        elif name == "class":
            classes = value.split()
        else:
            attributes.append((name, value))
    return Attr(identifier=identifier, classes=classes, attributes=attributes)


def _start_tag(element: LXML_ET._Element) -> str:
    # id 由外层 Div/Span 承载，raw 标记里的属性不会再被改写
    parts = [_tag_name(element)]
    for key, value in element.attrib.items():
        name = _attribute_name(key)
        if name == "id" or name.startswith("epub:"):
            continue
        parts.append(f'{name}="{html.escape(value, quote=True)}"')
    return f"<{' '.join(parts)}>"


def _end_tag(element: LXML_ET._Element) -> str:
    return f"</{_tag_name(element)}>"


def _text_inlines(text: Optional[str]) -> list[Inline]:
    inlines: list[Inline] = []
    for idx, part in enumerate(HTML_WHITESPACE_RE.split(text or "")):
        if not part:
            continue
        inlines.append(Space() if idx % 2 else Str(part))
    return inlines


def _collapse_spaces(inlines: list[Inline]) -> list[Inline]:
    collapsed: list[Inline] = []
    for inline in inlines:
        if isinstance(inline, Space) and collapsed and isinstance(collapsed[-1], Space):
            continue
        collapsed.append(inline)
    return collapsed


def _trim_spaces(inlines: list[Inline]) -> list[Inline]:
    trimmed = _collapse_spaces(inlines)
    while trimmed and isinstance(trimmed[0], Space):
        trimmed.pop(0)
    while trimmed and isinstance(trimmed[-1], Space):
        trimmed.pop()
    return trimmed


def _plain_text(element: LXML_ET._Element) -> str:
    return "".join(element.itertext())


class _Converter:
    def __init__(self, raw_html: bool) -> None:
        self.raw_html = raw_html

    def blocks(self, element: LXML_ET._Element) -> list[Block]:
        blocks: list[Block] = []
        pending: list[Inline] = []

        def flush() -> None:
            inlines = _trim_spaces(pending)
            if inlines:
                blocks.append(Plain(inlines))
            pending.clear()

        pending.extend(_text_inlines(element.text))
        for child in element:
            tag = _tag_name(child)
            if tag and tag not in SKIP_TAGS:
                if tag in BLOCK_LEVEL_TAGS:
                    flush()
                    blocks.extend(self.block(child, tag))
                else:
                    pending.extend(self.inline(child, tag))
            pending.extend(_text_inlines(child.tail))
        flush()
        return blocks

    def inlines(self, element: LXML_ET._Element) -> list[Inline]:
        inlines: list[Inline] = _text_inlines(element.text)
        for child in element:
            tag = _tag_name(child)
            if tag and tag not in SKIP_TAGS:
                inlines.extend(self.inline(child, tag))
            inlines.extend(_text_inlines(child.tail))
        return _collapse_spaces(inlines)

    def _anchored(self, element: LXML_ET._Element, block: Block) -> Block:
        identifier = element.get("id") or ""
        if not identifier:
            return block
        return Div(Attr(identifier=identifier), [block])

    def _list_items(self, element: LXML_ET._Element) -> list[list[Block]]:
        items: list[list[Block]] = []
        for child in element:
            if _tag_name(child) != "li":
                continue
            blocks = self.blocks(child)
            if child.get("id"):
                blocks = [Div(Attr(identifier=child.get("id")), blocks)]
            items.append(blocks)
        return items

    def block(self, element: LXML_ET._Element, tag: str) -> list[Block]:
        if tag == "p":
            inlines = _trim_spaces(self.inlines(element))
            if not inlines and not element.get("id"):
                return []
            return [self._anchored(element, Para(inlines))]
        if tag in HEADING_LEVELS:
            return [Header(HEADING_LEVELS[tag], _element_attr(element), _trim_spaces(self.inlines(element)))]
        if tag == "hr":
            return [HorizontalRule()]
        if tag == "pre":
            text = _plain_text(element)
            if text.startswith("\n"):
                text = text[1:]
            return [CodeBlock(_element_attr(element), text.rstrip("\n"))]
        if tag == "blockquote":
            return [self._anchored(element, BlockQuote(self.blocks(element)))]
        if tag == "ul":
            return [self._anchored(element, BulletList(self._list_items(element)))]
        if tag == "ol":
            try:
                start = int(element.get("start") or 1)
            except ValueError:
                start = 1
            return [self._anchored(element, OrderedList(self._list_items(element), start=start))]
        if tag in DIV_TAGS or tag == "li":
            return [Div(_element_attr(element), self.blocks(element))]
        if tag == "body":
            return self.blocks(element)
        if not self.raw_html:
            blocks = self.blocks(element)
        elif tag in VOID_TAGS:
            blocks = [RawBlock("html", _start_tag(element))]
        else:
            blocks = [RawBlock("html", _start_tag(element)), *self.blocks(element), RawBlock("html", _end_tag(element))]
        identifier = element.get("id") or ""
        if identifier:
            return [Div(Attr(identifier=identifier), blocks)]
        return blocks

    def inline(self, element: LXML_ET._Element, tag: str) -> list[Inline]:
        if tag == "br":
            return [LineBreak()]
        if tag in INLINE_WRAPPERS:
            return [INLINE_WRAPPERS[tag](self.inlines(element))]
        if tag in CODE_TAGS:
            return [Code(_element_attr(element), _plain_text(element))]
        if tag == "img":
            attr = _element_attr(element)
            attr.attributes = [(key, value) for key, value in attr.attributes if key not in {"src", "alt", "title"}]
            return [
                Image(
                    attr,
                    _trim_spaces(_text_inlines(element.get("alt"))),
                    element.get("src") or "",
                    element.get("title") or "",
                )
            ]
        if tag == "a":
            attr = _element_attr(element)
            href = element.get("href")
            if href is None:
                return [Span(attr, self.inlines(element))]
            attr.attributes = [(key, value) for key, value in attr.attributes if key not in {"href", "title"}]
            return [Link(attr, self.inlines(element), href, element.get("title") or "")]
        if tag == "span":
            return [Span(_element_attr(element), self.inlines(element))]
        if tag in BLOCK_LEVEL_TAGS or not self.raw_html:
            inlines = self.inlines(element)
        elif tag in VOID_TAGS:
            inlines = [RawInline("html", _start_tag(element))]
        else:
            inlines = [RawInline("html", _start_tag(element)), *self.inlines(element), RawInline("html", _end_tag(element))]
        identifier = element.get("id") or ""
        if identifier:
            return [Span(Attr(identifier=identifier), inlines)]
        return inlines


def _first_descendant(root: LXML_ET._Element, name: str) -> Optional[LXML_ET._Element]:
    return next((node for node in root.iter() if _tag_name(node) == name), None)


def _expand_entities(root: LXML_ET._Element) -> None:
    """Replace unresolved entity references (``&nbsp;`` under an XHTML DOCTYPE) with their text."""
    for entity in list(root.iter(LXML_ET.Entity)):
        parent = entity.getparent()
        if parent is None:
            continue
        text = html.unescape(entity.text or "") + (entity.tail or "")
        previous = entity.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + text
        else:
            parent.text = (parent.text or "") + text
        parent.remove(entity)


def _parse_markup(source: str) -> LXML_ET._Element:
    # 优先按 XHTML 解析，<a id="x"/> 这类自闭合标签在 HTML 解析器里会吞掉后文。
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = LXML_ET.fromstring(source, parser=parser)
    except LXML_ET.XMLSyntaxError:
        return lxml_html.document_fromstring(source)
    _expand_entities(root)
    return root


def html_to_document(text: str, raw_html: bool = True) -> Document:
    """Convert an (X)HTML document into the block/inline model.

    Well-formed XHTML is read with the XML parser, anything else with
    libxml2's HTML parser.  Elements the model has no node for are kept as raw
    ``html`` markup when ``raw_html`` is set; otherwise only their content
    survives.
    """
    source = XML_DECL_RE.sub("", text or "", count=1)
    try:
        root = _parse_markup(source)
    except (LXML_ET.LxmlError, ValueError) as exc:
        raise ConversionError(f"Unable to parse HTML: {exc}") from exc

    meta = {}
    title_node = _first_descendant(root, "title")
    title = "".join(title_node.itertext()).strip() if title_node is not None else ""
    if title:
        meta["title"] = title
    body = _first_descendant(root, "body")
    converter = _Converter(raw_html)
    blocks = converter.blocks(body if body is not None else root)
    return Document(meta=meta, blocks=blocks)
