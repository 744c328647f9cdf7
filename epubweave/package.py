from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from lxml import etree as LXML_ET

from .errors import DanglingReference, MissingAttribute, MissingElement
from .models import MetaValue, add_meta_field

OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
META_RENAMES = {"creator": "author"}

logger = logging.getLogger("epubweave.package")


@dataclass
class ManifestItem:
    item_id: str
    href: str
    media_type: str
    properties: set[str] = field(default_factory=set)


@dataclass
class SpineEntry:
    href: str
    media_type: str


@dataclass
class Package:
    metadata: dict[str, MetaValue]
    manifest: dict[str, ManifestItem]
    cover_href: Optional[str]
    spine: list[SpineEntry]


def _opf_name(local_name: str) -> str:
    return f"{{{OPF_NS}}}{local_name}"


def _tag_local_name(tag: object) -> str:
    if not tag or not isinstance(tag, str):
        return ""
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _tag_namespace(tag: object) -> str:
    if not isinstance(tag, str) or not tag.startswith("{"):
        return ""
    return tag[1:].split("}", 1)[0]


def _find_element(root: LXML_ET._Element, local_name: str) -> LXML_ET._Element:
    found = next(root.iter(_opf_name(local_name)), None)
    if found is None:
        raise MissingElement(f"{{{OPF_NS}}}{local_name}", "package document")
    return found


def _iter_children(node: LXML_ET._Element, local_name: str) -> list[LXML_ET._Element]:
    return [child for child in node if child.tag == _opf_name(local_name)]


def _required_attr(node: LXML_ET._Element, name: str) -> str:
    value = node.get(name)
    if value is None:
        raise MissingAttribute(name, _tag_local_name(node.tag))
    return value


def _node_text(node: LXML_ET._Element) -> str:
    return "".join(node.itertext()).strip()


def parse_metadata(root: LXML_ET._Element) -> dict[str, MetaValue]:
    metadata = _find_element(root, "metadata")
    meta: dict[str, MetaValue] = {}
    for node in metadata:
        if _tag_namespace(node.tag) != DC_NS:
            continue
        local = _tag_local_name(node.tag)
        add_meta_field(meta, META_RENAMES.get(local, local), _node_text(node))
    return meta


def parse_manifest(root: LXML_ET._Element) -> tuple[Optional[str], dict[str, ManifestItem]]:
    manifest = _find_element(root, "manifest")
    items: dict[str, ManifestItem] = {}
    for node in _iter_children(manifest, "item"):
        item = ManifestItem(
            item_id=_required_attr(node, "id"),
            href=_required_attr(node, "href"),
            media_type=_required_attr(node, "media-type"),
            properties={part for part in (node.get("properties") or "").split() if part},
        )
        items[item.item_id] = item

    cover_href = None
    for node in manifest:
        if not isinstance(node.tag, str):
            continue
        if "cover-image" in (node.get("properties") or ""):
            cover_href = node.get("href")
            break
    return cover_href, items


def parse_spine(manifest: dict[str, ManifestItem], root: LXML_ET._Element) -> list[SpineEntry]:
    spine = _find_element(root, "spine")
    entries: list[SpineEntry] = []
    for itemref in _iter_children(spine, "itemref"):
        idref = _required_attr(itemref, "idref")
        if (itemref.get("linear") or "yes").strip() == "no":
            logger.debug("skipping non-linear spine item %s", idref)
            continue
        item = manifest.get(idref)
        if item is None:
            raise DanglingReference(idref)
        entries.append(SpineEntry(href=item.href, media_type=item.media_type))
    return entries


def parse_package(root: LXML_ET._Element) -> Package:
    metadata = parse_metadata(root)
    cover_href, manifest = parse_manifest(root)
    spine = parse_spine(manifest, root)
    return Package(metadata=metadata, manifest=manifest, cover_href=cover_href, spine=spine)
