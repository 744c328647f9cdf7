from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Optional, Union

from lxml import etree as LXML_ET

from .errors import ArchiveOpenFailure, MalformedXml, MissingAttribute, MissingElement, MissingEntry
from .paths import canonical_member, drop_file_name

CONTAINER_PATH = "META-INF/container.xml"

logger = logging.getLogger("epubweave.archive")


def _zip_member_index(zf: zipfile.ZipFile) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for info in zf.infolist():
        if info.is_dir():
            continue
        canonical = canonical_member(info.filename)
        if canonical and canonical not in mapping:
            mapping[canonical] = info.filename
    return mapping


class EpubArchive:
    """Read-only view of an EPUB zip keyed by canonical member path."""

    def __init__(self, zf: zipfile.ZipFile) -> None:
        self._zf = zf
        self._index = _zip_member_index(zf)

    @classmethod
    def from_bytes(cls, data: bytes) -> "EpubArchive":
        return cls._open(io.BytesIO(data))

    @classmethod
    def open(cls, path: Union[str, Path]) -> "EpubArchive":
        return cls._open(Path(path))

    @classmethod
    def _open(cls, source: Union[Path, io.BytesIO]) -> "EpubArchive":
        try:
            zf = zipfile.ZipFile(source, "r")
        except zipfile.BadZipFile as exc:
            raise ArchiveOpenFailure(str(exc)) from exc
        return cls(zf)

    def close(self) -> None:
        self._zf.close()

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __contains__(self, path: str) -> bool:
        return canonical_member(path) in self._index

    def lookup(self, path: str) -> Optional[bytes]:
        actual = self._index.get(canonical_member(path))
        if actual is None:
            return None
        return self._zf.read(actual)

    def read(self, path: str) -> bytes:
        payload = self.lookup(path)
        if payload is None:
            raise MissingEntry(canonical_member(path) or path)
        return payload


def parse_xml(raw: bytes, context: str) -> LXML_ET._Element:
    parser = LXML_ET.XMLParser(resolve_entities=False, no_network=True)
    try:
        return LXML_ET.fromstring(raw, parser=parser)
    except LXML_ET.XMLSyntaxError as exc:
        raise MalformedXml(context, str(exc)) from exc


def locate_package(archive: EpubArchive) -> tuple[str, LXML_ET._Element]:
    """Return ``(root_dir, package_root)`` as declared by META-INF/container.xml."""
    container = parse_xml(archive.read(CONTAINER_PATH), CONTAINER_PATH)
    # 只认根元素上字面量的 xmlns 声明。
    namespace = container.nsmap.get(None)
    if not namespace:
        raise MissingAttribute("xmlns", CONTAINER_PATH)
    rootfile = next(container.iter(f"{{{namespace}}}rootfile"), None)
    if rootfile is None:
        raise MissingElement("rootfile", CONTAINER_PATH)
    full_path = (rootfile.get("full-path") or "").strip()
    if not full_path:
        raise MissingAttribute("full-path", "rootfile")

    root_dir = drop_file_name(full_path)
    logger.debug("package document at %s (root dir %r)", full_path, root_dir)
    package = parse_xml(archive.read(full_path), full_path)
    return root_dir, package
