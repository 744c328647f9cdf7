import io
import tempfile
import unittest
from pathlib import Path
import zipfile

from epubweave.archive import EpubArchive, locate_package
from epubweave.errors import ArchiveOpenFailure, MalformedXml, MissingAttribute, MissingElement, MissingEntry

OPF = (
    "<?xml version=\"1.0\" encoding=\"utf-8\"?>"
    "<package xmlns=\"http://www.idpf.org/2007/opf\" version=\"3.0\"><metadata/><manifest/><spine/></package>"
)


def _container(rootfile: str = "<rootfile full-path=\"OPS/book/package.opf\" media-type=\"application/oebps-package+xml\"/>") -> str:
    return (
        "<?xml version=\"1.0\"?>"
        "<container version=\"1.0\" xmlns=\"urn:oasis:names:tc:opendocument:xmlns:container\">"
        f"<rootfiles>{rootfile}</rootfiles></container>"
    )


def _archive(files: dict) -> EpubArchive:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return EpubArchive.from_bytes(buffer.getvalue())


class EpubArchiveTests(unittest.TestCase):
    def test_lookup_uses_canonical_paths(self) -> None:
        with _archive({"OEBPS/Text/ch1.xhtml": b"one", "OEBPS\\Images\\a.png": b"png"}) as archive:
            self.assertEqual(archive.lookup("OEBPS/Text/../Text/ch1.xhtml"), b"one")
            self.assertEqual(archive.lookup("/OEBPS/Images/a.png"), b"png")
            self.assertIsNone(archive.lookup("oebps/text/ch1.xhtml"))
            self.assertIn("OEBPS/Images/a.png", archive)

    def test_read_raises_for_missing_entries(self) -> None:
        with _archive({"a.txt": b"a"}) as archive:
            with self.assertRaises(MissingEntry) as ctx:
                archive.read("b.txt")
        self.assertEqual(ctx.exception.path, "b.txt")

    def test_open_rejects_non_zip_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "broken.epub"
            path.write_bytes(b"not a zip")
            with self.assertRaises(ArchiveOpenFailure):
                EpubArchive.open(path)


class LocatePackageTests(unittest.TestCase):
    def test_root_dir_follows_container_pointer(self) -> None:
        archive = _archive({"META-INF/container.xml": _container(), "OPS/book/package.opf": OPF})
        root_dir, package = locate_package(archive)

        self.assertEqual(root_dir, "OPS/book/")
        self.assertEqual(package.tag, "{http://www.idpf.org/2007/opf}package")

    def test_package_at_archive_root(self) -> None:
        archive = _archive(
            {
                "META-INF/container.xml": _container("<rootfile full-path=\"content.opf\"/>"),
                "content.opf": OPF,
            }
        )
        root_dir, _ = locate_package(archive)
        self.assertEqual(root_dir, "")

    def test_missing_container(self) -> None:
        with self.assertRaises(MissingEntry):
            locate_package(_archive({"content.opf": OPF}))

    def test_container_without_default_namespace(self) -> None:
        archive = _archive(
            {
                "META-INF/container.xml": "<container><rootfiles><rootfile full-path=\"content.opf\"/></rootfiles></container>",
                "content.opf": OPF,
            }
        )
        with self.assertRaises(MissingAttribute):
            locate_package(archive)

    def test_container_without_rootfile(self) -> None:
        with self.assertRaises(MissingElement):
            locate_package(_archive({"META-INF/container.xml": _container("")}))

    def test_rootfile_without_full_path(self) -> None:
        with self.assertRaises(MissingAttribute):
            locate_package(_archive({"META-INF/container.xml": _container("<rootfile/>")}))

    def test_missing_package_document(self) -> None:
        with self.assertRaises(MissingEntry) as ctx:
            locate_package(_archive({"META-INF/container.xml": _container()}))
        self.assertEqual(ctx.exception.path, "OPS/book/package.opf")

    def test_malformed_xml(self) -> None:
        with self.assertRaises(MalformedXml):
            locate_package(_archive({"META-INF/container.xml": "<container"}))
        archive = _archive({"META-INF/container.xml": _container(), "OPS/book/package.opf": "<package><unclosed></package>"})
        with self.assertRaises(MalformedXml) as ctx:
            locate_package(archive)
        self.assertEqual(ctx.exception.context, "OPS/book/package.opf")


if __name__ == "__main__":
    unittest.main()
