import unittest

from epubweave.paths import (
    canonical_member,
    collapse_path,
    drop_file_name,
    escape_uri,
    has_uri_scheme,
    is_data_uri,
    join_member,
    split_fragment,
    take_file_name,
    unescape_uri,
)


class PathUtilityTests(unittest.TestCase):
    def test_canonical_member(self) -> None:
        self.assertEqual(canonical_member("OEBPS\\Text\\ch1.xhtml"), "OEBPS/Text/ch1.xhtml")
        self.assertEqual(canonical_member("/OEBPS/./Text/../ch1.xhtml"), "OEBPS/ch1.xhtml")
        self.assertEqual(canonical_member("../../ch1.xhtml"), "ch1.xhtml")
        self.assertEqual(canonical_member(""), "")
        self.assertEqual(canonical_member("."), "")

    def test_file_name_parts(self) -> None:
        self.assertEqual(take_file_name("OEBPS/Text/ch1.xhtml"), "ch1.xhtml")
        self.assertEqual(take_file_name("ch1.xhtml"), "ch1.xhtml")
        self.assertEqual(drop_file_name("OEBPS/Text/ch1.xhtml"), "OEBPS/Text/")
        self.assertEqual(drop_file_name("content.opf"), "")

    def test_collapse_and_join(self) -> None:
        self.assertEqual(collapse_path("Text/../Images/a.png"), "Images/a.png")
        self.assertEqual(collapse_path("../Images/a.png"), "../Images/a.png")
        self.assertEqual(collapse_path(""), "")
        self.assertEqual(join_member("OEBPS/", "Text/ch1.xhtml"), "OEBPS/Text/ch1.xhtml")
        self.assertEqual(join_member("", "Text/ch1.xhtml"), "Text/ch1.xhtml")

    def test_escape_only_touches_unsafe_characters(self) -> None:
        self.assertEqual(escape_uri("part 1.xhtml"), "part%201.xhtml")
        self.assertEqual(escape_uri("part%201.xhtml"), "part%201.xhtml")
        self.assertEqual(escape_uri("a[1]{2}.xhtml"), "a%5B1%5D%7B2%7D.xhtml")
        self.assertEqual(escape_uri("第一章.xhtml"), "第一章.xhtml")
        self.assertEqual(unescape_uri("part%201.xhtml"), "part 1.xhtml")

    def test_fragments_and_schemes(self) -> None:
        self.assertEqual(split_fragment("ch1.xhtml#note"), ("ch1.xhtml", "note"))
        self.assertEqual(split_fragment("ch1.xhtml"), ("ch1.xhtml", None))
        self.assertEqual(split_fragment("a#b#c"), ("a", "b#c"))
        self.assertTrue(has_uri_scheme("https://example.com"))
        self.assertTrue(has_uri_scheme("mailto:a@b.c"))
        self.assertFalse(has_uri_scheme("ch1.xhtml#a:b"))
        self.assertTrue(is_data_uri("data:image/png;base64,AA"))
        self.assertFalse(is_data_uri("Images/data.png"))


if __name__ == "__main__":
    unittest.main()
