import os
import tempfile
import unittest
from unittest import mock

import requests

from pyFam.exceptions import FormatError, ResourceError
from pyFam.utils import (LineCursor, extract_labeled_number, get_id_mappings, load_fam_lines,
                         read_int, safe_num, strip_quotes)


class TestPrimitives(unittest.TestCase):

    def test_safe_num(self):
        self.assertEqual(safe_num("0.25"), 0.25)
        self.assertEqual(safe_num(" 3 "), 3.0)
        self.assertIsNone(safe_num("Rest allele"))
        self.assertIsNone(safe_num(None))

    def test_read_int(self):
        self.assertEqual(read_int("12", 4, "number of individuals"), 12)
        with self.assertRaises(FormatError) as cm:
            read_int("abc", 4, "number of individuals")
        self.assertEqual(cm.exception.line, 4)
        self.assertEqual(cm.exception.expected, "number of individuals")
        self.assertEqual(cm.exception.found, "abc")
        self.assertIn('Expected line 4 to be number of individuals, but found: "abc"', str(cm.exception))

    def test_read_int_max(self):
        self.assertEqual(read_int("4", 1, "a model code", max_value=4), 4)
        with self.assertRaises(FormatError):
            read_int("5", 1, "a model code", max_value=4)
        with self.assertRaises(FormatError):
            read_int("2.5", 1, "a count")

    def test_read_int_negative(self):
        with self.assertRaises(FormatError) as cm:
            read_int("-2", 7, "a child index")
        self.assertEqual(cm.exception.found, "-2")
        self.assertEqual(read_int("-2", 7, "an offset", min_value=-5), -2)

    def test_extract_labeled_number(self):
        info = "(DatabaseSize = 600 , Dropout probability = 0.05 , Minor allele frequency = 0 )"
        self.assertEqual(extract_labeled_number(info, "DatabaseSize = ", r"\d+"), 600)
        self.assertEqual(extract_labeled_number(info, "Dropout probability = "), 0.05)
        self.assertEqual(extract_labeled_number(info, "Minor allele frequency = "), 0)
        self.assertIsNone(extract_labeled_number("(DatabaseSize = 600)", "Dropout probability = "))
        self.assertIsNone(extract_labeled_number(None, "DatabaseSize = "))
        self.assertEqual(extract_labeled_number("#FALSE#\tTheta/Kinship/Fst: 0.02", "Theta/Kinship/Fst: "), 0.02)

    def test_get_id_mappings(self):
        self.assertEqual(get_id_mappings(["a", "b", "a"]), {"a": 1, "b": 2})

    def test_strip_quotes(self):
        self.assertEqual(strip_quotes(['"mother"', "3"]), ["mother", "3"])


class TestLineCursor(unittest.TestCase):

    def setUp(self):
        self.cursor = LineCursor(["a", "b", "7", "x"])

    def test_peek_and_advance(self):
        self.assertEqual(self.cursor.peek(), "a")
        self.assertEqual(self.cursor.peek(2), "7")
        self.cursor.advance(3)
        self.assertEqual(self.cursor.pos, 4)
        self.assertEqual(self.cursor.peek(), "x")
        self.assertIsNone(self.cursor.peek(1))

    def test_read_int_reports_absolute_line(self):
        self.cursor.seek(2)
        self.assertEqual(self.cursor.read_int(1, "a number"), 7)
        with self.assertRaises(FormatError) as cm:
            self.cursor.read_int(2, "a number")
        self.assertEqual(cm.exception.line, 4)

    def test_read_int_beyond_end(self):
        with self.assertRaises(FormatError) as cm:
            self.cursor.read_int(10, "a number")
        self.assertEqual(cm.exception.found, "")


class TestLoadFamLines(unittest.TestCase):

    def test_wrong_extension(self):
        with self.assertRaises(ResourceError):
            load_fam_lines("pedigree.txt")

    def test_missing_file(self):
        with self.assertRaises(ResourceError):
            load_fam_lines("/no/such/dir/file.fam")

    def test_local_file(self):
        fd, path = tempfile.mkstemp(suffix=".fam")
        with os.fdopen(fd, "w") as f:
            f.write("line1\nline2\n")
        try:
            self.assertEqual(load_fam_lines(path), ["line1", "line2"])
        finally:
            os.remove(path)

    def test_url(self):
        resp = mock.Mock(content=b"a\r\nb\r\n")
        with mock.patch("pyFam.utils.requests.get", return_value=resp) as get:
            lines = load_fam_lines("https://example.org/x.fam", verbose=False)
        get.assert_called_once()
        self.assertEqual(lines, ["a", "b"])

    def test_url_failure(self):
        with mock.patch("pyFam.utils.requests.get", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(ResourceError):
                load_fam_lines("http://example.org/x.fam", verbose=False)

    def test_ftp_not_fetched(self):
        with mock.patch("pyFam.utils.requests.get") as get:
            with self.assertRaises(ResourceError):
                load_fam_lines("ftp://example.org/x.fam", verbose=False)
        get.assert_not_called()

    def test_splits_on_line_breaks_only(self):
        fd, path = tempfile.mkstemp(suffix=".fam")
        with os.fdopen(fd, "wb") as f:
            f.write(b"Mother\x85\x0c\r\nb\rc\n\nd\n")
        try:
            lines = load_fam_lines(path)
        finally:
            os.remove(path)
        self.assertEqual(lines, ["Mother\u2026\x0c", "b", "c", "", "d"])


if __name__ == '__main__':
    unittest.main()
