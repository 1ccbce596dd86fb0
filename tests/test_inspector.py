"""Tests for the inspector module."""

import bz2
import gzip
import os
import shutil
import tempfile
import unittest

from rotalog.inspector import list_log_files, read_file, search_files

LIVE = "application.log"


class InspectorTestCase(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.base_path = os.path.join(self.tmpdir, LIVE)

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def _touch(self, name, content=""):
        with open(os.path.join(self.tmpdir, name), "w") as f:
            f.write(content)

    def _gzip(self, name, content):
        with gzip.open(os.path.join(self.tmpdir, name), "wt") as f:
            f.write(content)


class TestListLogFiles(InspectorTestCase):
    def test_backups_oldest_first_then_live(self):
        self._touch(LIVE)
        self._touch(f"{LIVE}.20250115_130000_000000.gz")
        self._touch(f"{LIVE}.20250115_120000_000000")
        self._touch("unrelated.txt")
        self._touch(f"{LIVE}.20250115_140000_000000.gz.tmp")

        self.assertEqual(list_log_files(self.base_path), [
            f"{LIVE}.20250115_120000_000000",
            f"{LIVE}.20250115_130000_000000.gz",
            LIVE,
        ])

    def test_index_scheme(self):
        self._touch(LIVE)
        self._touch(f"{LIVE}.1.gz")
        self._touch(f"{LIVE}.2")
        self.assertEqual(
            list_log_files(self.base_path, naming="index"),
            [f"{LIVE}.2", f"{LIVE}.1.gz", LIVE],
        )

    def test_empty_directory(self):
        self.assertEqual(list_log_files(self.base_path), [])

    def test_missing_directory(self):
        self.assertEqual(list_log_files(os.path.join(self.tmpdir, "nope", LIVE)), [])


class TestReadFile(InspectorTestCase):
    def test_read_plain_text(self):
        self._touch(LIVE, "hello\nworld\n")
        self.assertEqual(read_file(self.base_path, LIVE), "hello\nworld\n")

    def test_read_gzip(self):
        name = f"{LIVE}.20250115_120000_000000.gz"
        self._gzip(name, "compressed line\n")
        self.assertEqual(read_file(self.base_path, name), "compressed line\n")

    def test_read_bz2(self):
        name = f"{LIVE}.3.bz2"
        with bz2.open(os.path.join(self.tmpdir, name), "wt") as f:
            f.write("bz2 line\n")
        self.assertEqual(read_file(self.base_path, name), "bz2 line\n")

    def test_file_not_found(self):
        with self.assertRaises(FileNotFoundError):
            read_file(self.base_path, "nonexistent.log")


class TestSearchFiles(InspectorTestCase):
    def test_search_across_plain_and_compressed(self):
        self._touch(LIVE, "INFO all good\nERROR something broke\nINFO fine\n")
        self._gzip(f"{LIVE}.20250115_120000_000000.gz", "INFO old stuff\nERROR old failure\n")

        results = search_files(self.base_path, "ERROR")

        self.assertEqual(results, [
            (f"{LIVE}.20250115_120000_000000.gz", 2, "ERROR old failure"),
            (LIVE, 2, "ERROR something broke"),
        ])

    def test_search_no_results(self):
        self._touch(LIVE, "INFO all good\n")
        self.assertEqual(search_files(self.base_path, "FATAL"), [])

    def test_search_returns_line_numbers(self):
        self._touch(LIVE, "line one\nline two TARGET\nline three\nline four TARGET\n")
        results = search_files(self.base_path, "TARGET")
        self.assertEqual([r[1] for r in results], [2, 4])

    def test_corrupt_archive_is_skipped(self):
        self._touch(f"{LIVE}.20250115_120000_000000.gz", "not gzip at all")
        self._touch(LIVE, "TARGET here\n")
        results = search_files(self.base_path, "TARGET")
        self.assertEqual(results, [(LIVE, 1, "TARGET here")])


if __name__ == "__main__":
    unittest.main()
