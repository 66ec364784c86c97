"""
Tests for the directory enumerator.
"""

import os

from gitzip.enumerator import DirectoryEnumerator
from gitzip.filesystem import LocalFileSystem
from .test_utils import AsyncTempDirTestCase, make_tree


class FailingDirectoryFileSystem(LocalFileSystem):
    """Local filesystem that cannot list one particular directory."""

    def __init__(self, unreadable: str):
        self.unreadable = os.path.normpath(unreadable)

    async def read_directory(self, path):
        if os.path.normpath(path) == self.unreadable:
            raise PermissionError(13, "Permission denied", path)
        return await super().read_directory(path)


class TestDirectoryEnumerator(AsyncTempDirTestCase):
    async def test_lists_files_and_directories(self):
        make_tree(self.temp_dir, {"src/a.txt": b"a", "src/lib/b.py": b"b", "top.md": b"t"})

        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        listed = {(e.relative_path, e.is_directory) for e in entries}

        self.assertEqual(
            listed,
            {
                ("src", True),
                ("src/a.txt", False),
                ("src/lib", True),
                ("src/lib/b.py", False),
                ("top.md", False),
            },
        )

    async def test_root_is_never_listed(self):
        make_tree(self.temp_dir, {"a.txt": b"a"})
        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        self.assertNotIn("", [e.relative_path for e in entries])
        self.assertNotIn(".", [e.relative_path for e in entries])

    async def test_empty_directories_preserved(self):
        make_tree(self.temp_dir, {"empty/": None, "nested/deeper/": None})
        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        self.assertEqual(
            [(e.relative_path, e.is_directory) for e in entries],
            [("empty", True), ("nested", True), ("nested/deeper", True)],
        )

    async def test_parent_precedes_children(self):
        make_tree(self.temp_dir, {"a/b/c/d.txt": b"d"})
        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        order = [e.relative_path for e in entries]
        self.assertEqual(order, ["a", "a/b", "a/b/c", "a/b/c/d.txt"])

    async def test_relative_paths_unique_and_forward_slashed(self):
        make_tree(self.temp_dir, {"x/y/z.txt": b"", "x/w.txt": b""})
        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        paths = [e.relative_path for e in entries]
        self.assertEqual(len(paths), len(set(paths)))
        self.assertTrue(all("\\" not in p for p in paths))
        self.assertTrue(all(os.path.isabs(e.absolute_path) for e in entries))

    async def test_unreadable_directory_skipped(self):
        make_tree(
            self.temp_dir,
            {"ok/file.txt": b"1", "locked/secret.txt": b"2", "other.txt": b"3"},
        )
        fs = FailingDirectoryFileSystem(self.path("locked"))

        entries = await DirectoryEnumerator(fs).enumerate(self.temp_dir)
        paths = {e.relative_path for e in entries}

        self.assertIn("ok/file.txt", paths)
        self.assertIn("other.txt", paths)
        self.assertNotIn("locked/secret.txt", paths)

    async def test_empty_root(self):
        entries = await DirectoryEnumerator().enumerate(self.temp_dir)
        self.assertEqual(entries, [])
