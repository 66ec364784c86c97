"""
Tests for naming policies and archive destination resolution.
"""

import os
import unittest

from gitzip.destination import ArchivePathGenerator, OutputLocation, OutputMode
from gitzip.errors import InvalidDestination
from gitzip.filesystem import LocalFileSystem
from gitzip.naming import NamingMode, NamingPolicy, map_path
from .test_utils import AsyncTempDirTestCase, TempDirTestCase


class TestMapPath(unittest.TestCase):
    def test_only_content(self):
        policy = NamingPolicy.only_content()
        self.assertEqual(map_path("src/a.txt", policy, "project"), "src/a.txt")
        self.assertEqual(map_path("/src/a.txt", policy, "project"), "src/a.txt")

    def test_with_folder(self):
        policy = NamingPolicy.with_folder()
        self.assertEqual(map_path("src/a.txt", policy, "project"), "project/src/a.txt")

    def test_with_folder_empty_relative_is_folder(self):
        self.assertEqual(map_path("", NamingPolicy.with_folder(), "project"), "project")

    def test_custom_name(self):
        policy = NamingPolicy.custom("release-1.0")
        self.assertEqual(map_path("a.txt", policy, "project"), "release-1.0/a.txt")

    def test_empty_custom_name_falls_back_to_folder(self):
        policy = NamingPolicy.custom("")
        self.assertEqual(map_path("a.txt", policy, "project"), "project/a.txt")

    def test_backslashes_normalized(self):
        policy = NamingPolicy.with_folder()
        self.assertEqual(map_path("src\\lib\\m.py", policy, "p"), "p/src/lib/m.py")

    def test_never_yields_traversal_or_drive(self):
        inputs = ["../x", "a/../../b", "C:\\evil\\x", "/../../etc", "..", "./a/./b"]
        for policy in (
            NamingPolicy.only_content(),
            NamingPolicy.with_folder(),
            NamingPolicy.custom("../up"),
        ):
            for relative in inputs:
                mapped = map_path(relative, policy, "root")
                self.assertFalse(mapped.startswith("/"), mapped)
                self.assertNotIn("..", mapped.split("/"), mapped)
                self.assertNotRegex(mapped, r"^[A-Za-z]:")

    def test_same_input_same_output(self):
        policy = NamingPolicy.custom("bundle")
        first = map_path("a/b/c.txt", policy, "root")
        second = map_path("a/b/c.txt", policy, "root")
        self.assertEqual(first, second)

    def test_from_string(self):
        self.assertEqual(NamingPolicy.from_string("only").mode, NamingMode.ONLY_CONTENT)
        self.assertEqual(NamingPolicy.from_string("WITH").mode, NamingMode.WITH_FOLDER)
        custom = NamingPolicy.from_string("custom", "x")
        self.assertEqual((custom.mode, custom.custom_name), (NamingMode.CUSTOM_NAME, "x"))
        with self.assertRaises(ValueError):
            NamingPolicy.from_string("flat")


class TestArchivePathGenerator(TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.generator = ArchivePathGenerator()
        self.root = self.path("project")
        os.makedirs(self.root)

    def test_parent_dir(self):
        resolved = self.generator.resolve(self.root, OutputLocation.parent_dir(), ".zip")
        self.assertEqual(resolved, self.path("project.zip"))

    def test_current_dir(self):
        resolved = self.generator.resolve(self.root, OutputLocation.current_dir(), ".zip")
        self.assertEqual(resolved, os.path.join(self.root, "project.zip"))

    def test_custom_path_gets_extension(self):
        target = self.path("out", "bundle")
        resolved = self.generator.resolve(self.root, OutputLocation.custom(target), ".zip")
        self.assertEqual(resolved, target + ".zip")

    def test_custom_path_keeps_existing_extension(self):
        target = self.path("bundle.ZIP")
        resolved = self.generator.resolve(self.root, OutputLocation.custom(target), ".zip")
        self.assertEqual(resolved, target)

    def test_custom_bare_name_resolves_next_to_root(self):
        resolved = self.generator.resolve(
            self.root, OutputLocation.custom("named"), ".tar.zst"
        )
        self.assertEqual(resolved, self.path("named.tar.zst"))

    def test_empty_custom_path_rejected(self):
        with self.assertRaises(InvalidDestination):
            self.generator.resolve(self.root, OutputLocation.custom("  "), ".zip")

    def test_directory_destination_rejected(self):
        os.makedirs(self.path("taken.zip"))
        with self.assertRaises(InvalidDestination):
            self.generator.resolve(
                self.root, OutputLocation.custom(self.path("taken.zip")), ".zip"
            )

    def test_nul_byte_rejected(self):
        with self.assertRaises(InvalidDestination):
            self.generator.validate("bad\x00name.zip")

    def test_output_location_from_string(self):
        self.assertEqual(OutputLocation.from_string("parent").mode, OutputMode.PARENT_DIR)
        location = OutputLocation.from_string("custom", "/x.zip")
        self.assertEqual(location.custom_path, "/x.zip")
        self.assertEqual(OutputLocation.from_string("current", "/ignored").custom_path, "")
        with self.assertRaises(ValueError):
            OutputLocation.from_string("desktop")


class TestPrepareParent(AsyncTempDirTestCase):
    async def test_missing_parent_is_created(self):
        target = self.path("a", "b", "out.zip")
        await ArchivePathGenerator().prepare_parent(LocalFileSystem(), target)
        self.assertTrue(os.path.isdir(self.path("a", "b")))

    async def test_parent_blocked_by_file(self):
        with open(self.path("blocker"), "w") as f:
            f.write("x")
        with self.assertRaises(InvalidDestination):
            await ArchivePathGenerator().prepare_parent(
                LocalFileSystem(), self.path("blocker", "out.zip")
            )
