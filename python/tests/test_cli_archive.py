"""
Tests for the command-line front end.
"""

import json
import os
import zipfile

from cli_archive import ArchiveCLI
from gitzip.progress import CancellationToken
from .test_utils import TempDirTestCase, make_tree, relative_files, zip_names


class TestArchiveCLI(TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.settings_file = self.path("gitzip.json")
        self.root = self.path("proj")
        make_tree(
            self.root,
            {
                "src/a.txt": b"alpha",
                ".git/HEAD": b"ref",
                ".gitignore": b"build/\n",
                "build/out.o": b"obj",
            },
        )

    def run_cli(self, *args, token=None):
        return ArchiveCLI(token).run(["--settings", self.settings_file, *args])

    def write_settings(self, values):
        with open(self.settings_file, "w", encoding="utf-8") as f:
            json.dump(values, f)

    def test_no_command_prints_help(self):
        self.assertEqual(ArchiveCLI().run([]), 1)

    def test_zip_with_explicit_git_mode(self):
        code = self.run_cli("zip", self.root, "--git-mode", "exclude_git", "--quiet")

        self.assertEqual(code, 0)
        self.assertEqual(zip_names(self.path("proj.zip")), {"proj/src/", "proj/src/a.txt"})

    def test_zip_default_git_mode_from_settings(self):
        self.write_settings({"default_git_mode": "respect_gitignore", "default_naming": "only"})

        self.assertEqual(self.run_cli("zip", self.root), 0)
        self.assertEqual(
            zip_names(self.path("proj.zip")),
            {".git/", ".git/HEAD", ".gitignore", "src/", "src/a.txt"},
        )

    def test_zip_custom_name_and_path(self):
        target = self.path("dist", "release")
        code = self.run_cli(
            "zip",
            self.root,
            "--naming",
            "custom",
            "--name",
            "v1",
            "--output",
            "custom",
            "--path",
            target,
            "--git-mode",
            "exclude_git",
        )

        self.assertEqual(code, 0)
        self.assertEqual(zip_names(target + ".zip"), {"v1/src/", "v1/src/a.txt"})

    def test_zip_missing_folder(self):
        self.assertEqual(self.run_cli("zip", self.path("missing")), 1)

    def test_zip_cancelled(self):
        token = CancellationToken()
        token.cancel()
        self.assertEqual(self.run_cli("zip", self.root, token=token), 130)
        self.assertFalse(os.path.exists(self.path("proj.zip")))

    def test_zip_files(self):
        make_tree(self.temp_dir, {"one.txt": b"1", "two.txt": b"2"})
        code = self.run_cli(
            "zip-files", self.path("one.txt"), self.path("two.txt"), "--output-file", "both"
        )
        self.assertEqual(code, 0)
        self.assertEqual(zip_names(self.path("both.zip")), {"both/one.txt", "both/two.txt"})

    def test_extract_next_to_archive(self):
        self.write_settings({"unzipped_suffix": "_x"})
        self.run_cli("zip", self.root, "--git-mode", "exclude_git")

        self.assertEqual(self.run_cli("extract", self.path("proj.zip")), 0)
        self.assertEqual(
            relative_files(self.path("proj_x")), {"proj/src/a.txt": b"alpha"}
        )

    def test_extract_here_with_selection(self):
        self.run_cli("zip", self.root, "--naming", "only", "--git-mode", "exclude_git")
        dest = self.path("dest")

        code = self.run_cli(
            "extract", self.path("proj.zip"), dest, "--here", "--select", "src/a.txt"
        )

        self.assertEqual(code, 0)
        self.assertEqual(relative_files(dest), {"src/a.txt": b"alpha"})

    def test_extract_corrupt_archive(self):
        path = self.path("bad.zip")
        with open(path, "wb") as f:
            f.write(b"PK\x03\x04 nope")
        self.assertEqual(self.run_cli("extract", path), 1)

    def test_gzip_and_gunzip(self):
        make_tree(self.temp_dir, {"notes.txt": b"notes " * 20})

        self.assertEqual(self.run_cli("gzip", self.path("notes.txt"), "--delete-original"), 0)
        self.assertFalse(os.path.exists(self.path("notes.txt")))
        self.assertTrue(os.path.exists(self.path("notes.txt.gz")))

        self.assertEqual(self.run_cli("gunzip", self.path("notes.txt.gz")), 0)
        with open(self.path("notes.txt"), "rb") as f:
            self.assertEqual(f.read(), b"notes " * 20)

    def test_gzip_output_requires_single_file(self):
        make_tree(self.temp_dir, {"a.txt": b"a", "b.txt": b"b"})
        code = self.run_cli(
            "gzip", self.path("a.txt"), self.path("b.txt"), "--output", "x.gz"
        )
        self.assertEqual(code, 1)

    def test_gunzip_plain_file_fails(self):
        make_tree(self.temp_dir, {"plain.gz": b"plain"})
        self.assertEqual(self.run_cli("gunzip", self.path("plain.gz")), 1)

    def test_info_list_and_verify(self):
        self.run_cli("zip", self.root, "--git-mode", "exclude_git")
        archive = self.path("proj.zip")

        self.assertEqual(self.run_cli("info", archive, "--detailed"), 0)
        self.assertEqual(self.run_cli("list", archive), 0)
        self.assertEqual(self.run_cli("verify", archive), 0)

    def test_verify_detects_damage(self):
        archive = self.path("damaged.zip")
        with zipfile.ZipFile(archive, "w", zipfile.ZIP_DEFLATED) as zipf:
            zipf.writestr("a.bin", bytes(range(256)) * 4)
        with open(archive, "r+b") as f:
            f.seek(40)
            f.write(b"\x00" * 8)

        self.assertEqual(self.run_cli("verify", archive), 1)

    def test_info_unknown_format(self):
        make_tree(self.temp_dir, {"x.txt": b"text"})
        self.assertEqual(self.run_cli("info", self.path("x.txt")), 1)

    def test_info_missing_archive(self):
        self.assertEqual(self.run_cli("info", self.path("missing.zip")), 1)
