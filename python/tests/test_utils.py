"""
Shared test utilities and fixtures for gitzip tests.

This module provides base classes that manage temporary directory trees and
helpers for inspecting the archives the builder produces.
"""

import io
import logging
import os
import shutil
import tempfile
import unittest
import zipfile
from typing import Dict, Iterable, Optional


def make_tree(root: str, files: Dict[str, Optional[bytes]]) -> None:
    """
    Create files and directories below ``root``.

    Keys are forward-slash relative paths. A ``None`` value, or a key ending
    with ``/``, creates a directory; anything else is written as file content.
    """
    for relative_path, content in files.items():
        path = os.path.join(root, *relative_path.strip("/").split("/"))
        if content is None or relative_path.endswith("/"):
            os.makedirs(path, exist_ok=True)
            continue
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        with open(path, "wb") as f:
            f.write(content)


def zip_names(archive_path: str) -> set:
    with zipfile.ZipFile(archive_path, "r") as zipf:
        return set(zipf.namelist())


def zip_bytes(entries: Dict[str, Optional[bytes]]) -> bytes:
    """Build a ZIP in memory, writing entries in the given order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zipf:
        for name, data in entries.items():
            if data is None:
                zipf.writestr(name.rstrip("/") + "/", b"")
            else:
                zipf.writestr(name, data)
    return buffer.getvalue()


def relative_files(root: str) -> Dict[str, bytes]:
    """Map every file below ``root`` to its content."""
    result = {}
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            relative = os.path.relpath(path, root).replace(os.sep, "/")
            with open(path, "rb") as f:
                result[relative] = f.read()
    return result


def relative_dirs(root: str) -> set:
    result = set()
    for dirpath, dirnames, _ in os.walk(root):
        for dirname in dirnames:
            path = os.path.join(dirpath, dirname)
            result.add(os.path.relpath(path, root).replace(os.sep, "/"))
    return result


class BaseTestCase(unittest.TestCase):
    """Base test case that handles common setup and teardown operations."""

    def setUp(self):
        """Set up common test fixtures."""
        # Disable logging during tests to reduce noise
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after tests."""
        logging.disable(logging.NOTSET)


class TempDirTestCase(BaseTestCase):
    """Base test case that provides temporary directory management."""

    def setUp(self):
        """Set up test fixtures including temporary directory."""
        super().setUp()
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up temporary directory and other fixtures."""
        super().tearDown()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def path(self, *parts: Iterable[str]) -> str:
        return os.path.join(self.temp_dir, *parts)


class AsyncTempDirTestCase(unittest.IsolatedAsyncioTestCase):
    """Async variant of TempDirTestCase for the coroutine based core."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        logging.disable(logging.NOTSET)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def path(self, *parts: Iterable[str]) -> str:
        return os.path.join(self.temp_dir, *parts)
