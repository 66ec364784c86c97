"""
Asynchronous filesystem capability used by the archive core.

The core only talks to the ``FileSystem`` protocol so it can run against the
local disk or a test double. ``LocalFileSystem`` pushes every blocking call
onto a worker thread with ``asyncio.to_thread``.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from typing import List, Protocol, Tuple

from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)


@dataclass(frozen=True)
class FileStat:
    """Result of ``FileSystem.stat``."""

    exists: bool
    size: int = 0
    is_directory: bool = False


class FileSystem(Protocol):
    """Interface the builder and extractor depend on."""

    async def read_directory(self, path: str) -> List[Tuple[str, bool]]:
        """Return (name, is_directory) for each immediate child."""
        ...

    async def read_file(self, path: str) -> bytes: ...

    async def write_file(self, path: str, data: bytes) -> None: ...

    async def create_directory(self, path: str) -> None: ...

    async def stat(self, path: str) -> FileStat: ...

    async def delete(self, path: str) -> None: ...


class LocalFileSystem:
    """FileSystem implementation backed by the local disk."""

    @staticmethod
    def _list_directory(path: str) -> List[Tuple[str, bool]]:
        children = []
        with os.scandir(path) as it:
            for entry in it:
                # Symlinked directories are reported as files to avoid cycles
                children.append((entry.name, entry.is_dir(follow_symlinks=False)))
        children.sort(key=lambda child: child[0])
        return children

    @staticmethod
    def _read_bytes(path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    @staticmethod
    def _write_atomically(path: str, data: bytes) -> None:
        temp_path = f"{path}.tmp.{os.getpid()}"
        try:
            with open(temp_path, "wb") as f:
                f.write(data)
            os.replace(temp_path, path)
        except OSError:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError as cleanup_error:
                    logger.debug(
                        "Failed to clean up temp file %s: %s", temp_path, cleanup_error
                    )
            raise

    @staticmethod
    def _stat(path: str) -> FileStat:
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return FileStat(exists=False)
        return FileStat(
            exists=True,
            size=st.st_size,
            is_directory=os.path.isdir(path),
        )

    @staticmethod
    def _delete(path: str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    async def read_directory(self, path: str) -> List[Tuple[str, bool]]:
        return await asyncio.to_thread(self._list_directory, path)

    async def read_file(self, path: str) -> bytes:
        return await asyncio.to_thread(self._read_bytes, path)

    async def write_file(self, path: str, data: bytes) -> None:
        """Write ``data`` through a temp file so readers never see a partial file."""
        await asyncio.to_thread(self._write_atomically, path, data)

    async def create_directory(self, path: str) -> None:
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)

    async def stat(self, path: str) -> FileStat:
        return await asyncio.to_thread(self._stat, path)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._delete, path)
