"""
Directory enumeration for archive operations.

This module walks a source root into an ordered list of entries, including
empty directories, so the builder knows the total count before it starts.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from colored_logger import get_colored_logger
from .filesystem import FileSystem, LocalFileSystem
from .paths import normalize_separators

logger = get_colored_logger(__name__)


@dataclass(frozen=True)
class Entry:
    """One file or directory discovered under the source root."""

    absolute_path: str
    relative_path: str  # forward slashes, relative to the root
    is_directory: bool


class DirectoryEnumerator:
    """Recursively lists a root folder into Entry objects."""

    def __init__(self, fs: Optional[FileSystem] = None):
        self.fs = fs or LocalFileSystem()

    def _relative(self, root: str, path: str) -> str:
        return normalize_separators(os.path.relpath(path, root))

    async def _walk(self, root: str, directory: str, entries: List[Entry]) -> None:
        try:
            children = await self.fs.read_directory(directory)
        except OSError as e:
            logger.warning("Cannot read directory %s, skipping: %s", directory, e)
            return

        # Emitting the directory itself keeps empty directories in the archive
        if directory != root:
            entries.append(
                Entry(
                    absolute_path=directory,
                    relative_path=self._relative(root, directory),
                    is_directory=True,
                )
            )

        for name, is_directory in children:
            child_path = os.path.join(directory, name)
            if is_directory:
                await self._walk(root, child_path, entries)
            else:
                entries.append(
                    Entry(
                        absolute_path=child_path,
                        relative_path=self._relative(root, child_path),
                        is_directory=False,
                    )
                )

    async def enumerate(self, root: str) -> List[Entry]:
        """
        List every entry under ``root`` in descent order.

        The root itself is never listed. A directory's own entry precedes its
        children. Unreadable directories are logged and skipped.
        """
        root = os.path.normpath(root)
        entries: List[Entry] = []
        await self._walk(root, root, entries)
        logger.debug("Enumerated %d entries under %s", len(entries), root)
        return entries
