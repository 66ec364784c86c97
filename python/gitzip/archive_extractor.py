"""
Archive Extractor - writes archive entries back to disk.

Internal paths are passed through the path normalizer before they are joined
with the destination, and every file's parent directories are created on
demand because archives do not guarantee directory entries come first.
"""

import asyncio
import os
import tarfile
import zipfile
import zlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from colored_logger import get_colored_logger
from .containers import FORMAT_EXTENSIONS, load_container
from .errors import Cancelled, ExtractError
from .filesystem import FileSystem, LocalFileSystem
from .paths import is_within, sanitize_internal_path
from .progress import NullProgress, ProgressSink

logger = get_colored_logger(__name__)

_ENTRY_ERRORS = (OSError, zipfile.BadZipFile, tarfile.TarError, zlib.error, EOFError)


class ExtractLayout(Enum):
    FLAT = "flat"  # entries land directly in the destination
    WITH_SUBFOLDER = "with_subfolder"  # entries land in <destination>/<archive name>


@dataclass
class ExtractResult:
    destination: str
    extracted: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def archive_stem(archive_path: str) -> str:
    """Archive file name without its container extension."""
    name = os.path.basename(archive_path)
    for extension in sorted(FORMAT_EXTENSIONS.values(), key=len, reverse=True):
        if name.lower().endswith(extension):
            return name[: -len(extension)]
    return os.path.splitext(name)[0] or name


class ArchiveExtractor:
    """Extracts all or selected entries of an archive."""

    def __init__(self, fs: Optional[FileSystem] = None, subfolder_suffix: str = ""):
        self.fs = fs or LocalFileSystem()
        self.subfolder_suffix = subfolder_suffix

    def target_directory(
        self, archive_path: str, destination_root: str, layout: ExtractLayout
    ) -> str:
        destination_root = os.path.abspath(destination_root)
        if layout == ExtractLayout.WITH_SUBFOLDER:
            return os.path.join(
                destination_root, archive_stem(archive_path) + self.subfolder_suffix
            )
        return destination_root

    async def _load(self, archive_path: str):
        try:
            data = await self.fs.read_file(archive_path)
        except OSError as e:
            raise ExtractError(f"Cannot read archive {archive_path}: {e}") from e
        try:
            return await asyncio.to_thread(load_container, data)
        except ValueError as e:
            raise ExtractError(f"Cannot open archive {archive_path}: {e}") from e

    async def _extract_entry(self, handle, destination: str) -> None:
        if handle.is_directory:
            await self.fs.create_directory(destination)
            return

        await self.fs.create_directory(os.path.dirname(destination))
        data = await asyncio.to_thread(handle.read_bytes)
        await self.fs.write_file(destination, data)

    async def extract(
        self,
        archive_path: str,
        destination_root: str,
        layout: ExtractLayout = ExtractLayout.WITH_SUBFOLDER,
        selection: Optional[Iterable[str]] = None,
        progress: Optional[ProgressSink] = None,
    ) -> ExtractResult:
        """
        Extract ``archive_path`` below ``destination_root``.

        With ``selection`` only the named entries are extracted; names absent
        from the archive are skipped. A failing entry is recorded in the
        result and extraction continues with the next one.

        Raises:
            ExtractError: If the archive cannot be read or parsed
            Cancelled: If ``progress`` requested cancellation
        """
        progress = progress or NullProgress()
        entries = await self._load(archive_path)
        target = self.target_directory(archive_path, destination_root, layout)
        result = ExtractResult(destination=target)

        if selection is not None:
            wanted = {sanitize_internal_path(name) for name in selection}
            result.missing = sorted(name for name in wanted if name not in entries)
            for name in result.missing:
                logger.debug("Selected entry not in archive, skipping: %s", name)
            names = [name for name in entries if name in wanted]
        else:
            names = list(entries)

        step = 100.0 / len(names) if names else 100.0
        progress.report(f"Extracting {len(names)} entries to {target}")

        for name in names:
            if progress.is_cancellation_requested:
                raise Cancelled("Extraction cancelled")

            destination = os.path.join(target, *name.split("/"))
            if not is_within(destination, target):
                logger.warning("Entry escapes the destination, skipping: %s", name)
                result.failures.append((name, "path escapes destination"))
                continue

            try:
                await self._extract_entry(entries[name], destination)
            except _ENTRY_ERRORS as e:
                logger.warning("Failed to extract %s: %s", name, e)
                result.failures.append((name, str(e)))
            else:
                result.extracted.append(name)
            progress.report(f"Extracted {name}", step)

        if not names:
            progress.report("Nothing to extract", step)

        if result.failures:
            logger.warning(
                "Extracted %d entries to %s, %d failed",
                len(result.extracted),
                target,
                len(result.failures),
            )
        else:
            logger.success("Extracted %d entries to %s", len(result.extracted), target)
        return result
