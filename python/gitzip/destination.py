"""
Output location resolution for archive operations.

This module turns an OutputLocation choice into one absolute destination path
before any archive data is produced, and creates the destination's parent
directory.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from colored_logger import get_colored_logger
from .errors import InvalidDestination
from .filesystem import FileSystem
from .paths import last_path_component, safe_path_dirname

logger = get_colored_logger(__name__)


class OutputMode(Enum):
    CURRENT_DIR = "current"
    PARENT_DIR = "parent"
    CUSTOM_PATH = "custom"


@dataclass(frozen=True)
class OutputLocation:
    """Where the finished archive is written."""

    mode: OutputMode = OutputMode.PARENT_DIR
    custom_path: str = ""

    @classmethod
    def current_dir(cls) -> "OutputLocation":
        return cls(OutputMode.CURRENT_DIR)

    @classmethod
    def parent_dir(cls) -> "OutputLocation":
        return cls(OutputMode.PARENT_DIR)

    @classmethod
    def custom(cls, path: str) -> "OutputLocation":
        return cls(OutputMode.CUSTOM_PATH, path or "")

    @classmethod
    def from_string(cls, mode: str, custom_path: str = "") -> "OutputLocation":
        """Build a location from ``current`` / ``parent`` / ``custom``."""
        try:
            output_mode = OutputMode(mode.lower())
        except ValueError:
            raise ValueError(f"Unknown output location: {mode}") from None
        return cls(output_mode, custom_path if output_mode == OutputMode.CUSTOM_PATH else "")


class ArchivePathGenerator:
    """Generates and validates archive destination paths."""

    def ensure_extension(self, archive_path: str, extension: str) -> str:
        """Append ``extension`` unless the path already ends with it."""
        if archive_path.lower().endswith(extension.lower()):
            return archive_path
        return f"{archive_path}{extension}"

    def determine_parent_directory(self, source_path: str) -> str:
        """Directory that holds ``source_path``, falling back to the cwd."""
        parent = safe_path_dirname(os.path.normpath(source_path))
        if not parent or parent == os.path.normpath(source_path):
            return os.getcwd()
        return os.path.normpath(parent)

    def default_archive_name(self, source_path: str, extension: str) -> str:
        folder_name = last_path_component(os.path.normpath(source_path))
        if not folder_name or folder_name in (".", ".."):
            raise InvalidDestination(
                f"Cannot derive an archive name from: {source_path!r}"
            )
        return f"{folder_name}{extension}"

    def resolve(
        self, source_path: str, location: OutputLocation, extension: str
    ) -> str:
        """
        Resolve ``location`` to an absolute archive path for ``source_path``.

        Raises:
            InvalidDestination: If the result would be empty or malformed
        """
        if location.mode == OutputMode.CUSTOM_PATH:
            custom_path = (location.custom_path or "").strip()
            if not custom_path:
                raise InvalidDestination("Custom output path cannot be empty")
            candidate = self.ensure_extension(custom_path, extension)
            if not os.path.isabs(candidate):
                candidate = os.path.join(
                    self.determine_parent_directory(source_path), candidate
                )
        elif location.mode == OutputMode.CURRENT_DIR:
            candidate = os.path.join(
                source_path, self.default_archive_name(source_path, extension)
            )
        else:
            candidate = os.path.join(
                self.determine_parent_directory(source_path),
                self.default_archive_name(source_path, extension),
            )

        return self.validate(candidate)

    def validate(self, archive_path: Optional[str]) -> str:
        """Normalize ``archive_path`` and reject unusable values."""
        if not archive_path or not archive_path.strip():
            raise InvalidDestination("Output path cannot be empty")
        if "\x00" in archive_path:
            raise InvalidDestination(f"Invalid path format: {archive_path!r}")

        resolved = os.path.abspath(os.path.normpath(archive_path))
        if not last_path_component(resolved):
            raise InvalidDestination(f"Output path has no file name: {archive_path}")
        if os.path.isdir(resolved):
            raise InvalidDestination(f"Output path is a directory: {resolved}")
        return resolved

    async def prepare_parent(self, fs: FileSystem, archive_path: str) -> None:
        """Create the destination's parent directory if it is missing."""
        parent = os.path.dirname(archive_path)
        if not parent:
            return
        try:
            await fs.create_directory(parent)
        except OSError as e:
            raise InvalidDestination(
                f"Failed to create output directory {parent}: {e}"
            ) from e
