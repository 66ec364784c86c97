"""
Archive Builder - packages a folder (or a list of files) into one archive.

The builder resolves the destination, loads the Git exclusion rules,
enumerates the source, filters and maps every entry, and streams the survivors
into an in-memory container. The destination is written once, after the last
entry, so a cancelled or failed run leaves the filesystem untouched.
"""

import asyncio
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from colored_logger import get_colored_logger
from .containers import ContainerFactory
from .destination import ArchivePathGenerator, OutputLocation
from .enumerator import DirectoryEnumerator, Entry
from .errors import Cancelled, ReadError, SourceNotFound, WriteError
from .filesystem import FileSystem, LocalFileSystem
from .ignore_rules import IgnoreMatcher, IgnoreRuleEngine
from .naming import NamingPolicy, map_path
from .paths import (
    last_path_component,
    pretty_bytes,
    safe_path_dirname,
    to_relative_posix,
)
from .progress import NullProgress, ProgressReporter, ProgressSink

logger = get_colored_logger(__name__)

GIT_DIRECTORY = ".git"
GITIGNORE_FILE = ".gitignore"

# Share of the progress bar spent in each phase
PREPARE_SHARE = 20.0
ENTRIES_SHARE = 70.0
FINALIZE_SHARE = 10.0


class GitMode(Enum):
    EXCLUDE_GIT = "exclude_git"
    RESPECT_GITIGNORE = "respect_gitignore"
    INCLUDE_ALL = "include_all"


@dataclass(frozen=True)
class GitFiles:
    """Git artefacts found at the top of a source folder."""

    has_git: bool = False
    has_gitignore: bool = False
    gitignore_path: str = ""


@dataclass
class ArchiveOperationResult:
    """Outcome of a successful build."""

    output_path: str
    bytes_written: int
    entries_processed: int
    entries_skipped: int
    warnings: List[str] = field(default_factory=list)


async def check_git_files(root: str, fs: Optional[FileSystem] = None) -> GitFiles:
    """Report whether ``root`` holds a ``.git`` entry and a ``.gitignore`` file."""
    fs = fs or LocalFileSystem()
    gitignore_path = os.path.join(root, GITIGNORE_FILE)
    try:
        git_stat = await fs.stat(os.path.join(root, GIT_DIRECTORY))
        gitignore_stat = await fs.stat(gitignore_path)
    except OSError as e:
        logger.warning("Error checking Git files in %s: %s", root, e)
        return GitFiles()

    return GitFiles(
        has_git=git_stat.exists,
        has_gitignore=gitignore_stat.exists and not gitignore_stat.is_directory,
        gitignore_path=gitignore_path,
    )


class ExclusionFilter:
    """Decides, per entry, whether the active Git mode drops it."""

    def __init__(
        self,
        git_mode: GitMode,
        git_files: Optional[GitFiles] = None,
        matcher: Optional[IgnoreMatcher] = None,
    ):
        self.git_mode = git_mode
        self.git_files = git_files or GitFiles()
        self.matcher = matcher

    @classmethod
    async def load(
        cls, root: str, git_mode: GitMode, fs: FileSystem
    ) -> "ExclusionFilter":
        """Detect Git artefacts under ``root`` and compile its ignore rules."""
        if git_mode == GitMode.INCLUDE_ALL:
            return cls(git_mode)

        git_files = await check_git_files(root, fs)
        matcher = None
        if git_files.has_gitignore:
            matcher = await IgnoreRuleEngine.from_file(fs, git_files.gitignore_path)
        logger.debug(
            "Git mode %s: .git=%s, .gitignore=%s",
            git_mode.value,
            git_files.has_git,
            git_files.has_gitignore,
        )
        return cls(git_mode, git_files, matcher)

    def excluded(self, relative_path: str, is_directory: bool = False) -> bool:
        if self.git_mode == GitMode.INCLUDE_ALL:
            return False

        if self.git_mode == GitMode.EXCLUDE_GIT:
            if self.git_files.has_git and (
                relative_path == GIT_DIRECTORY
                or relative_path.startswith(GIT_DIRECTORY + "/")
            ):
                return True
            if self.git_files.has_gitignore and relative_path == GITIGNORE_FILE:
                return True

        return bool(self.matcher) and self.matcher.matches(relative_path, is_directory)


class ArchiveBuilder:
    """
    Builds archives from folders or explicit file lists.

    Each call owns its own rule set and container; the builder keeps no state
    between operations and can be shared by concurrent tasks.
    """

    def __init__(
        self,
        fs: Optional[FileSystem] = None,
        compression_format: str = "zip",
        compression_level: Optional[int] = None,
    ):
        if compression_format not in ContainerFactory.get_supported_formats():
            raise ValueError(f"Unsupported compression format: {compression_format}")
        self.fs = fs or LocalFileSystem()
        self.compression_format = compression_format
        self.compression_level = compression_level
        self.path_generator = ArchivePathGenerator()
        self.enumerator = DirectoryEnumerator(self.fs)

    @property
    def extension(self) -> str:
        return ContainerFactory.extension_for(self.compression_format)

    def _check_cancelled(self, progress: ProgressSink) -> None:
        if progress.is_cancellation_requested:
            raise Cancelled("Compression cancelled")

    async def _require_directory(self, root: str) -> None:
        try:
            root_stat = await self.fs.stat(root)
        except OSError as e:
            raise SourceNotFound(f"Cannot access source folder {root}: {e}") from e
        if not root_stat.exists:
            raise SourceNotFound(f"Source folder not found: {root}")
        if not root_stat.is_directory:
            raise SourceNotFound(f"Source path is not a directory: {root}")

    def _duplicate_warning(self, source: str, internal_path: str) -> str:
        message = f"{source} maps to archive path {internal_path!r} which is already taken"
        logger.warning("%s; skipping", message)
        return message

    async def _read_entry(self, path: str) -> bytes:
        try:
            return await self.fs.read_file(path)
        except OSError as e:
            raise ReadError(path, str(e)) from e

    async def _finalize(
        self,
        container,
        output_path: str,
        processed: int,
        skipped: int,
        warnings: List[str],
        progress: ProgressSink,
    ) -> ArchiveOperationResult:
        self._check_cancelled(progress)
        progress.report("Finalizing...", FINALIZE_SHARE)

        data = await asyncio.to_thread(container.serialize)
        try:
            await self.fs.write_file(output_path, data)
        except OSError as e:
            raise WriteError(f"Failed to write {output_path}: {e}") from e

        if skipped > 0:
            logger.info("Skipped %d entries", skipped)
        logger.success(
            "Created %s (%s, %d entries)",
            output_path,
            pretty_bytes(len(data)),
            processed,
        )

        return ArchiveOperationResult(
            output_path=output_path,
            bytes_written=len(data),
            entries_processed=processed,
            entries_skipped=skipped,
            warnings=warnings,
        )

    async def build(
        self,
        root: str,
        naming_policy: Optional[NamingPolicy] = None,
        git_mode: GitMode = GitMode.INCLUDE_ALL,
        output_location: Optional[OutputLocation] = None,
        progress: Optional[ProgressSink] = None,
    ) -> ArchiveOperationResult:
        """
        Package the folder ``root`` into one archive.

        Raises:
            InvalidDestination: If the output path cannot be made valid
            SourceNotFound: If ``root`` is not an existing directory
            Cancelled: If ``progress`` requested cancellation
            WriteError: If the finished archive could not be written
        """
        naming_policy = naming_policy or NamingPolicy.with_folder()
        output_location = output_location or OutputLocation.parent_dir()
        progress = progress or NullProgress()

        root = os.path.abspath(os.path.normpath(root))
        root_folder_name = last_path_component(root)
        output_path = self.path_generator.resolve(root, output_location, self.extension)

        await self._require_directory(root)
        self._check_cancelled(progress)
        progress.report(f"Preparing to create {os.path.basename(output_path)}")
        await self.path_generator.prepare_parent(self.fs, output_path)

        exclusions = await ExclusionFilter.load(root, git_mode, self.fs)
        entries = await self.enumerator.enumerate(root)
        progress.report("Creating archive...", PREPARE_SHARE)

        container = ContainerFactory.create(
            self.compression_format, self.compression_level
        )
        processed = 0
        skipped = 0
        warnings: List[str] = []
        step = ENTRIES_SHARE / len(entries) if entries else 0.0

        for entry in entries:
            self._check_cancelled(progress)

            if self._skip_entry(entry, exclusions, output_path):
                skipped += 1
                progress.report(f"Skipping {entry.relative_path}", step)
                continue

            internal_path = map_path(entry.relative_path, naming_policy, root_folder_name)
            data = None
            if not entry.is_directory:
                try:
                    data = await self._read_entry(entry.absolute_path)
                except ReadError as e:
                    logger.warning("%s", e)
                    warnings.append(str(e))
                    skipped += 1
                    progress.report(f"Skipping {entry.relative_path}", step)
                    continue

            if not container.add_entry(internal_path, data):
                warnings.append(
                    self._duplicate_warning(entry.relative_path, internal_path)
                )
                skipped += 1
                progress.report(f"Skipping {entry.relative_path}", step)
                continue

            processed += 1
            logger.trace("Added %s as %s", entry.relative_path, internal_path)
            progress.report(
                f"Adding files ({processed}/{len(entries) - skipped})", step
            )

        if not entries:
            progress.report("No entries to add", ENTRIES_SHARE)

        return await self._finalize(
            container, output_path, processed, skipped, warnings, progress
        )

    def _skip_entry(
        self, entry: Entry, exclusions: ExclusionFilter, output_path: str
    ) -> bool:
        if os.path.normpath(entry.absolute_path) == output_path:
            logger.debug("Not archiving the destination itself: %s", output_path)
            return True
        if exclusions.excluded(entry.relative_path, entry.is_directory):
            logger.trace("Excluded by Git rules: %s", entry.relative_path)
            return True
        return False

    def _resolve_files_output(self, first_file: str, output_path: Optional[str]) -> str:
        first_dir = safe_path_dirname(first_file)
        if not output_path:
            stem, _ = os.path.splitext(os.path.basename(first_file))
            return self.path_generator.validate(
                os.path.join(first_dir, f"{stem}{self.extension}")
            )

        candidate = self.path_generator.ensure_extension(output_path, self.extension)
        bare_name = not os.path.isabs(candidate) and "/" not in candidate.replace(
            "\\", "/"
        )
        if bare_name:
            candidate = os.path.join(first_dir, candidate)
        return self.path_generator.validate(candidate)

    async def build_from_files(
        self,
        files: Sequence[str],
        output_path: Optional[str] = None,
        exclude_git: bool = False,
        progress: Optional[ProgressSink] = None,
    ) -> ArchiveOperationResult:
        """
        Package an explicit list of files into one archive.

        A single file is stored at the archive root; several files go under a
        common folder named after the output file. With ``exclude_git`` the
        ``.git`` directory, ``.gitignore`` and files its rules ignore (relative
        to the first file's folder) are left out.
        """
        progress = progress or NullProgress()
        files = [os.path.abspath(os.path.normpath(f)) for f in files or []]
        if not files:
            raise SourceNotFound("No files to zip")

        output_path = self._resolve_files_output(files[0], output_path)
        self._check_cancelled(progress)
        progress.report(f"Preparing to create {os.path.basename(output_path)}")
        await self.path_generator.prepare_parent(self.fs, output_path)

        base_folder = safe_path_dirname(files[0])
        if exclude_git:
            exclusions = await ExclusionFilter.load(
                base_folder, GitMode.EXCLUDE_GIT, self.fs
            )
        else:
            exclusions = ExclusionFilter(GitMode.INCLUDE_ALL)
        progress.report("Creating archive...", PREPARE_SHARE)

        common_folder = ""
        if len(files) > 1:
            common_folder = os.path.basename(output_path)[: -len(self.extension)]

        container = ContainerFactory.create(
            self.compression_format, self.compression_level
        )
        processed = 0
        skipped = 0
        warnings: List[str] = []
        step = ENTRIES_SHARE / len(files)

        for file_path in files:
            self._check_cancelled(progress)

            relative_path = to_relative_posix(file_path, base_folder)
            if exclusions.excluded(relative_path):
                skipped += 1
                progress.report(f"Skipping {relative_path}", step)
                continue

            try:
                data = await self._read_entry(file_path)
            except ReadError as e:
                logger.warning("%s", e)
                warnings.append(str(e))
                skipped += 1
                progress.report(f"Skipping {relative_path}", step)
                continue

            file_name = os.path.basename(file_path)
            internal_path = f"{common_folder}/{file_name}" if common_folder else file_name
            if not container.add_entry(internal_path, data):
                warnings.append(self._duplicate_warning(relative_path, internal_path))
                skipped += 1
                progress.report(f"Skipping {relative_path}", step)
                continue
            processed += 1
            progress.report(f"Adding files ({processed}/{len(files)})", step)

        return await self._finalize(
            container, output_path, processed, skipped, warnings, progress
        )


def create_archive_with_progress(
    source_directory: str,
    naming_policy: Optional[NamingPolicy] = None,
    git_mode: GitMode = GitMode.INCLUDE_ALL,
    output_location: Optional[OutputLocation] = None,
    compression_format: str = "zip",
    compression_level: Optional[int] = None,
    progress: Optional[ProgressSink] = None,
) -> ArchiveOperationResult:
    """
    Convenience wrapper running ``ArchiveBuilder.build`` to completion.

    Progress is logged at PROGRESS level unless another sink is supplied.
    """
    builder = ArchiveBuilder(
        compression_format=compression_format, compression_level=compression_level
    )
    return asyncio.run(
        builder.build(
            source_directory,
            naming_policy=naming_policy,
            git_mode=git_mode,
            output_location=output_location,
            progress=progress or ProgressReporter(),
        )
    )
