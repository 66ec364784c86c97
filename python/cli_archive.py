#!/usr/bin/env python3
"""
GitZip Archive CLI Tool

A command-line interface for packaging folders into ZIP or TAR+ZSTD archives
with Git-aware exclusion rules, and for extracting, inspecting and
single-file compressing.

Usage:
    python3 cli_archive.py zip /path/to/project --git-mode exclude_git
    python3 cli_archive.py zip /path/to/project --naming custom --name release
    python3 cli_archive.py extract /path/to/archive.zip --here
    python3 cli_archive.py gzip notes.txt
    python3 cli_archive.py info /path/to/archive.zip
    python3 cli_archive.py verify /path/to/archive.tar.zst
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
import threading
from typing import Optional

from colored_logger import setup_colored_logging, get_colored_logger
from gitzip import (
    ArchiveBuilder,
    ArchiveExtractor,
    ArchiveVerifier,
    CancellationToken,
    Cancelled,
    ContainerFactory,
    ExtractLayout,
    GitMode,
    GitZipError,
    NamingPolicy,
    OutputLocation,
    ProgressReporter,
    check_git_files,
    compress_file,
    decompress_file,
    pretty_bytes,
)
from settings import Settings

logger = get_colored_logger(__name__)


class ArchiveCLI:
    """Command-line interface for Git-aware archiving."""

    def __init__(self, token: Optional[CancellationToken] = None):
        self.parser = self._create_parser()
        self.token = token or CancellationToken()
        self.settings: Optional[Settings] = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the argument parser with all commands and options."""
        parser = argparse.ArgumentParser(
            description="Zip folders while honoring .gitignore, and unzip them again",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Zip a repository next to itself, leaving out .git and ignored files
  python3 cli_archive.py zip ./my-project --git-mode exclude_git

  # Zip only the folder's content into a custom file
  python3 cli_archive.py zip ./my-project --naming only --output custom --path /backups/p.zip

  # Zip a handful of files
  python3 cli_archive.py zip-files a.txt b.txt --output-file bundle

  # Extract next to the archive, or straight into the current folder
  python3 cli_archive.py extract bundle.zip
  python3 cli_archive.py extract bundle.zip . --here

  # Compress one file with gzip, then restore it
  python3 cli_archive.py gzip notes.txt
  python3 cli_archive.py gunzip notes.txt.gz
            """,
        )
        parser.add_argument(
            "--settings",
            default="gitzip.json",
            help="Settings file (default: gitzip.json)",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        # Zip command
        zip_parser = subparsers.add_parser("zip", help="Create an archive of a folder")
        zip_parser.add_argument("folder", help="Folder to archive")
        zip_parser.add_argument(
            "--naming",
            choices=["only", "with", "custom"],
            help="Archive layout: folder content only, wrapped in the folder, or a custom top folder",
        )
        zip_parser.add_argument("--name", default="", help="Top folder name for --naming custom")
        zip_parser.add_argument(
            "--output",
            "-o",
            choices=["current", "parent", "custom"],
            help="Where to write the archive",
        )
        zip_parser.add_argument("--path", default="", help="Archive path for --output custom")
        zip_parser.add_argument(
            "--git-mode",
            choices=[mode.value for mode in GitMode],
            help="How .git, .gitignore and ignored files are handled",
        )
        self._add_format_arguments(zip_parser)
        zip_parser.add_argument(
            "--quiet", "-q", action="store_true", help="Suppress progress output"
        )

        # Zip-files command
        files_parser = subparsers.add_parser(
            "zip-files", help="Create an archive from a list of files"
        )
        files_parser.add_argument("files", nargs="+", help="Files to archive")
        files_parser.add_argument(
            "--output-file", help="Archive name or path (default: <first file>.zip)"
        )
        files_parser.add_argument(
            "--exclude-git",
            action="store_true",
            help="Leave out .git, .gitignore and files it ignores",
        )
        self._add_format_arguments(files_parser)

        # Extract command
        extract_parser = subparsers.add_parser("extract", help="Extract an archive")
        extract_parser.add_argument("archive_path", help="Path to the archive file")
        extract_parser.add_argument(
            "destination", nargs="?", help="Destination folder (default: next to the archive)"
        )
        extract_parser.add_argument(
            "--here",
            action="store_true",
            help="Extract directly into the destination instead of a subfolder",
        )
        extract_parser.add_argument(
            "--select",
            action="append",
            metavar="NAME",
            help="Extract only this entry (repeatable)",
        )

        # Gzip command
        gzip_parser = subparsers.add_parser("gzip", help="Compress single files")
        gzip_parser.add_argument("files", nargs="+", help="Files to compress")
        gzip_parser.add_argument(
            "--format", "-f", choices=["gzip", "zstd"], default="gzip", help="Compressor"
        )
        gzip_parser.add_argument("--level", "-l", type=int, help="Compression level")
        gzip_parser.add_argument("--output", "-o", help="Output path (single file only)")
        gzip_parser.add_argument(
            "--delete-original",
            action="store_true",
            help="Delete each source file after it was compressed",
        )

        # Gunzip command
        gunzip_parser = subparsers.add_parser(
            "gunzip", help="Decompress a gzip or zstd file"
        )
        gunzip_parser.add_argument("file", help="Compressed file")
        gunzip_parser.add_argument("--output", "-o", help="Output path")

        # Info command
        info_parser = subparsers.add_parser(
            "info", help="Display information about an existing archive"
        )
        info_parser.add_argument("archive_path", help="Path to the archive file")
        info_parser.add_argument(
            "--detailed", action="store_true", help="Show detailed file listing"
        )

        # List command
        list_parser = subparsers.add_parser("list", help="List archive entries")
        list_parser.add_argument("archive_path", help="Path to the archive file")

        # Verify command
        verify_parser = subparsers.add_parser("verify", help="Verify archive integrity")
        verify_parser.add_argument(
            "archive_path", help="Path to the archive file to verify"
        )

        return parser

    @staticmethod
    def _add_format_arguments(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--format",
            "-f",
            choices=["zip", "zstd"],
            help="Archive format (default from settings)",
        )
        parser.add_argument(
            "--level",
            "-l",
            type=int,
            help="Compression level (zstd: 1-22, zip: 0-9, default: optimal for format)",
        )

    def run(self, args: Optional[list] = None) -> int:
        """Run the CLI with the given arguments."""
        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        handlers = {
            "zip": self._handle_zip,
            "zip-files": self._handle_zip_files,
            "extract": self._handle_extract,
            "gzip": self._handle_gzip,
            "gunzip": self._handle_gunzip,
            "info": self._handle_info,
            "list": self._handle_list,
            "verify": self._handle_verify,
        }

        try:
            self.settings = Settings(parsed_args.settings)
            return handlers[parsed_args.command](parsed_args)
        except (Cancelled, KeyboardInterrupt):
            logger.info("Operation cancelled by user")
            return 130
        except GitZipError as e:
            logger.error("Error: %s", e)
            logger.debug("Full error details:", exc_info=True)
            return 1
        except (ValueError, ImportError, OSError) as e:
            logger.error("Error: %s", e)
            logger.debug("Full error details:", exc_info=True)
            return 1

    def _progress(self, quiet: bool = False) -> ProgressReporter:
        if quiet:
            return ProgressReporter(callback=lambda message, percent: None, token=self.token)
        return ProgressReporter(token=self.token)

    def _builder(self, args) -> ArchiveBuilder:
        compression_format = args.format or self.settings.compression_format
        level = args.level if args.level is not None else self.settings.compression_level
        if compression_format not in ContainerFactory.get_supported_formats():
            logger.info("Install ZSTD support with: pip3 install zstandard")
        return ArchiveBuilder(
            compression_format=compression_format, compression_level=level
        )

    def _resolve_git_mode(self, folder: str, requested: Optional[str]) -> GitMode:
        if requested:
            return GitMode(requested)

        git_files = asyncio.run(check_git_files(folder))
        if not (git_files.has_git or git_files.has_gitignore):
            return GitMode.INCLUDE_ALL

        mode = GitMode(self.settings.default_git_mode)
        logger.info(
            "Git files detected in %s, using git mode '%s' (override with --git-mode)",
            folder,
            mode.value,
        )
        return mode

    def _handle_zip(self, args) -> int:
        """Handle the 'zip' command."""
        folder = os.path.abspath(args.folder)
        if not os.path.isdir(folder):
            logger.error("Source directory does not exist: %s", folder)
            return 1

        naming = NamingPolicy.from_string(
            args.naming or self.settings.default_naming, args.name
        )
        location = OutputLocation.from_string(
            args.output or self.settings.default_output, args.path
        )
        git_mode = self._resolve_git_mode(folder, args.git_mode)

        result = asyncio.run(
            self._builder(args).build(
                folder,
                naming_policy=naming,
                git_mode=git_mode,
                output_location=location,
                progress=self._progress(args.quiet),
            )
        )
        for warning in result.warnings:
            logger.debug("Skipped: %s", warning)
        return 0

    def _handle_zip_files(self, args) -> int:
        """Handle the 'zip-files' command."""
        asyncio.run(
            self._builder(args).build_from_files(
                args.files,
                output_path=args.output_file,
                exclude_git=args.exclude_git,
                progress=self._progress(),
            )
        )
        return 0

    def _handle_extract(self, args) -> int:
        """Handle the 'extract' command."""
        archive_path = os.path.abspath(args.archive_path)
        if not os.path.isfile(archive_path):
            logger.error("Archive file does not exist: %s", archive_path)
            return 1

        destination = args.destination or os.path.dirname(archive_path)
        layout = ExtractLayout.FLAT if args.here else ExtractLayout.WITH_SUBFOLDER
        extractor = ArchiveExtractor(subfolder_suffix=self.settings.unzipped_suffix)

        result = asyncio.run(
            extractor.extract(
                archive_path,
                destination,
                layout=layout,
                selection=args.select,
                progress=self._progress(),
            )
        )
        for name in result.missing:
            logger.warning("Not in archive: %s", name)
        return 0 if result.ok else 1

    def _handle_gzip(self, args) -> int:
        """Handle the 'gzip' command."""
        if args.output and len(args.files) > 1:
            logger.error("--output can only be used with a single file")
            return 1

        logger.info("Compressing %d file(s)", len(args.files))
        delete_original = (
            args.delete_original or self.settings.delete_old_file_when_gzipping
        )
        for file_path in args.files:
            asyncio.run(
                compress_file(
                    file_path,
                    output_path=args.output,
                    compressor=args.format,
                    compression_level=args.level,
                    delete_original=delete_original,
                    extension_map=self.settings.gzip_extension_map,
                    legacy_naming=self.settings.use_legacy_gzip_naming_convention,
                    progress=self._progress(),
                )
            )
        return 0

    def _handle_gunzip(self, args) -> int:
        """Handle the 'gunzip' command."""
        asyncio.run(
            decompress_file(
                args.file,
                output_path=args.output,
                extension_map=self.settings.gzip_extension_map,
                unzipped_suffix=self.settings.unzipped_suffix,
                progress=self._progress(),
            )
        )
        return 0

    def _handle_info(self, args) -> int:
        """Handle the 'info' command."""
        if not os.path.isfile(args.archive_path):
            logger.error("Archive file does not exist: %s", args.archive_path)
            return 1

        verifier = ArchiveVerifier()
        info = verifier.get_archive_info(args.archive_path)

        logger.info("Archive: %s", info["path"])
        logger.info("Size: %s (%d bytes)", info["size"], info["size_bytes"])
        logger.info("Modified: %s", info["modified_time"])
        logger.info("Format: %s", info["format"].upper())
        if info["format"] == "unknown":
            logger.warning("Unknown archive format")
            return 1

        logger.info("Entries: %d", info["entry_count"])
        logger.info("Files: %d", info["file_count"])
        logger.info("Directories: %d", info["directory_count"])
        logger.info("Compressed size: %s", pretty_bytes(info["compressed_size"]))
        logger.info("Uncompressed size: %s", pretty_bytes(info["uncompressed_size"]))
        logger.info("Compression ratio: %.1f%%", info["compression_ratio"])
        logger.info("Valid: %s", "Yes" if info["valid"] else "No")

        if args.detailed:
            logger.info("")
            logger.info("File listing:")
            self._log_entries(verifier, args.archive_path)
        return 0

    def _handle_list(self, args) -> int:
        """Handle the 'list' command."""
        self._log_entries(ArchiveVerifier(), args.archive_path)
        return 0

    def _log_entries(self, verifier: ArchiveVerifier, archive_path: str) -> None:
        entries = verifier.list_entries(archive_path)
        for entry in sorted(entries, key=lambda e: e["name"]):
            if entry["is_directory"]:
                logger.info("  %s/", entry["name"])
            else:
                logger.info("  %s (%s)", entry["name"], pretty_bytes(entry["size"]))

    def _handle_verify(self, args) -> int:
        """Handle the 'verify' command."""
        if not os.path.isfile(args.archive_path):
            logger.error("Archive file does not exist: %s", args.archive_path)
            return 1

        logger.info("Verifying archive integrity: %s", args.archive_path)
        if ArchiveVerifier().verify_integrity(args.archive_path):
            logger.success("Archive integrity check passed")
            return 0
        logger.error("Archive integrity check failed")
        return 1


def _install_interrupt_handler(token: CancellationToken) -> None:
    """First Ctrl+C requests a cooperative cancel, the second one aborts."""
    if threading.current_thread() is not threading.main_thread():
        return

    def handle_interrupt(signum, frame):
        if token.is_cancellation_requested:
            raise KeyboardInterrupt
        logger.warning("Cancelling... press Ctrl+C again to abort immediately")
        token.cancel()

    signal.signal(signal.SIGINT, handle_interrupt)


def main():
    """Main entry point for the CLI."""
    setup_colored_logging(level=logging.INFO)

    token = CancellationToken()
    _install_interrupt_handler(token)
    cli = ArchiveCLI(token)
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
