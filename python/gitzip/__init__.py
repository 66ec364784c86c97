from .errors import (
    GitZipError,
    BuildError,
    InvalidDestination,
    Cancelled,
    WriteError,
    SourceNotFound,
    ReadError,
    RuleFileUnreadable,
    ExtractError,
    CompressionError,
)
from .paths import pretty_bytes, safe_path_dirname, sanitize_internal_path
from .filesystem import FileStat, FileSystem, LocalFileSystem
from .progress import CancellationToken, NullProgress, ProgressReporter, ProgressSink

# Ignore rules, enumeration and path mapping
from .ignore_rules import IgnoreMatcher, IgnoreRuleEngine
from .enumerator import DirectoryEnumerator, Entry
from .naming import NamingMode, NamingPolicy, map_path
from .destination import ArchivePathGenerator, OutputLocation, OutputMode

# Containers and compressors
from .containers import ContainerFactory, ZipContainer, TarZstdContainer, load_container
from .compressors import GzipCompressor, ZstdCompressor, create_compressor

# Operations
from .archive_builder import (
    ArchiveBuilder,
    ArchiveOperationResult,
    GitFiles,
    GitMode,
    check_git_files,
    create_archive_with_progress,
)
from .archive_extractor import ArchiveExtractor, ExtractLayout, ExtractResult
from .archive_verifier import ArchiveVerifier, ZipArchiveVerifier, ZstdArchiveVerifier
from .file_compression import CompressionResult, compress_file, decompress_file

__all__ = [
    # Errors
    "GitZipError",
    "BuildError",
    "InvalidDestination",
    "Cancelled",
    "WriteError",
    "SourceNotFound",
    "ReadError",
    "RuleFileUnreadable",
    "ExtractError",
    "CompressionError",
    # Paths and capabilities
    "pretty_bytes",
    "safe_path_dirname",
    "sanitize_internal_path",
    "FileStat",
    "FileSystem",
    "LocalFileSystem",
    "CancellationToken",
    "NullProgress",
    "ProgressReporter",
    "ProgressSink",
    # Rules, enumeration, naming
    "IgnoreMatcher",
    "IgnoreRuleEngine",
    "DirectoryEnumerator",
    "Entry",
    "NamingMode",
    "NamingPolicy",
    "map_path",
    "ArchivePathGenerator",
    "OutputLocation",
    "OutputMode",
    # Containers and compressors
    "ContainerFactory",
    "ZipContainer",
    "TarZstdContainer",
    "load_container",
    "GzipCompressor",
    "ZstdCompressor",
    "create_compressor",
    # Operations
    "ArchiveBuilder",
    "ArchiveOperationResult",
    "GitFiles",
    "GitMode",
    "check_git_files",
    "create_archive_with_progress",
    "ArchiveExtractor",
    "ExtractLayout",
    "ExtractResult",
    "ArchiveVerifier",
    "ZipArchiveVerifier",
    "ZstdArchiveVerifier",
    "CompressionResult",
    "compress_file",
    "decompress_file",
]
