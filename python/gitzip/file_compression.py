"""
Single-file compression and decompression.

One input file becomes one compressed file (or the reverse) through a
byte-stream compressor. Output names follow the extension map: ``a.tar`` with
the default map becomes ``a.tar.tgz``, ``notes.txt`` becomes ``notes.txt.gz``.
With the legacy naming convention the final extension is replaced instead
(``a.tar`` -> ``a.tgz``).
"""

import asyncio
import os
from dataclasses import dataclass
from typing import Dict, List, Optional

from colored_logger import get_colored_logger
from .compressors import (
    DEFAULT_EXTENSION_MAP,
    ByteCompressor,
    create_compressor,
    detect_compressor,
)
from .errors import Cancelled, CompressionError
from .filesystem import FileSystem, LocalFileSystem
from .paths import pretty_bytes, safe_path_dirname
from .progress import NullProgress, ProgressSink

logger = get_colored_logger(__name__)

READ_SHARE = 30.0
COMPRESS_SHARE = 30.0
WRITE_SHARE = 30.0
FINALIZE_SHARE = 10.0


@dataclass
class CompressionResult:
    source_path: str
    output_path: str
    input_size: int
    output_size: int
    source_deleted: bool = False

    @property
    def ratio(self) -> float:
        if self.input_size == 0:
            return 0.0
        return (1 - self.output_size / self.input_size) * 100


def compressed_extension(
    file_name: str,
    compressor: ByteCompressor,
    extension_map: Optional[List[Dict[str, str]]] = None,
) -> str:
    """Extension (without dot) for the compressed form of ``file_name``."""
    if compressor.name != "gzip":
        return compressor.extension

    if extension_map is None:
        extension_map = DEFAULT_EXTENSION_MAP
    ext = file_name.rsplit(".", 1)[-1] if "." in file_name else ""
    for mapping in extension_map:
        if mapping.get("inflated") == ext:
            return mapping.get("compressed") or compressor.extension
    return compressor.extension


def default_compressed_name(
    file_name: str,
    compressor: ByteCompressor,
    extension_map: Optional[List[Dict[str, str]]] = None,
    legacy_naming: bool = False,
) -> str:
    new_ext = compressed_extension(file_name, compressor, extension_map)
    if legacy_naming and "." in file_name.lstrip("."):
        stem = file_name.rsplit(".", 1)[0]
        return f"{stem}.{new_ext}"
    return f"{file_name}.{new_ext}"


def default_decompressed_name(
    file_name: str,
    extension_map: Optional[List[Dict[str, str]]] = None,
    unzipped_suffix: str = "_unzipped",
) -> str:
    """
    Name for the decompressed form of ``file_name``.

    ``.gz`` / ``.zst`` are stripped, a mapped compressed extension is turned
    back into its inflated one, anything else gets ``unzipped_suffix``.
    """
    if extension_map is None:
        extension_map = DEFAULT_EXTENSION_MAP

    lower = file_name.lower()
    for suffix in (".gz", ".zst"):
        if lower.endswith(suffix) and len(file_name) > len(suffix):
            return file_name[: -len(suffix)]

    if "." in file_name.lstrip("."):
        stem, ext = file_name.rsplit(".", 1)
        for mapping in extension_map:
            if mapping.get("compressed") == ext and mapping.get("inflated"):
                return f"{stem}.{mapping['inflated']}"
        return f"{stem}{unzipped_suffix}.{ext}"
    return f"{file_name}{unzipped_suffix}"


def resolve_output(source_path: str, output: Optional[str], default_name: str) -> str:
    """
    Place ``output`` (or ``default_name``) for ``source_path``.

    A bare file name lands next to the source; anything with a separator is
    used as given.
    """
    candidate = output or default_name
    if os.path.isabs(candidate) or "/" in candidate or "\\" in candidate:
        return os.path.abspath(os.path.normpath(candidate))
    return os.path.join(safe_path_dirname(source_path), candidate)


async def _unique_path(fs: FileSystem, path: str) -> str:
    # Append underscores until the name is free
    while (await fs.stat(path)).exists:
        path += "_"
    return path


def _check_cancelled(progress: ProgressSink) -> None:
    if progress.is_cancellation_requested:
        raise Cancelled("Compression cancelled")


async def compress_file(
    source_path: str,
    output_path: Optional[str] = None,
    compressor: str = "gzip",
    compression_level: Optional[int] = None,
    delete_original: bool = False,
    extension_map: Optional[List[Dict[str, str]]] = None,
    legacy_naming: bool = False,
    fs: Optional[FileSystem] = None,
    progress: Optional[ProgressSink] = None,
) -> CompressionResult:
    """
    Compress one file.

    The compressed extension is appended to ``output_path`` when missing.
    The original is deleted only after the output was written.

    Raises:
        CompressionError: If the source cannot be read or the output written
        Cancelled: If ``progress`` requested cancellation
    """
    fs = fs or LocalFileSystem()
    progress = progress or NullProgress()
    byte_compressor = create_compressor(compressor, compression_level)

    source_path = os.path.abspath(os.path.normpath(source_path))
    file_name = os.path.basename(source_path)
    new_ext = compressed_extension(file_name, byte_compressor, extension_map)
    if output_path and not output_path.lower().endswith(f".{new_ext}"):
        output_path = f"{output_path}.{new_ext}"
    target = resolve_output(
        source_path,
        output_path,
        default_compressed_name(file_name, byte_compressor, extension_map, legacy_naming),
    )
    if target == source_path:
        raise CompressionError(f"Output would overwrite the source: {source_path}")

    _check_cancelled(progress)
    progress.report(f"Reading {file_name}...", READ_SHARE)
    try:
        data = await fs.read_file(source_path)
    except OSError as e:
        raise CompressionError(f"Cannot read {source_path}: {e}") from e

    _check_cancelled(progress)
    progress.report("Compressing...", COMPRESS_SHARE)
    compressed = await asyncio.to_thread(byte_compressor.compress, data)

    _check_cancelled(progress)
    progress.report("Saving file...", WRITE_SHARE)
    try:
        await fs.create_directory(os.path.dirname(target))
        await fs.write_file(target, compressed)
    except OSError as e:
        raise CompressionError(f"Failed to write {target}: {e}") from e

    deleted = False
    if delete_original:
        try:
            await fs.delete(source_path)
            deleted = True
        except OSError as e:
            logger.warning("Could not delete original %s: %s", source_path, e)

    progress.report("Done", FINALIZE_SHARE)
    logger.success(
        "Compressed %s -> %s (%s -> %s)",
        file_name,
        os.path.basename(target),
        pretty_bytes(len(data)),
        pretty_bytes(len(compressed)),
    )
    return CompressionResult(source_path, target, len(data), len(compressed), deleted)


async def decompress_file(
    source_path: str,
    output_path: Optional[str] = None,
    extension_map: Optional[List[Dict[str, str]]] = None,
    unzipped_suffix: str = "_unzipped",
    fs: Optional[FileSystem] = None,
    progress: Optional[ProgressSink] = None,
) -> CompressionResult:
    """
    Decompress one gzip or zstd file, detecting the format from its header.

    Without ``output_path`` the name is derived from the source and made
    unique so an existing file is never overwritten.

    Raises:
        CompressionError: If the file is unreadable or not a known stream
        Cancelled: If ``progress`` requested cancellation
    """
    fs = fs or LocalFileSystem()
    progress = progress or NullProgress()

    source_path = os.path.abspath(os.path.normpath(source_path))
    file_name = os.path.basename(source_path)

    _check_cancelled(progress)
    progress.report(f"Reading {file_name}...", READ_SHARE)
    try:
        data = await fs.read_file(source_path)
    except OSError as e:
        raise CompressionError(f"Cannot read {source_path}: {e}") from e

    compressor_name = detect_compressor(data)
    if compressor_name is None:
        raise CompressionError(f"Not a gzip or zstd file: {source_path}")

    _check_cancelled(progress)
    progress.report("Decompressing...", COMPRESS_SHARE)
    byte_compressor = create_compressor(compressor_name)
    inflated = await asyncio.to_thread(byte_compressor.decompress, data)

    if output_path:
        target = resolve_output(source_path, output_path, output_path)
    else:
        target = resolve_output(
            source_path,
            None,
            default_decompressed_name(file_name, extension_map, unzipped_suffix),
        )
        target = await _unique_path(fs, target)

    _check_cancelled(progress)
    progress.report("Saving file...", WRITE_SHARE)
    try:
        await fs.create_directory(os.path.dirname(target))
        await fs.write_file(target, inflated)
    except OSError as e:
        raise CompressionError(f"Failed to write {target}: {e}") from e

    progress.report("Done", FINALIZE_SHARE)
    logger.success(
        "Decompressed %s -> %s (%s)",
        file_name,
        os.path.basename(target),
        pretty_bytes(len(inflated)),
    )
    return CompressionResult(source_path, target, len(data), len(inflated))
