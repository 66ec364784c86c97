"""
Byte-stream compressors for the single-file compression path.

These compress one blob at a time and are unrelated to the archive
containers: gzip comes from the standard library, Zstandard from the
``zstandard`` package.
"""

import gzip
import zlib
from typing import Dict, List, Optional, Protocol

from .errors import CompressionError

try:
    import zstandard as zstd

    ZSTD_AVAILABLE = True
except ImportError:
    ZSTD_AVAILABLE = False

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


class ByteCompressor(Protocol):
    name: str
    extension: str

    def compress(self, data: bytes) -> bytes: ...

    def decompress(self, data: bytes) -> bytes: ...


class GzipCompressor:
    name = "gzip"
    extension = "gz"

    def __init__(self, compression_level: int = 9):
        self.compression_level = compression_level

    def compress(self, data: bytes) -> bytes:
        return gzip.compress(data, compresslevel=self.compression_level)

    def decompress(self, data: bytes) -> bytes:
        try:
            return gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise CompressionError(f"Invalid gzip data: {e}") from e


class ZstdCompressor:
    name = "zstd"
    extension = "zst"

    def __init__(self, compression_level: int = 3):
        if not ZSTD_AVAILABLE:
            raise ImportError(
                "ZSTD library not available. Install with: pip install zstandard"
            )
        self.compression_level = compression_level

    def compress(self, data: bytes) -> bytes:
        cctx = zstd.ZstdCompressor(
            level=self.compression_level,
            write_content_size=True,
            write_checksum=True,
        )
        return cctx.compress(data)

    def decompress(self, data: bytes) -> bytes:
        dctx = zstd.ZstdDecompressor()
        try:
            return dctx.decompress(data)
        except zstd.ZstdError:
            pass
        # Frames written without a content size need the streaming reader
        try:
            with dctx.stream_reader(data) as reader:
                return reader.read()
        except zstd.ZstdError as e:
            raise CompressionError(f"Invalid zstd data: {e}") from e


def create_compressor(name: str, compression_level: Optional[int] = None) -> ByteCompressor:
    """Return the compressor registered under ``name`` (``gzip`` or ``zstd``)."""
    if name == "gzip":
        return GzipCompressor(9 if compression_level is None else compression_level)
    if name == "zstd":
        if not ZSTD_AVAILABLE:
            raise CompressionError(
                "ZSTD library not available. Install with: pip install zstandard"
            )
        return ZstdCompressor(3 if compression_level is None else compression_level)
    raise CompressionError(f"Unsupported compressor: {name}")


def detect_compressor(data: bytes) -> Optional[str]:
    """Name of the compressor that produced ``data``, judged by magic bytes."""
    if data.startswith(GZIP_MAGIC):
        return "gzip"
    if data.startswith(ZSTD_MAGIC):
        return "zstd"
    return None


DEFAULT_EXTENSION_MAP: List[Dict[str, str]] = [
    {"inflated": "tar", "compressed": "tgz"},
    {"inflated": "svg", "compressed": "svgz"},
    {"inflated": "wmf", "compressed": "wmz"},
    {"inflated": "emf", "compressed": "emz"},
]
