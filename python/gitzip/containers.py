"""
In-memory archive containers.

A container collects named entries (``None`` data marks a directory) and
serializes them to bytes in one step, so the builder can defer the single
destination write until every entry has been processed. ``load_container``
reverses the process for the extractor and the verifier.
"""

import io
import tarfile
import time
import zipfile
from typing import Dict, List, Optional, Protocol

from colored_logger import get_colored_logger
from .paths import sanitize_internal_path

logger = get_colored_logger(__name__)

try:
    import zstandard as zstd

    ZSTD_AVAILABLE = True
except ImportError:
    ZSTD_AVAILABLE = False

ZIP_MAGIC = (b"PK\x03\x04", b"PK\x05\x06")
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"

FORMAT_EXTENSIONS = {"zip": ".zip", "zstd": ".tar.zst"}
DEFAULT_COMPRESSION_LEVEL = {"zip": 6, "zstd": 3}

_DIR_MODE = 0o755
_FILE_MODE = 0o644


class ArchiveContainer(Protocol):
    """Write side of the archive container capability."""

    extension: str

    def add_entry(self, internal_path: str, data: Optional[bytes]) -> bool:
        """Add one entry; False when the sanitized name is empty or already taken."""
        ...

    def serialize(self) -> bytes: ...


class ArchiveEntryHandle(Protocol):
    """Read side of one archive entry."""

    name: str
    is_directory: bool
    size: int

    def read_bytes(self) -> bytes: ...


class ZipContainer:
    """Deflate-compressed ZIP container built in a memory buffer."""

    extension = FORMAT_EXTENSIONS["zip"]

    def __init__(self, compression_level: int = 6):
        self.compression_level = compression_level
        self._buffer = io.BytesIO()
        self._zipf = zipfile.ZipFile(
            self._buffer,
            "w",
            zipfile.ZIP_DEFLATED,
            compresslevel=compression_level,
            allowZip64=True,
        )
        self._names = set()
        self._serialized: Optional[bytes] = None

    @property
    def entry_count(self) -> int:
        return len(self._names)

    def add_entry(self, internal_path: str, data: Optional[bytes]) -> bool:
        if self._serialized is not None:
            raise RuntimeError("Container already serialized")

        name = sanitize_internal_path(internal_path)
        if not name:
            return False
        is_directory = data is None
        if is_directory:
            name += "/"

        if name in self._names:
            return False
        self._names.add(name)

        info = zipfile.ZipInfo(name, date_time=time.localtime()[:6])
        if is_directory:
            info.external_attr = (0o40000 | _DIR_MODE) << 16 | 0x10
            info.compress_type = zipfile.ZIP_STORED
            self._zipf.writestr(info, b"")
        else:
            info.external_attr = (0o100000 | _FILE_MODE) << 16
            info.compress_type = zipfile.ZIP_DEFLATED
            self._zipf.writestr(info, data, compresslevel=self.compression_level)
        return True

    def serialize(self) -> bytes:
        if self._serialized is None:
            self._zipf.close()
            self._serialized = self._buffer.getvalue()
        return self._serialized


class TarZstdContainer:
    """TAR stream compressed with Zstandard."""

    extension = FORMAT_EXTENSIONS["zstd"]

    def __init__(self, compression_level: int = 3):
        if not ZSTD_AVAILABLE:
            raise ImportError(
                "ZSTD library not available. Install with: pip install zstandard"
            )
        self.compression_level = compression_level
        self._entries: List[tuple] = []
        self._names = set()
        self._serialized: Optional[bytes] = None

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def add_entry(self, internal_path: str, data: Optional[bytes]) -> bool:
        if self._serialized is not None:
            raise RuntimeError("Container already serialized")

        name = sanitize_internal_path(internal_path)
        if not name or name in self._names:
            return False
        self._names.add(name)
        self._entries.append((name, data))
        return True

    def _build_tar(self) -> bytes:
        tar_buffer = io.BytesIO()
        now = int(time.time())
        with tarfile.open(fileobj=tar_buffer, mode="w") as tar:
            for name, data in self._entries:
                info = tarfile.TarInfo(name)
                info.mtime = now
                if data is None:
                    info.type = tarfile.DIRTYPE
                    info.mode = _DIR_MODE
                    tar.addfile(info)
                else:
                    info.size = len(data)
                    info.mode = _FILE_MODE
                    tar.addfile(info, io.BytesIO(data))
        return tar_buffer.getvalue()

    def serialize(self) -> bytes:
        if self._serialized is None:
            cctx = zstd.ZstdCompressor(
                level=self.compression_level,
                write_content_size=True,
                write_checksum=True,
            )
            self._serialized = cctx.compress(self._build_tar())
        return self._serialized


class ZipEntryHandle:
    def __init__(self, zipf: zipfile.ZipFile, info: zipfile.ZipInfo):
        self._zipf = zipf
        self._info = info
        self.name = sanitize_internal_path(info.filename)
        self.is_directory = info.is_dir()
        self.size = info.file_size

    def read_bytes(self) -> bytes:
        if self.is_directory:
            return b""
        return self._zipf.read(self._info)


class TarEntryHandle:
    def __init__(self, tar: tarfile.TarFile, member: tarfile.TarInfo):
        self._tar = tar
        self._member = member
        self.name = sanitize_internal_path(member.name)
        self.is_directory = member.isdir()
        self.size = member.size if member.isfile() else 0

    def read_bytes(self) -> bytes:
        if self.is_directory:
            return b""
        extracted = self._tar.extractfile(self._member)
        if extracted is None:
            raise OSError(f"Entry has no data: {self._member.name}")
        with extracted:
            return extracted.read()


def detect_format(data: bytes) -> Optional[str]:
    """Return ``zip`` or ``zstd`` from magic bytes, or None."""
    if data.startswith(ZIP_MAGIC):
        return "zip"
    if data.startswith(ZSTD_MAGIC):
        return "zstd"
    return None


def _load_zip(data: bytes) -> Dict[str, ArchiveEntryHandle]:
    zipf = zipfile.ZipFile(io.BytesIO(data), "r")
    entries: Dict[str, ArchiveEntryHandle] = {}
    for info in zipf.infolist():
        handle = ZipEntryHandle(zipf, info)
        if handle.name:
            entries[handle.name] = handle
    return entries


def _load_tar_zstd(data: bytes) -> Dict[str, ArchiveEntryHandle]:
    if not ZSTD_AVAILABLE:
        raise ImportError(
            "ZSTD library not available. Install with: pip install zstandard"
        )
    dctx = zstd.ZstdDecompressor()
    try:
        with dctx.stream_reader(io.BytesIO(data)) as reader:
            tar_bytes = reader.read()
    except zstd.ZstdError as e:
        raise ValueError(f"Corrupt zstd archive: {e}") from e

    tar = tarfile.open(fileobj=io.BytesIO(tar_bytes), mode="r")
    entries: Dict[str, ArchiveEntryHandle] = {}
    for member in tar.getmembers():
        if not (member.isfile() or member.isdir()):
            logger.debug("Skipping special tar member: %s", member.name)
            continue
        handle = TarEntryHandle(tar, member)
        if handle.name:
            entries[handle.name] = handle
    return entries


def load_container(data: bytes) -> Dict[str, ArchiveEntryHandle]:
    """
    Parse archive bytes into a mapping of internal path -> entry handle.

    Keys never carry a trailing slash; use ``handle.is_directory``.

    Raises:
        ValueError: If the bytes are not a supported archive
    """
    archive_format = detect_format(data)
    try:
        if archive_format == "zip":
            return _load_zip(data)
        if archive_format == "zstd":
            return _load_tar_zstd(data)
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise ValueError(f"Corrupt {archive_format} archive: {e}") from e
    raise ValueError("Unrecognized archive format")


class ContainerFactory:
    """Creates the container for a compression format."""

    @staticmethod
    def create(
        compression_format: str = "zip", compression_level: Optional[int] = None
    ) -> ArchiveContainer:
        if compression_format not in FORMAT_EXTENSIONS:
            raise ValueError(f"Unsupported compression format: {compression_format}")

        level = (
            compression_level
            if compression_level is not None
            else DEFAULT_COMPRESSION_LEVEL[compression_format]
        )
        if compression_format == "zstd":
            return TarZstdContainer(level)
        return ZipContainer(level)

    @staticmethod
    def extension_for(compression_format: str) -> str:
        try:
            return FORMAT_EXTENSIONS[compression_format]
        except KeyError:
            raise ValueError(
                f"Unsupported compression format: {compression_format}"
            ) from None

    @staticmethod
    def get_supported_formats() -> List[str]:
        formats = ["zip"]
        if ZSTD_AVAILABLE:
            formats.append("zstd")
        return formats
