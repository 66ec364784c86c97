"""
Archive integrity verification.

This module checks ZIP and TAR+ZSTD archives produced by the builder and
summarizes their contents. The format is detected from the file header, not
from the extension, so renamed archives are still recognized.
"""

import io
import os
import tarfile
import zipfile
import zlib
from datetime import datetime
from typing import Any, Dict, List

from colored_logger import get_colored_logger
from .containers import detect_format
from .errors import GitZipError
from .paths import pretty_bytes, sanitize_internal_path

logger = get_colored_logger(__name__)

try:
    import zstandard as zstd

    ZSTD_AVAILABLE = True
except ImportError:
    ZSTD_AVAILABLE = False

_EMPTY_INFO = {
    "entry_count": 0,
    "file_count": 0,
    "directory_count": 0,
    "compressed_size": 0,
    "uncompressed_size": 0,
    "compression_ratio": 0,
}


def _ratio(compressed_size: int, uncompressed_size: int) -> float:
    if uncompressed_size <= 0:
        return 0
    return (1 - compressed_size / uncompressed_size) * 100


class ZipArchiveVerifier:
    """Verifies ZIP archive integrity."""

    def verify_integrity(self, archive_path: str) -> bool:
        """Verify ZIP archive integrity by checking every member's CRC."""
        try:
            with zipfile.ZipFile(archive_path, "r") as zipf:
                bad_file = zipf.testzip()
                if bad_file is not None:
                    logger.debug("ZIP integrity check failed on file: %s", bad_file)
                    return False
                return True
        except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as e:
            logger.debug("ZIP integrity verification failed: %s", e)
            return False

    def get_archive_info(self, archive_path: str) -> Dict[str, Any]:
        """Get detailed information about ZIP archive."""
        with zipfile.ZipFile(archive_path, "r") as zipf:
            members = zipf.infolist()
        files = [m for m in members if not m.is_dir()]
        compressed_size = sum(m.compress_size for m in files)
        uncompressed_size = sum(m.file_size for m in files)
        return {
            "entry_count": len(members),
            "file_count": len(files),
            "directory_count": len(members) - len(files),
            "compressed_size": compressed_size,
            "uncompressed_size": uncompressed_size,
            "compression_ratio": _ratio(compressed_size, uncompressed_size),
        }

    def list_entries(self, archive_path: str) -> List[Dict[str, Any]]:
        with zipfile.ZipFile(archive_path, "r") as zipf:
            return [
                {
                    "name": sanitize_internal_path(m.filename),
                    "is_directory": m.is_dir(),
                    "size": m.file_size,
                }
                for m in zipf.infolist()
            ]


class ZstdArchiveVerifier:
    """Verifies ZSTD archive integrity."""

    def _open_tar(self, archive_path: str) -> tarfile.TarFile:
        if not ZSTD_AVAILABLE:
            raise tarfile.ReadError("ZSTD library not available")
        with open(archive_path, "rb") as f:
            dctx = zstd.ZstdDecompressor()
            try:
                with dctx.stream_reader(f) as decompressor:
                    tar_bytes = decompressor.read()
            except zstd.ZstdError as e:
                raise tarfile.ReadError(f"ZSTD decompression error: {e}") from e
        return tarfile.open(fileobj=io.BytesIO(tar_bytes), mode="r")

    def verify_integrity(self, archive_path: str) -> bool:
        """Verify ZSTD archive integrity by reading every member."""
        if not ZSTD_AVAILABLE:
            logger.debug("ZSTD library not available for verification")
            return False

        try:
            with self._open_tar(archive_path) as tar:
                for member in tar:
                    if not member.isfile():
                        continue
                    file_data = tar.extractfile(member)
                    if file_data is not None:
                        with file_data:
                            file_data.read()
            return True
        except tarfile.TarError as e:
            logger.debug("TAR structure error: %s", e)
            return False
        except (OSError, EOFError) as e:
            logger.debug("ZSTD integrity verification failed: %s", e)
            return False

    def get_archive_info(self, archive_path: str) -> Dict[str, Any]:
        """Get detailed information about ZSTD archive."""
        if not ZSTD_AVAILABLE:
            logger.debug("ZSTD library not available for info extraction")
            return dict(_EMPTY_INFO)

        compressed_size = os.path.getsize(archive_path)
        with self._open_tar(archive_path) as tar:
            members = tar.getmembers()
        files = [m for m in members if m.isfile()]
        uncompressed_size = sum(m.size for m in files)
        return {
            "entry_count": len(members),
            "file_count": len(files),
            "directory_count": sum(1 for m in members if m.isdir()),
            "compressed_size": compressed_size,
            "uncompressed_size": uncompressed_size,
            "compression_ratio": _ratio(compressed_size, uncompressed_size),
        }

    def list_entries(self, archive_path: str) -> List[Dict[str, Any]]:
        with self._open_tar(archive_path) as tar:
            return [
                {
                    "name": sanitize_internal_path(m.name),
                    "is_directory": m.isdir(),
                    "size": m.size if m.isfile() else 0,
                }
                for m in tar.getmembers()
                if m.isfile() or m.isdir()
            ]


class ArchiveVerifier:
    """High-level archive verification interface."""

    def __init__(self):
        self.zip_verifier = ZipArchiveVerifier()
        self.zstd_verifier = ZstdArchiveVerifier()

    def detect_archive_format(self, archive_path: str) -> str:
        """Return ``zip``, ``zstd`` or ``unknown`` from the file header."""
        with open(archive_path, "rb") as f:
            header = f.read(4)
        return detect_format(header) or "unknown"

    def _verifier_for(self, archive_format: str):
        if archive_format == "zip":
            return self.zip_verifier
        if archive_format == "zstd":
            return self.zstd_verifier
        return None

    def verify_integrity(self, archive_path: str) -> bool:
        """Verify archive integrity based on its header."""
        try:
            archive_format = self.detect_archive_format(archive_path)
        except OSError as e:
            logger.debug("Cannot open archive %s: %s", archive_path, e)
            return False

        verifier = self._verifier_for(archive_format)
        if verifier is None:
            logger.debug("Unknown archive format for integrity check: %s", archive_path)
            return False
        return verifier.verify_integrity(archive_path)

    def get_archive_info(self, archive_path: str) -> Dict[str, Any]:
        """
        Get comprehensive information about an archive.

        Raises:
            FileNotFoundError: If the archive does not exist
            GitZipError: If the archive contents cannot be parsed
        """
        if not os.path.isfile(archive_path):
            raise FileNotFoundError(f"Archive not found: {archive_path}")

        st = os.stat(archive_path)
        info: Dict[str, Any] = {
            "path": os.path.abspath(archive_path),
            "size_bytes": st.st_size,
            "size": pretty_bytes(st.st_size),
            "modified_time": datetime.fromtimestamp(st.st_mtime).isoformat(),
            "format": self.detect_archive_format(archive_path),
            "valid": False,
        }

        verifier = self._verifier_for(info["format"])
        if verifier is None:
            info.update(_EMPTY_INFO)
            return info

        try:
            info.update(verifier.get_archive_info(archive_path))
        except (OSError, EOFError, zipfile.BadZipFile, tarfile.TarError) as e:
            raise GitZipError(f"Cannot read archive {archive_path}: {e}") from e
        info["valid"] = verifier.verify_integrity(archive_path)
        return info

    def list_entries(self, archive_path: str) -> List[Dict[str, Any]]:
        """
        List entry names, kinds and sizes.

        Raises:
            GitZipError: If the archive is missing, unknown or corrupt
        """
        try:
            verifier = self._verifier_for(self.detect_archive_format(archive_path))
            if verifier is None:
                raise GitZipError(f"Unrecognized archive format: {archive_path}")
            return verifier.list_entries(archive_path)
        except (OSError, EOFError, zipfile.BadZipFile, tarfile.TarError) as e:
            raise GitZipError(f"Cannot read archive {archive_path}: {e}") from e
