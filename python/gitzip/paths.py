"""
Path normalization helpers shared by the builder and the extractor.

Every function here accepts malformed input (None, empty strings, mixed
separators) and degrades to a best-effort answer instead of raising.
"""

import os
import re
from typing import Optional

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:(?=/|$)")


def normalize_separators(path: Optional[str]) -> str:
    """Convert every backslash to a forward slash."""
    if not path:
        return ""
    return str(path).replace("\\", "/")


def safe_path_dirname(path: Optional[str]) -> str:
    """
    Return the parent directory of ``path`` regardless of separator style.

    ``C:\\work\\repo`` gives ``C:/work``; a path without a usable slash falls
    back to ``os.path.dirname``.
    """
    if not path:
        return ""

    normalized = normalize_separators(path)
    last_slash = normalized.rfind("/")
    if last_slash > 0:
        return normalized[:last_slash]

    return os.path.dirname(str(path))


def last_path_component(path: Optional[str]) -> str:
    """Name of the final path component, ignoring trailing separators."""
    normalized = normalize_separators(path).rstrip("/")
    if not normalized:
        return ""
    return normalized.rsplit("/", 1)[-1]


def sanitize_internal_path(path: Optional[str]) -> str:
    """
    Turn any path into a safe archive-internal path.

    Drive-letter prefixes, leading separators, ``.`` and ``..`` segments are
    dropped and the result always uses forward slashes.
    """
    normalized = normalize_separators(path)
    normalized = _DRIVE_PREFIX.sub("", normalized)

    segments = []
    for part in normalized.split("/"):
        if not part or part in (".", ".."):
            continue
        segments.append(part)

    return "/".join(segments)


def to_relative_posix(path: str, base: str) -> str:
    """Relative path of ``path`` under ``base`` with forward slashes."""
    try:
        relative = os.path.relpath(path, base)
    except ValueError:
        # Different drives on Windows
        return last_path_component(path)
    if relative == ".":
        return ""
    return normalize_separators(relative)


def is_within(path: str, base: str) -> bool:
    """True when ``path`` resolves to ``base`` or somewhere below it."""
    try:
        real_path = os.path.realpath(path)
        real_base = os.path.realpath(base)
        return os.path.commonpath([real_path, real_base]) == real_base
    except ValueError:
        return False


def pretty_bytes(num_bytes: int) -> str:
    """Format a byte count for humans, e.g. 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB", "TB"]
    index = 0
    value = float(num_bytes)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1

    value = round(value, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[index]}"
