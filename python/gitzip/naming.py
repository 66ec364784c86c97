"""
Naming policies mapping source-relative paths to archive-internal paths.
"""

from dataclasses import dataclass
from enum import Enum

from .paths import last_path_component, sanitize_internal_path


class NamingMode(Enum):
    ONLY_CONTENT = "only"
    WITH_FOLDER = "with"
    CUSTOM_NAME = "custom"


@dataclass(frozen=True)
class NamingPolicy:
    """How entries are placed inside the archive."""

    mode: NamingMode = NamingMode.WITH_FOLDER
    custom_name: str = ""

    @classmethod
    def only_content(cls) -> "NamingPolicy":
        return cls(NamingMode.ONLY_CONTENT)

    @classmethod
    def with_folder(cls) -> "NamingPolicy":
        return cls(NamingMode.WITH_FOLDER)

    @classmethod
    def custom(cls, name: str) -> "NamingPolicy":
        return cls(NamingMode.CUSTOM_NAME, name or "")

    @classmethod
    def from_string(cls, mode: str, custom_name: str = "") -> "NamingPolicy":
        """Build a policy from ``only`` / ``with`` / ``custom``."""
        try:
            naming_mode = NamingMode(mode.lower())
        except ValueError:
            raise ValueError(f"Unknown naming policy: {mode}") from None
        return cls(naming_mode, custom_name if naming_mode == NamingMode.CUSTOM_NAME else "")


def _join(prefix: str, relative: str) -> str:
    if not prefix:
        return relative
    return f"{prefix}/{relative}" if relative else prefix


def map_path(relative_path: str, policy: NamingPolicy, root_folder_name: str) -> str:
    """
    Map a root-relative path to its path inside the archive.

    The result uses forward slashes and never contains ``..`` segments or a
    drive prefix. Mapping is pure: equal inputs give equal outputs.
    """
    relative = sanitize_internal_path(relative_path)
    folder = sanitize_internal_path(last_path_component(root_folder_name))

    if policy.mode == NamingMode.ONLY_CONTENT:
        return relative

    if policy.mode == NamingMode.CUSTOM_NAME:
        name = sanitize_internal_path(policy.custom_name) or folder
        return _join(name, relative)

    return _join(folder, relative)
