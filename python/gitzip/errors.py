"""
Exception types raised by the archive core.

Fatal conditions derive from BuildError and abort the whole operation.
ReadError and RuleFileUnreadable describe recoverable, per-entry problems
that the builder logs and counts instead of propagating.
"""


class GitZipError(Exception):
    """Base class for every error raised by the gitzip core."""

    pass


class BuildError(GitZipError):
    """Raised when an archive cannot be produced."""

    pass


class InvalidDestination(BuildError):
    """Raised before any I/O when the output location cannot be made valid."""

    pass


class Cancelled(BuildError):
    """Raised when the caller requested cancellation; nothing was written."""

    pass


class WriteError(BuildError):
    """Raised when the serialized archive could not be written."""

    pass


class SourceNotFound(BuildError):
    """Raised when the source folder or file list does not exist."""

    pass


class ReadError(GitZipError):
    """Raised when one source entry could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class RuleFileUnreadable(GitZipError):
    """Raised when an ignore rule file exists but cannot be read."""

    pass


class ExtractError(GitZipError):
    """Raised when an archive cannot be opened for extraction."""

    pass


class CompressionError(GitZipError):
    """Raised when single-file compression or decompression fails."""

    pass
