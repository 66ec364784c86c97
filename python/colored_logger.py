import logging
import os
import sys
from typing import Optional, TextIO

# Extra levels used by the archive tooling
TRACE_LEVEL = 5
PROGRESS_LEVEL = 22
SUCCESS_LEVEL = 25

logging.addLevelName(TRACE_LEVEL, "TRACE")
logging.addLevelName(PROGRESS_LEVEL, "PROGRESS")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each record in an ANSI colour picked by level name."""

    COLORS = {
        "TRACE": "\033[90m",  # Gray
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[0m",  # Default
        "PROGRESS": "\033[94m",  # Bright Blue
        "SUCCESS": "\033[92m",  # Bright Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(fmt, datefmt)
        self._stream = stream or sys.stderr

    def use_color(self) -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if not self.use_color():
            return message
        color = self.COLORS.get(record.levelname, "")
        return f"{color}{message}{self.RESET}"


def setup_colored_logging(
    level: int = logging.INFO, stream: Optional[TextIO] = None
) -> None:
    """
    Configure the root logger with a single coloured stderr handler.

    Args:
        level: Root logging level (default: logging.INFO)
        stream: Output stream, stderr when omitted
    """
    stream = stream or sys.stderr
    formatter = ColoredFormatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
        stream=stream,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


class EnhancedLogger:
    """Logger wrapper exposing the extra levels as methods."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def trace(self, msg, *args, **kwargs):
        """Per-entry decisions (include / exclude / mapped path)."""
        self._logger.log(TRACE_LEVEL, msg, *args, **kwargs)

    def progress(self, msg, *args, **kwargs):
        self._logger.log(PROGRESS_LEVEL, msg, *args, **kwargs)

    def success(self, msg, *args, **kwargs):
        self._logger.log(SUCCESS_LEVEL, msg, *args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._logger, name)


def get_colored_logger(name: str) -> EnhancedLogger:
    """
    Get a logger that understands the trace/progress/success levels.

    Args:
        name: Logger name (typically __name__)
    """
    return EnhancedLogger(logging.getLogger(name))
