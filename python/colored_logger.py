import logging
import os
import sys
from typing import Union

# Custom logging levels used by the cookbook indexer
SUCCESS_LEVEL = 25
NOTICE_LEVEL = 35

logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")
logging.addLevelName(NOTICE_LEVEL, "NOTICE")

DEFAULT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _colors_enabled(stream) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each record in an ANSI colour picked by level name."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "SUCCESS": "\033[92m",  # Bright Green
        "WARNING": "\033[33m",  # Yellow
        "NOTICE": "\033[96m",  # Bright Cyan
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str = None, datefmt: str = None, stream=None):
        super().__init__(fmt, datefmt)
        self._stream = stream if stream is not None else sys.stderr

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        if _colors_enabled(self._stream):
            level_color = self.COLORS.get(record.levelname, "")
            return f"{level_color}{message}{self.COLORS['RESET']}"

        return message


def setup_colored_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger with a single coloured stderr handler.

    Args:
        level: Logging level, either numeric or a level name such as "DEBUG"
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        ColoredFormatter(fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT, stream=sys.stderr)
    )
    root_logger.addHandler(console_handler)


class EnhancedLogger:
    """Logger wrapper adding the custom level methods."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def success(self, msg, *args, **kwargs):
        """Log with SUCCESS level - completed operations."""
        self._logger.log(SUCCESS_LEVEL, msg, *args, **kwargs)

    def notice(self, msg, *args, **kwargs):
        """Log with NOTICE level - important state changes."""
        self._logger.log(NOTICE_LEVEL, msg, *args, **kwargs)

    # debug/info/warning/error/critical/exception go straight to the wrapped logger
    def __getattr__(self, name):
        return getattr(self._logger, name)


def get_colored_logger(name: str) -> EnhancedLogger:
    """
    Get an enhanced logger instance with the custom level methods.

    Args:
        name: Logger name (typically __name__)
    """
    return EnhancedLogger(logging.getLogger(name))
