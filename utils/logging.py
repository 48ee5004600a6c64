import logging
import sys
from typing import Optional, TextIO

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Route log records to one console handler.

    Chunk JSON is written to stdout, so records go to stderr unless a
    ``stream`` is given. Calling this again replaces the handler it
    installed before and leaves other handlers alone.
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in list(root_logger.handlers):
        if getattr(handler, "_chunkwise", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))
    console_handler._chunkwise = True
    root_logger.addHandler(console_handler)

    chunkwise_logger = logging.getLogger("chunkwise")
    chunkwise_logger.setLevel(numeric_level)
    return chunkwise_logger


def get_logger(name: str = "chunkwise") -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
