"""Logging setup shared by the pipeline entry point and scripts.

Runs are long (minutes to hours because of API throttling) and are often
piped through `tee` or `head`, so the stream handler must survive a closed
stdout without killing the run.
"""
import logging
from typing import Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that ignores broken pipe and closed file errors."""

    def emit(self, record):
        try:
            super().emit(record)
        except BrokenPipeError:
            pass  # stdout closed
        except ValueError:
            pass  # I/O operation on closed file


def configure_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Attach a SafeStreamHandler to the root logger.

    Safe to call more than once; the handler is only added the first time,
    but the level is always updated.

    Args:
        level: Logging level as int or name ("DEBUG", "INFO", ...)

    Returns:
        The root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    handler = next(
        (h for h in root.handlers if isinstance(h, SafeStreamHandler)), None
    )
    if handler is None:
        handler = SafeStreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
    handler.setLevel(level)
    root.setLevel(level)

    # openai and urllib3 are chatty at INFO/DEBUG
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))
    return root
