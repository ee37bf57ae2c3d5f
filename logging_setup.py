"""
Logging for the API server and the admin / shop consoles.

Console output goes through rich; LOG_LEVEL and LOG_FILE fill in whatever
the caller leaves unset.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Client libraries that log every request at INFO
QUIET_LOGGERS = ("pymongo", "httpx", "httpcore", "uvicorn.access")


def resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return level


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[Union[str, Path]] = None,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> logging.Logger:
    """
    Route the root logger to a rich console handler and, optionally, a file.

    Args:
        level: Level number or name; defaults to LOG_LEVEL, then INFO
        log_file: File that also receives DEBUG records; defaults to LOG_FILE
        quiet: Logger names capped at WARNING

    Returns:
        The configured root logger
    """
    level = resolve_level(level)
    log_file = log_file or os.getenv("LOG_FILE")

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.DEBUG if log_file else level)

    console = RichHandler(show_time=False, show_path=False, rich_tracebacks=True, markup=False)
    console.setLevel(level)
    root.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
