"""
Logging for scans: structlog events rendered through stdlib handlers

Everything goes to stderr (the text report owns stdout). Values bound with
scan_context() ride along on every structlog event emitted while a scan runs.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import structlog
from structlog.typing import Processor

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("aiohttp", "asyncio")


def _renderer(format: str) -> Processor:
    if format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _file_handler(output_file: str, level: int) -> logging.Handler:
    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding='utf-8')
    handler.setLevel(level)
    return handler


def setup_logging(level: str = "INFO", format: str = "console",
                  output_file: Optional[str] = None) -> None:
    """
    Configure structlog for the CLI

    Args:
        level: DEBUG, INFO, WARNING or ERROR (unknown names fall back to INFO)
        format: "json" for one object per line, anything else for console output
        output_file: Also append log lines to this file
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if output_file:
        handlers.append(_file_handler(output_file, numeric_level))
    logging.basicConfig(format="%(message)s", level=numeric_level, handlers=handlers, force=True)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def scan_context(cfxcode: str) -> Iterator[None]:
    """Tag every event logged inside the block with the server being scanned"""
    with structlog.contextvars.bound_contextvars(cfxcode=cfxcode):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
