# opening_analyzer/utils/logging_config.py
"""
Configures application-wide structured logging using structlog.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.types import Processor

def setup_logging(
    log_level: str = "INFO",
    log_to_console: bool = True,
    log_file: Optional[Path] = None,
    json_console: bool = False,
    stream=None,
) -> None:
    """
    Routes structlog and standard-library logging through one formatter.

    Console output is human-readable unless `json_console` is set; the optional
    log file always receives JSON lines. Console output goes to stderr by
    default so that it never interleaves with results printed on stdout.
    """
    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Processor
    if json_console:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handlers: List[logging.Handler] = []
    if log_to_console:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared_processors, processor=renderer)
        )
        handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processor=structlog.processors.JSONRenderer(),
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(handlers=handlers, level=log_level.upper(), force=True)
