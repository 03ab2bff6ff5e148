from __future__ import annotations
import logging
import sys
from typing import Optional, TextIO
import structlog

def configure_logging(debug: bool = False, stream: Optional[TextIO] = None) -> None:
    # stdout belongs to the native messaging channel; never log there
    stream = stream or sys.stderr
    level = logging.DEBUG if debug else logging.INFO
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=stream, level=level, force=True)
    # requests/urllib3 connection chatter is not useful at debug level here
    logging.getLogger("urllib3").setLevel(logging.WARNING)
