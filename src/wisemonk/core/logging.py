"""
Structured logging for Wisemonk.

Every module logs through structlog::

    import structlog
    logger = structlog.get_logger()

Channel actors bind their channel id once, so every entry they emit carries it::

    log = logger.bind(channel_id="C0123ABCD")
    log.info("threshold_reached", count=23, threshold=20)
    # → {"event": "threshold_reached", "channel_id": "C0123ABCD",
    #    "count": 23, "threshold": 20, "level": "info", "timestamp": "..."}

``configure_logging()`` is called once by the CLI before the supervisor
starts. stdlib loggers (httpx, slack_sdk) are routed through the same
processor chain so the output stays uniform.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "slack_sdk", "websockets")


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def _structlog_handler(root: logging.Logger) -> logging.Handler | None:
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and isinstance(
            getattr(h, "formatter", None), structlog.stdlib.ProcessorFormatter
        ):
            return h
    return None


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Emit JSON lines instead of coloured console output.

    Safe to call more than once: the root handler is installed once and
    later calls only swap its renderer and level.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
        foreign_pre_chain=shared_processors,
    )

    root = logging.getLogger()
    handler = _structlog_handler(root)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        root.addHandler(handler)
    handler.setFormatter(formatter)
    root.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
