"""Structured logging setup using structlog.

Every record, whether emitted through structlog or through a plain
``logging`` logger (httpx, uvicorn), ends up on one stdlib handler on
stderr.  structlog events are handed over with
``ProcessorFormatter.wrap_for_formatter`` and rendered by the handler's
``ProcessorFormatter``, so both kinds share a single output format:

    APP_ENV=production or json_output=True   ->  one JSON object per line
    anything else                            ->  ConsoleRenderer

Every event carries ``service="coach_rag"`` plus whatever has been bound
with ``structlog.contextvars`` (the ingestion pipeline binds ``source_id``).
"""

import logging
import os
import sys

import structlog

SERVICE_NAME = "coach_rag"
_HANDLER_NAME = "coach_rag.stderr"

# Chatty below WARNING: httpx logs every Supabase and embedding request.
_QUIET_LOGGERS = ("httpx", "httpcore")


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def _renderer_chain(use_json: bool) -> list:
    if use_json:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def _resolve_level(log_level: str) -> int:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level!r}")
    return level


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Route structlog and stdlib logging to one stderr handler.

    Safe to call more than once: the handler installed by a previous call
    is replaced, handlers added by others are left alone.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON lines even outside production.

    Raises:
        ValueError: If *log_level* is not a known level name.
    """
    level = _resolve_level(log_level)
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    shared = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer_chain(use_json),
            ],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger tagged with ``logger_name=name``.

    Configures logging with defaults on first use.
    """
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
