"""Structured logging setup using structlog.

Both Ganjeh entry points (the FastAPI app and the archive CLI) call
:func:`configure_logging` once at start-up.  Every line then carries:

- ``component`` -- ``"api"`` or ``"archive"``, so web and import logs can
  share one sink and still be told apart;
- the keys bound at the call site (``poet_id``, ``category_id``,
  ``source``, ``fallback`` ...), which is what operators grep for when a
  poet page falls back to the Remote Archive.

# ─── RENDERING (Junior Developer Guide) ───────────────────────────────
#
#   APP_ENV=production (or json_output=True)  →  one JSON object per line,
#       with ``ensure_ascii=False`` so poet names and queries stay
#       readable Persian instead of \\u escapes.
#   anything else                              →  coloured console output.
#
# stdlib ``logging`` is routed through the same processors so uvicorn's
# access/error lines look like ours.  ``httpx`` and ``aiosqlite`` are held
# at WARNING: httpx's own "HTTP Request: GET ..." INFO line would repeat
# every ``remote_archive_request`` event, and aiosqlite's DEBUG output
# logs each statement of every Local Store query.
# ──────────────────────────────────────────────────────────────────────
"""

import logging
import os
import sys

import structlog

# Third-party loggers that are too chatty below WARNING.
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite")


def _component_adder(component: str) -> structlog.types.Processor:
    def add_component(
        logger: object, method_name: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("component", component)
        return event_dict

    return add_component


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = False,
    component: str = "api",
) -> structlog.BoundLogger:
    """Configure structlog for one Ganjeh process.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        json_output: Force JSON output. When False, JSON is still used if
                     ``APP_ENV`` is ``production``.
        component: Value of the ``component`` key on every line
                   (``"api"`` for the web app, ``"archive"`` for the CLI).

    Returns:
        A configured structlog BoundLogger.
    """
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _component_adder(component),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    level = logging.getLevelName(log_level.upper())
    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with ``logger_name=name``.

    Falls back to the default configuration when called before either entry
    point has configured logging (e.g. in tests).
    """
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(logger_name=name)
