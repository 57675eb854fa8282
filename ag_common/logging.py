"""Harness logging: stdlib records rendered through structlog.

Records emitted while a stage runs carry the ``stage``, ``arch`` and
``endian`` context variables bound by the stage runner.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

from ag_common.config.env import parse_bool_env

HANDLER_NAME = "archgates"


def _resolve_level(value: str | int | None, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    return logging._nameToLevel.get(value.upper(), logging.INFO)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _build_formatter(as_json: bool, stream_is_tty: bool) -> logging.Formatter:
    renderer: structlog.types.Processor
    if as_json:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream_is_tty)
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_shared_processors(),
    )


def _owned_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | None = None,
    json: bool | None = None,
) -> None:
    """Route harness logging to stderr, and optionally a file.

    Explicit arguments win over ``AG_LOG_LEVEL``, ``AG_LOG_JSON`` and
    ``AG_LOG_FILE``. Calling it again replaces the handlers a previous call
    installed and leaves every other root handler in place.
    """
    resolved_level = _resolve_level(level or os.environ.get("AG_LOG_LEVEL"), debug)
    as_json = parse_bool_env(os.environ.get("AG_LOG_JSON")) if json is None else json
    resolved_log_file = os.environ.get("AG_LOG_FILE") if log_file is None else log_file

    root_logger = logging.getLogger()
    for handler in [h for h in root_logger.handlers if h.get_name() == HANDLER_NAME]:
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.addHandler(
        _owned_handler(
            logging.StreamHandler(sys.stderr),
            _build_formatter(bool(as_json), sys.stderr.isatty()),
        )
    )
    if resolved_log_file:
        root_logger.addHandler(
            _owned_handler(
                logging.FileHandler(resolved_log_file, encoding="utf-8"),
                _build_formatter(bool(as_json), False),
            )
        )
    root_logger.setLevel(resolved_level)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
