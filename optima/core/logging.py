"""Structured logging via structlog.

Library modules log through ``logging.getLogger(__name__)``. The host calls
`configure_structlog()` once, which puts a `ProcessorFormatter` on the
root handler: stdlib records run through the same processor chain as
structlog's own loggers, so both end up as one stream of structured lines.

Renderer selection:
  debug=True:  `ConsoleRenderer` with colours for local development.
  debug=False: `JSONRenderer`, one JSON object per line.

ContextVar injection:
  The orchestrator binds `request_id` for the lifetime of one optimization;
  `_inject_context_vars` copies it onto every line logged meanwhile,
  whichever logger produced it.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog

HANDLER_NAME = "optima"

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the current optimization request ID, or empty string if not set."""
    return _request_id_var.get()


def set_request_id(request_id: str):
    """Bind a request ID for the current context; returns the reset token."""
    return _request_id_var.set(request_id)


def reset_request_id(token) -> None:
    _request_id_var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: add request_id when one is bound."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def configure_structlog(debug: bool = True, stream=None) -> logging.Handler:
    """Route structlog and stdlib logging through one renderer.

    Reconfiguring replaces the handler installed by an earlier call rather
    than stacking a second one. Returns the installed handler.
    """
    shared_processors: list = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context_vars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    return handler
