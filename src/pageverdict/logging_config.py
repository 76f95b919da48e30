# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Logging setup: stdlib loggers rendered through structlog.

Every module logs with ``logging.getLogger(__name__)``; ``configure()``
installs one root handler whose formatter runs structlog's processor chain,
so stdlib records and structlog events come out the same way.  Scan-scoped
fields (url, scan id) are carried in contextvars by ``scan_context()``.

Imports nothing from pageverdict, so it can run first.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog

_TRUTHY = frozenset({"1", "true", "yes", "on"})
DEFAULT_LEVEL = "INFO"


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def resolve_level(level: str | int) -> int:
    """Numeric level for a name or number; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def configure(*, json_output: bool = False, level: str | int = DEFAULT_LEVEL, stream: IO[str] | None = None) -> None:
    """Route all logging through structlog.

    Args:
        json_output: JSON lines for pipelines; otherwise the console renderer.
        level: root logger level, name or number.
        stream: handler stream, stderr by default.

    Calling it again replaces the previous handler.
    """
    pre_chain = _shared_processors()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolve_level(level))


def configure_from_env() -> None:
    """``configure()`` from ``PAGEVERDICT_LOG_JSON`` and ``PAGEVERDICT_LOG_LEVEL``."""
    json_output = os.environ.get("PAGEVERDICT_LOG_JSON", "").strip().lower() in _TRUTHY
    level = os.environ.get("PAGEVERDICT_LOG_LEVEL", "").strip() or DEFAULT_LEVEL
    configure(json_output=json_output, level=level)


@contextmanager
def scan_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**{k: v for k, v in fields.items() if v}):
        yield
