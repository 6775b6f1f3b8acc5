"""Helpers for correlation identifiers in logs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

from completion_watcher.config.logging_config import bind_context, unbind_context

CORRELATION_ID_KEY = "correlation_id"


@contextmanager
def correlation_scope(existing_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Bind a correlation identifier (and extra fields) for the lifetime of the context."""

    correlation_id = existing_id or str(uuid4())
    bind_context(**{CORRELATION_ID_KEY: correlation_id}, **extra)
    try:
        yield correlation_id
    finally:
        unbind_context(CORRELATION_ID_KEY, *extra)


__all__ = ["CORRELATION_ID_KEY", "correlation_scope"]
