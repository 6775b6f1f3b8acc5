"""Prometheus metrics for the poll loop.

The exporter is opt-in: scripts call :func:`ensure_metrics_exporter` when
``metrics_enabled`` is set, library users scrape the default registry
themselves.
"""

from __future__ import annotations

import os
import threading
from typing import Final

from prometheus_client import Counter, Histogram, start_http_server

from completion_watcher.config.logging_config import get_logger

logger = get_logger(__name__)

SCAN_ATTEMPTS_TOTAL: Final[Counter] = Counter(
    "watcher_scan_attempts_total",
    "Poll attempts by result (match, empty, error)",
    labelnames=("result",),
)

OUTCOMES_TOTAL: Final[Counter] = Counter(
    "watcher_outcomes_total",
    "Terminal await outcomes",
    labelnames=("outcome",),
)

AWAIT_DURATION_SECONDS: Final[Histogram] = Histogram(
    "watcher_await_duration_seconds",
    "Wall-clock duration of await calls in seconds",
    labelnames=("outcome",),
)

_EXPORTER_LOCK = threading.Lock()
_EXPORTER_STARTED = False
_DEFAULT_METRICS_PORT: Final[int] = 9000
_METRICS_PORT_ENV: Final[str] = "METRICS_PORT"


def _resolve_metrics_port() -> int:
    port_raw = os.getenv(_METRICS_PORT_ENV)
    try:
        return int(port_raw) if port_raw else _DEFAULT_METRICS_PORT
    except ValueError:
        logger.warning("invalid_metrics_port", port=port_raw)
        return _DEFAULT_METRICS_PORT


def ensure_metrics_exporter(port: int | None = None) -> None:
    """Start Prometheus HTTP exporter once per process."""

    global _EXPORTER_STARTED
    with _EXPORTER_LOCK:
        if _EXPORTER_STARTED:
            return

        resolved_port = port if port is not None else _resolve_metrics_port()

        try:
            start_http_server(resolved_port)
        except OSError as exc:
            logger.error(
                "metrics_exporter_start_failed",
                port=resolved_port,
                error=str(exc),
            )
            raise

        _EXPORTER_STARTED = True
        logger.info("metrics_exporter_started", port=resolved_port)


__all__ = [
    "AWAIT_DURATION_SECONDS",
    "OUTCOMES_TOTAL",
    "SCAN_ATTEMPTS_TOTAL",
    "ensure_metrics_exporter",
]
