"""Scanner over the most recent containers of a log source.

Each scan costs one listing call plus one fetch per listed container.
Transport failures end the scan quietly; the poll loop decides when to retry.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Final

import httpx

from completion_watcher.config.logging_config import get_logger
from completion_watcher.domain.exceptions import LogSourceError, RateLimitError
from completion_watcher.domain.models import (
    DEFAULT_MAX_LINES_PER_CONTAINER,
    ConfirmationLevel,
    ContainerContent,
    LogContainer,
)
from completion_watcher.domain.protocols import LogSourceProtocol

logger = get_logger(__name__)

DEFAULT_MAX_LINE_LENGTH: Final[int] = 16_384

_SCAN_ERRORS = (LogSourceError, httpx.HTTPError, KeyError, TypeError, ValueError)


@dataclass
class ScanReport:
    """What happened during one scan."""

    listed: int = field(default=0)
    fetched: int = field(default=0)
    missing: int = field(default=0)
    lines_truncated: int = field(default=0)
    error: str | None = field(default=None)
    retry_after: float | None = field(default=None)
    cancelled: bool = field(default=False)

    @property
    def failed(self) -> bool:
        return self.error is not None


class LogScanner:
    """Fetches a bounded window of recent containers, newest first."""

    def __init__(
        self,
        log_source: LogSourceProtocol,
        *,
        max_lines_per_container: int = DEFAULT_MAX_LINES_PER_CONTAINER,
        max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
    ) -> None:
        if max_lines_per_container <= 0:
            raise ValueError("max_lines_per_container must be positive")
        if max_line_length <= 0:
            raise ValueError("max_line_length must be positive")
        self._source = log_source
        self._max_lines = max_lines_per_container
        self._max_line_length = max_line_length

    def iter_recent(
        self,
        address: str,
        *,
        window_size: int,
        confirmation_level: ConfirmationLevel,
        report: ScanReport,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[LogContainer]:
        """Lazily yield fetched containers in listing order.

        Failures are recorded on ``report`` and end the iteration.
        """
        if window_size <= 0:
            raise ValueError("window_size must be positive")

        if _is_cancelled(cancel_event):
            report.cancelled = True
            return

        try:
            container_ids = list(self._source.list_recent_containers(address, window_size))
        except _SCAN_ERRORS as exc:
            self._record_failure(report, "list_recent_containers", exc, address=address)
            return

        report.listed = len(container_ids)

        for container_id in container_ids[:window_size]:
            if _is_cancelled(cancel_event):
                report.cancelled = True
                return

            try:
                content = self._source.fetch_container_content(
                    container_id, confirmation_level
                )
            except _SCAN_ERRORS as exc:
                self._record_failure(
                    report, "fetch_container_content", exc, container_id=container_id
                )
                return

            if not content.found:
                report.missing += 1
                continue

            report.fetched += 1
            container = self._bound(container_id, content)
            report.lines_truncated += container.lines_truncated
            yield container

    def fetch_recent(
        self,
        address: str,
        *,
        window_size: int,
        confirmation_level: ConfirmationLevel = ConfirmationLevel.CONFIRMED,
        report: ScanReport | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[LogContainer]:
        """Eager form of :meth:`iter_recent`.

        A failed scan yields no containers at all.
        """
        scan_report = report if report is not None else ScanReport()
        containers = list(
            self.iter_recent(
                address,
                window_size=window_size,
                confirmation_level=confirmation_level,
                report=scan_report,
                cancel_event=cancel_event,
            )
        )
        if scan_report.failed:
            return []
        return containers

    def _bound(self, container_id: str, content: ContainerContent) -> LogContainer:
        kept: list[str] = []
        dropped = 0
        for line in content.log_lines:
            if len(kept) >= self._max_lines or len(line) > self._max_line_length:
                dropped += 1
                continue
            kept.append(line)

        if dropped:
            logger.debug(
                "container_lines_truncated",
                container_id=container_id,
                kept=len(kept),
                dropped=dropped,
            )
        return LogContainer(
            container_id=container_id, log_lines=kept, lines_truncated=dropped
        )

    @staticmethod
    def _record_failure(
        report: ScanReport, operation: str, exc: Exception, **context: str
    ) -> None:
        report.error = f"{type(exc).__name__}: {exc}"
        if isinstance(exc, RateLimitError):
            report.retry_after = exc.retry_after
        logger.warning(
            "log_scan_failed",
            operation=operation,
            error=report.error,
            retry_after_seconds=report.retry_after,
            **context,
        )


def _is_cancelled(cancel_event: threading.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


__all__ = ["LogScanner", "ScanReport"]
