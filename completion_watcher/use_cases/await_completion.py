"""Await the completion event of a submitted computation.

Polls the most recent containers of a listing address until a
finalize-computation event carrying the awaited handle and emitter shows up,
the attempt budget or deadline runs out, or the caller cancels.

State flow per call: IDLE -> POLLING -> FOUND | TIMED_OUT (| CANCELLED).
A watcher instance keeps no state between calls, so one instance can serve
concurrent awaits from several threads.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import NoReturn

import pytz

from completion_watcher.adapters.log_scanner import LogScanner, ScanReport
from completion_watcher.config.logging_config import get_logger
from completion_watcher.domain.exceptions import AwaitCancelledError, AwaitTimeoutError
from completion_watcher.domain.models import (
    AttemptRecord,
    AttemptResult,
    Found,
    PollOutcome,
    TimedOut,
    WatchConfig,
    WatchState,
)
from completion_watcher.domain.protocols import LogSourceProtocol
from completion_watcher.observability.metrics import (
    AWAIT_DURATION_SECONDS,
    OUTCOMES_TOTAL,
    SCAN_ATTEMPTS_TOTAL,
)
from completion_watcher.observability.tracing import correlation_scope
from completion_watcher.services.address_codec import EmitterLike, format_address
from completion_watcher.services.event_decoder import EventDecoder
from completion_watcher.services.matcher import MatchKey
from completion_watcher.services.retry_policy import RetryPolicy

logger = get_logger(__name__)

AttemptCallback = Callable[[AttemptRecord], None]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=pytz.UTC)


def _ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware in UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(pytz.UTC)


class CompletionWatcher:
    """Correlates a pending request handle with its completion event."""

    def __init__(
        self,
        log_source: LogSourceProtocol,
        *,
        scanner: LogScanner | None = None,
        decoder: EventDecoder | None = None,
        now: Clock | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            log_source: Read-only log source, may be shared between watchers
            scanner: Optional scanner override (default: one per call, sized by config)
            decoder: Optional decoder override (default: finalize-computation events)
            now: Clock used for deadlines
            on_attempt: Diagnostics hook invoked after every poll attempt
        """
        self._source = log_source
        self._scanner = scanner
        self._decoder = decoder or EventDecoder()
        self._now = now or _utc_now
        self._on_attempt = on_attempt

    def await_completion(
        self,
        handle: int,
        emitter: EmitterLike,
        config: WatchConfig | None = None,
        *,
        listing_address: str | None = None,
        cancel_event: threading.Event | None = None,
        deadline: datetime | None = None,
    ) -> PollOutcome:
        """Poll until the completion event for ``handle`` is observed.

        Cancellation is checked before every log source call and interrupts
        the wait between attempts, but a call already in flight runs to
        completion first. Against an RPC node that is bounded by the source's
        per-request timeout (``rpc_timeout_seconds``).

        Args:
            handle: Request handle (computation offset) chosen at submission
            emitter: Emitter identity, base58 address or 32 raw bytes
            config: Polling options (defaults: 50 containers, 1s, 120 attempts)
            listing_address: Address whose containers are listed (default: emitter)
            cancel_event: Set by the caller to abort the await
            deadline: Absolute point in time after which polling stops

        Returns:
            ``Found`` with the container id, or ``TimedOut``

        Raises:
            HandleOverflowError: If the handle does not fit in 8 bytes
            InvalidAddressError: If the emitter is not a 32-byte identity
            AwaitCancelledError: If ``cancel_event`` was set
        """
        watch_config = config or WatchConfig()
        key = MatchKey.build(handle, emitter)
        address = listing_address or (
            emitter if isinstance(emitter, str) else format_address(key.emitter_bytes)
        )
        scanner = self._scanner or LogScanner(
            self._source, max_lines_per_container=watch_config.max_lines_per_container
        )
        cancel = cancel_event or threading.Event()
        stop_at = self._resolve_deadline(deadline, watch_config.timeout_seconds)
        policy = RetryPolicy(watch_config)
        started = time.monotonic()

        with correlation_scope(handle=handle):
            logger.info(
                "await_started",
                listing_address=address,
                window_size=watch_config.window_size,
                poll_interval_seconds=watch_config.poll_interval_seconds,
                max_attempts=watch_config.max_attempts,
                deadline=stop_at.isoformat() if stop_at else None,
            )
            logger.debug("watch_state_changed", state=WatchState.POLLING.value)

            while not policy.exhausted():
                if cancel.is_set():
                    self._cancel(key, policy, started)

                if stop_at is not None and _ensure_utc(self._now()) >= stop_at:
                    return self._timed_out(key, policy, started, reason="deadline")

                attempt = policy.begin_attempt()
                report = ScanReport()
                record, container_id = self._scan_once(
                    scanner, key, address, watch_config, report, cancel, attempt
                )

                if container_id is not None:
                    self._emit(record)
                    return self._found(key, policy, started, container_id)

                if report.cancelled:
                    self._emit(record)
                    self._cancel(key, policy, started)

                if report.failed:
                    delay = policy.record_error(report.retry_after)
                else:
                    delay = policy.record_empty()
                delay = self._clamp_to_deadline(delay, stop_at)
                record.delay_seconds = delay
                self._emit(record)

                if cancel.wait(delay):
                    self._cancel(key, policy, started)

            return self._timed_out(key, policy, started, reason="max_attempts")

    def wait_for_completion(
        self,
        handle: int,
        emitter: EmitterLike,
        config: WatchConfig | None = None,
        *,
        listing_address: str | None = None,
        cancel_event: threading.Event | None = None,
        deadline: datetime | None = None,
    ) -> str:
        """Like :meth:`await_completion` but returns the container id.

        Raises:
            AwaitTimeoutError: If no completion event was observed
        """
        outcome = self.await_completion(
            handle,
            emitter,
            config,
            listing_address=listing_address,
            cancel_event=cancel_event,
            deadline=deadline,
        )
        if isinstance(outcome, TimedOut):
            raise AwaitTimeoutError(outcome.handle, outcome.attempts, outcome.reason)
        return outcome.container_id

    def _scan_once(
        self,
        scanner: LogScanner,
        key: MatchKey,
        address: str,
        config: WatchConfig,
        report: ScanReport,
        cancel: threading.Event,
        attempt: int,
    ) -> tuple[AttemptRecord, str | None]:
        containers_scanned = 0
        lines_scanned = 0
        candidates_seen = 0

        for container in scanner.iter_recent(
            address,
            window_size=config.window_size,
            confirmation_level=config.confirmation_level,
            report=report,
            cancel_event=cancel,
        ):
            containers_scanned += 1
            for line in container.log_lines:
                lines_scanned += 1
                candidate = self._decoder.decode(line)
                if candidate is None:
                    continue
                candidates_seen += 1
                if key.matches(candidate):
                    record = AttemptRecord(
                        attempt=attempt,
                        result=AttemptResult.MATCH,
                        containers_scanned=containers_scanned,
                        lines_scanned=lines_scanned,
                        candidates_seen=candidates_seen,
                    )
                    return record, container.container_id

        record = AttemptRecord(
            attempt=attempt,
            result=AttemptResult.ERROR if report.failed else AttemptResult.EMPTY,
            containers_scanned=containers_scanned,
            lines_scanned=lines_scanned,
            candidates_seen=candidates_seen,
            error=report.error,
        )
        return record, None

    def _emit(self, record: AttemptRecord) -> None:
        SCAN_ATTEMPTS_TOTAL.labels(result=record.result.value).inc()
        logger.debug(
            "scan_attempt_completed",
            attempt=record.attempt,
            result=record.result.value,
            containers_scanned=record.containers_scanned,
            lines_scanned=record.lines_scanned,
            candidates_seen=record.candidates_seen,
            error=record.error,
            delay_seconds=record.delay_seconds,
        )
        if self._on_attempt is not None:
            self._on_attempt(record)

    def _resolve_deadline(
        self, deadline: datetime | None, timeout_seconds: float | None
    ) -> datetime | None:
        candidates: list[datetime] = []
        if deadline is not None:
            candidates.append(_ensure_utc(deadline))
        if timeout_seconds is not None:
            candidates.append(_ensure_utc(self._now()) + timedelta(seconds=timeout_seconds))
        return min(candidates) if candidates else None

    def _clamp_to_deadline(self, delay: float, stop_at: datetime | None) -> float:
        if stop_at is None:
            return delay
        remaining = (stop_at - _ensure_utc(self._now())).total_seconds()
        return max(0.0, min(delay, remaining))

    def _found(
        self, key: MatchKey, policy: RetryPolicy, started: float, container_id: str
    ) -> Found:
        self._finish(WatchState.FOUND, started)
        logger.info(
            "await_completed",
            container_id=container_id,
            attempts=policy.attempts,
            transient_errors=policy.stats.transient_errors,
        )
        return Found(
            handle=key.handle,
            container_id=container_id,
            attempts=policy.attempts,
            stats=policy.stats.model_copy(),
        )

    def _timed_out(
        self, key: MatchKey, policy: RetryPolicy, started: float, *, reason: str
    ) -> TimedOut:
        self._finish(WatchState.TIMED_OUT, started)
        logger.warning(
            "await_timed_out",
            reason=reason,
            attempts=policy.attempts,
            empty_scans=policy.stats.empty_scans,
            transient_errors=policy.stats.transient_errors,
        )
        return TimedOut(
            handle=key.handle,
            attempts=policy.attempts,
            reason="deadline" if reason == "deadline" else "max_attempts",
            stats=policy.stats.model_copy(),
        )

    def _cancel(self, key: MatchKey, policy: RetryPolicy, started: float) -> NoReturn:
        self._finish(WatchState.CANCELLED, started)
        logger.info("await_cancelled", attempts=policy.attempts)
        raise AwaitCancelledError(key.handle, policy.attempts)

    @staticmethod
    def _finish(state: WatchState, started: float) -> None:
        OUTCOMES_TOTAL.labels(outcome=state.value).inc()
        AWAIT_DURATION_SECONDS.labels(outcome=state.value).observe(
            time.monotonic() - started
        )
        logger.debug("watch_state_changed", state=state.value)


__all__ = ["CompletionWatcher"]
