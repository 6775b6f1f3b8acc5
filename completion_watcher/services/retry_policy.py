"""Retry policy for the poll loop.

Keeps empty scans and failed scans apart: an empty scan waits the plain poll
interval, a failed scan backs off exponentially (capped) and honours any
``retry_after`` hint from a rate-limited log source. Both kinds count against
the same attempt ceiling.
"""

from completion_watcher.domain.models import AttemptStats, WatchConfig


class RetryPolicy:
    """Per-await attempt accounting and delay computation."""

    def __init__(self, config: WatchConfig) -> None:
        self._interval = config.poll_interval_seconds
        self._factor = config.transient_backoff_factor
        self._max_backoff = config.max_backoff_seconds
        self._max_attempts = config.max_attempts
        self.stats = AttemptStats()

    @property
    def attempts(self) -> int:
        return self.stats.attempts

    def exhausted(self) -> bool:
        return self.stats.attempts >= self._max_attempts

    def begin_attempt(self) -> int:
        self.stats.attempts += 1
        return self.stats.attempts

    def record_empty(self) -> float:
        """Record a scan that completed without a match; return the wait."""
        self.stats.empty_scans += 1
        self.stats.consecutive_errors = 0
        return self._interval

    def record_error(self, retry_after: float | None = None) -> float:
        """Record a failed scan; return the backoff wait."""
        self.stats.transient_errors += 1
        self.stats.consecutive_errors += 1
        delay = self._interval * self._factor ** (self.stats.consecutive_errors - 1)
        # The cap only applies to our own backoff, never below the base interval.
        delay = min(delay, max(self._max_backoff, self._interval))
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay


__all__ = ["RetryPolicy"]
