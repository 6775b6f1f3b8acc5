"""Exception hierarchy for the completion watcher.

Following error taxonomy: retryable, non-retryable, validation, rate-limit.
Only timeouts and explicit cancellation ever reach callers of the watcher;
retryable errors are absorbed by the scan loop.
"""


class CompletionWatcherError(Exception):
    """Base exception for all watcher errors."""

    pass


class RetryableError(CompletionWatcherError):
    """Errors that can be retried (network issues, temporary failures)."""

    pass


class NonRetryableError(CompletionWatcherError):
    """Errors that should not be retried (validation, logic errors)."""

    pass


class ValidationError(NonRetryableError):
    """Input validation errors."""

    pass


class HandleOverflowError(ValidationError):
    """Request handle does not fit in the requested byte width."""

    def __init__(self, handle: int, width: int) -> None:
        self.handle = handle
        self.width = width
        super().__init__(
            f"Handle {handle} is not representable as an unsigned {width}-byte integer"
        )


class InvalidAddressError(ValidationError):
    """Emitter or listing address cannot be decoded to a 32-byte identity."""

    pass


class LogSourceError(RetryableError):
    """Log source (RPC) communication errors."""

    pass


class RateLimitError(LogSourceError):
    """Log source rate limit exceeded."""

    def __init__(self, retry_after: float | None = None) -> None:
        """Initialize with optional retry_after seconds."""
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Retry after: {retry_after}s")


class AwaitTimeoutError(NonRetryableError):
    """No completion event was observed within the polling budget."""

    def __init__(self, handle: int, attempts: int, reason: str = "max_attempts") -> None:
        self.handle = handle
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Computation finalization timed out after {attempts} attempts "
            f"for offset {handle} ({reason})"
        )


class AwaitCancelledError(NonRetryableError):
    """The caller cancelled an in-progress await."""

    def __init__(self, handle: int, attempts: int) -> None:
        self.handle = handle
        self.attempts = attempts
        super().__init__(
            f"Await for offset {handle} cancelled after {attempts} attempts"
        )
