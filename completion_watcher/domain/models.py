"""Domain models for the completion watcher.

All models use Pydantic v2 for validation and serialization.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from completion_watcher.domain.event_constants import (
    DISCRIMINATOR_LENGTH,
    EMITTER_LENGTH,
    HANDLE_LENGTH,
)

if TYPE_CHECKING:
    from completion_watcher.config.settings import Settings

DEFAULT_WINDOW_SIZE = 50
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_MAX_ATTEMPTS = 120
DEFAULT_TRANSIENT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_BACKOFF_SECONDS = 30.0
DEFAULT_MAX_LINES_PER_CONTAINER = 512


class ConfirmationLevel(str, Enum):
    """How committed fetched container content must be."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


class WatchState(str, Enum):
    """Lifecycle of a single await."""

    IDLE = "idle"
    POLLING = "polling"
    FOUND = "found"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class AttemptResult(str, Enum):
    """Classification of one poll attempt."""

    MATCH = "match"
    EMPTY = "empty"
    ERROR = "error"


class CandidateEvent(BaseModel):
    """Decoded finalize-computation event payload."""

    model_config = ConfigDict(frozen=True)

    discriminator: bytes = Field(
        ...,
        min_length=DISCRIMINATOR_LENGTH,
        max_length=DISCRIMINATOR_LENGTH,
        description="Event kind tag",
    )
    handle_bytes: bytes = Field(
        ...,
        min_length=HANDLE_LENGTH,
        max_length=HANDLE_LENGTH,
        description="Little-endian request handle",
    )
    emitter_bytes: bytes = Field(
        ...,
        min_length=EMITTER_LENGTH,
        max_length=EMITTER_LENGTH,
        description="Emitter identity (32-byte address)",
    )
    payload_length: int = Field(..., ge=0, description="Decoded payload size in bytes")

    @property
    def handle(self) -> int:
        return int.from_bytes(self.handle_bytes, "little")


class ContainerContent(BaseModel):
    """Content of one container as returned by the log source."""

    log_lines: list[str] = Field(default_factory=list, description="Raw log lines")
    found: bool = Field(default=True, description="Whether the container exists yet")


class LogContainer(BaseModel):
    """A fetched container (transaction) with its log lines."""

    container_id: str = Field(..., description="Externally assigned identifier")
    log_lines: list[str] = Field(default_factory=list, description="Raw log lines")
    lines_truncated: int = Field(
        default=0, description="Lines dropped by the per-container ceiling"
    )


class WatchConfig(BaseModel):
    """Polling options for one await."""

    window_size: int = Field(
        default=DEFAULT_WINDOW_SIZE, ge=1, description="Containers scanned per attempt"
    )
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        ge=0.0,
        description="Delay between attempts",
    )
    max_attempts: int = Field(
        default=DEFAULT_MAX_ATTEMPTS, ge=1, description="Hard retry ceiling"
    )
    confirmation_level: ConfirmationLevel = Field(
        default=ConfirmationLevel.CONFIRMED,
        description="Commitment passed through to the log source",
    )
    timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        description="Optional wall-clock budget, converted to a deadline at start",
    )
    transient_backoff_factor: float = Field(
        default=DEFAULT_TRANSIENT_BACKOFF_FACTOR,
        ge=1.0,
        description="Multiplier applied to the interval after consecutive scan errors",
    )
    max_backoff_seconds: float = Field(
        default=DEFAULT_MAX_BACKOFF_SECONDS,
        ge=0.0,
        description="Cap on the delay after scan errors",
    )
    max_lines_per_container: int = Field(
        default=DEFAULT_MAX_LINES_PER_CONTAINER,
        ge=1,
        description="Log lines decoded per container before the rest are dropped",
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> WatchConfig:
        return cls(
            window_size=settings.window_size,
            poll_interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.max_attempts,
            confirmation_level=settings.confirmation_level,
            timeout_seconds=settings.timeout_seconds,
            transient_backoff_factor=settings.transient_backoff_factor,
            max_backoff_seconds=settings.max_backoff_seconds,
            max_lines_per_container=settings.max_lines_per_container,
        )


class AttemptStats(BaseModel):
    """Running counts kept by the retry policy."""

    attempts: int = Field(default=0, description="Poll attempts made")
    empty_scans: int = Field(default=0, description="Attempts that scanned without a match")
    transient_errors: int = Field(default=0, description="Attempts whose scan failed")
    consecutive_errors: int = Field(
        default=0, description="Failed attempts since the last successful scan"
    )


class AttemptRecord(BaseModel):
    """Diagnostics for a single poll attempt."""

    attempt: int = Field(..., ge=1, description="1-based attempt number")
    result: AttemptResult
    containers_scanned: int = Field(default=0)
    lines_scanned: int = Field(default=0)
    candidates_seen: int = Field(
        default=0, description="Lines that decoded to a finalize event of any handle"
    )
    error: str | None = Field(default=None, description="Scan error, if any")
    delay_seconds: float | None = Field(
        default=None, description="Wait scheduled after this attempt"
    )


class Found(BaseModel):
    """Terminal outcome: the completion event was located."""

    kind: Literal["found"] = "found"
    handle: int = Field(..., ge=0)
    container_id: str = Field(..., description="Container holding the event")
    attempts: int = Field(..., ge=1)
    stats: AttemptStats = Field(default_factory=AttemptStats)


class TimedOut(BaseModel):
    """Terminal outcome: polling budget exhausted without a match.

    This means "unknown outcome", not "computation failed".
    """

    kind: Literal["timed_out"] = "timed_out"
    handle: int = Field(..., ge=0)
    attempts: int = Field(..., ge=0)
    reason: Literal["max_attempts", "deadline"] = "max_attempts"
    stats: AttemptStats = Field(default_factory=AttemptStats)


PollOutcome = Found | TimedOut
