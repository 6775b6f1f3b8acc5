"""Byte-exact correlation of candidate events with a pending request."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from completion_watcher.domain.models import CandidateEvent
from completion_watcher.services.address_codec import EmitterLike, encode_address
from completion_watcher.services.handle_codec import encode_handle


def matches(candidate: CandidateEvent, handle_bytes: bytes, emitter_bytes: bytes) -> bool:
    """True when both handle and emitter fields equal the expected bytes."""
    return (
        candidate.handle_bytes == handle_bytes
        and candidate.emitter_bytes == emitter_bytes
    )


class MatchKey(BaseModel):
    """Comparison key precomputed once per await."""

    model_config = ConfigDict(frozen=True)

    handle: int = Field(..., ge=0)
    handle_bytes: bytes
    emitter_bytes: bytes

    @classmethod
    def build(cls, handle: int, emitter: EmitterLike) -> MatchKey:
        return cls(
            handle=handle,
            handle_bytes=encode_handle(handle),
            emitter_bytes=encode_address(emitter),
        )

    def matches(self, candidate: CandidateEvent) -> bool:
        return matches(candidate, self.handle_bytes, self.emitter_bytes)


__all__ = ["MatchKey", "matches"]
