"""Decoder for event payloads embedded in free-text log lines.

Log lines come from every program touching the listing address, so most of
them are not events at all. Decoding never raises: anything that is not a
well-formed finalize-computation event decodes to ``None``.
"""

import base64
import binascii
import re
from typing import Final

from completion_watcher.domain.event_constants import (
    DISCRIMINATOR_LENGTH,
    DISCRIMINATOR_OFFSET,
    EMITTER_LENGTH,
    EMITTER_OFFSET,
    FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR,
    HANDLE_LENGTH,
    HANDLE_OFFSET,
    MIN_EVENT_PAYLOAD_LENGTH,
    PROGRAM_DATA_MARKER,
)
from completion_watcher.domain.models import CandidateEvent

MAX_ENCODED_PAYLOAD_CHARS: Final[int] = 16_384
_ASCII_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"[\t\n\f\r ]+")


class EventDecoder:
    """Parses ``<marker><base64 payload>`` lines into candidate events."""

    def __init__(
        self,
        *,
        marker: str = PROGRAM_DATA_MARKER,
        discriminator: bytes = FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR,
    ) -> None:
        if not marker:
            raise ValueError("marker must not be empty")
        if len(discriminator) != DISCRIMINATOR_LENGTH:
            raise ValueError(
                f"discriminator must be {DISCRIMINATOR_LENGTH} bytes, got {len(discriminator)}"
            )
        self._marker = marker
        self._discriminator = bytes(discriminator)

    @property
    def discriminator(self) -> bytes:
        return self._discriminator

    def decode(self, raw_line: object) -> CandidateEvent | None:
        """Decode one log line.

        Args:
            raw_line: Log line as ``str`` or UTF-8 ``bytes``

        Returns:
            Candidate event, or None for unrelated, malformed, short or
            differently-tagged lines
        """
        if isinstance(raw_line, (bytes, bytearray)):
            line = bytes(raw_line).decode("utf-8", errors="replace")
        elif isinstance(raw_line, str):
            line = raw_line
        else:
            return None

        _, marker, encoded = line.partition(self._marker)
        if not marker:
            return None

        encoded = encoded.strip()
        if not encoded or len(encoded) > MAX_ENCODED_PAYLOAD_CHARS:
            return None

        payload = _b64decode(encoded)
        if payload is None or len(payload) < MIN_EVENT_PAYLOAD_LENGTH:
            return None

        discriminator = payload[DISCRIMINATOR_OFFSET : DISCRIMINATOR_OFFSET + DISCRIMINATOR_LENGTH]
        if discriminator != self._discriminator:
            return None

        return CandidateEvent(
            discriminator=discriminator,
            handle_bytes=payload[HANDLE_OFFSET : HANDLE_OFFSET + HANDLE_LENGTH],
            emitter_bytes=payload[EMITTER_OFFSET : EMITTER_OFFSET + EMITTER_LENGTH],
            payload_length=len(payload),
        )


def _b64decode(encoded: str) -> bytes | None:
    """Forgiving base64: ASCII whitespace is dropped and missing padding restored."""
    compact = _ASCII_WHITESPACE.sub("", encoded)
    if len(compact) % 4 == 1:
        return None
    try:
        return base64.b64decode(compact + "=" * (-len(compact) % 4), validate=True)
    except (binascii.Error, ValueError):
        return None


def encode_event_line(
    handle_bytes: bytes,
    emitter_bytes: bytes,
    *,
    discriminator: bytes = FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR,
    marker: str = PROGRAM_DATA_MARKER,
    trailing: bytes = b"",
) -> str:
    """Build a framed event line, as the emitting program logs it."""
    payload = discriminator + handle_bytes + emitter_bytes + trailing
    return marker + base64.b64encode(payload).decode("ascii")


_DEFAULT_DECODER: Final[EventDecoder] = EventDecoder()


def decode_event_line(raw_line: object) -> CandidateEvent | None:
    """Decode with the default finalize-computation decoder."""
    return _DEFAULT_DECODER.decode(raw_line)


__all__ = ["EventDecoder", "decode_event_line", "encode_event_line"]
