"""Wire-format constants for the finalize-computation event."""

import hashlib
from typing import Final

DISCRIMINATOR_LENGTH: Final[int] = 8
HANDLE_LENGTH: Final[int] = 8
EMITTER_LENGTH: Final[int] = 32

DISCRIMINATOR_OFFSET: Final[int] = 0
HANDLE_OFFSET: Final[int] = DISCRIMINATOR_OFFSET + DISCRIMINATOR_LENGTH
EMITTER_OFFSET: Final[int] = HANDLE_OFFSET + HANDLE_LENGTH
MIN_EVENT_PAYLOAD_LENGTH: Final[int] = EMITTER_OFFSET + EMITTER_LENGTH

PROGRAM_DATA_MARKER: Final[str] = "Program data: "

FINALIZE_COMPUTATION_EVENT_NAME: Final[str] = "FinalizeComputationEvent"

# First 8 bytes of sha256("event:FinalizeComputationEvent").
FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR: Final[bytes] = bytes(
    [27, 75, 117, 221, 191, 213, 253, 249]
)


def event_discriminator(event_name: str) -> bytes:
    """Derive the discriminator tag for an event kind.

    The tag is the first ``DISCRIMINATOR_LENGTH`` bytes of
    ``sha256("event:<EventName>")``, which lets producers and consumers of
    other event kinds compute their tags the same way.

    Args:
        event_name: Logical event name, e.g. ``"FinalizeComputationEvent"``

    Returns:
        Fixed-width discriminator bytes
    """
    if not event_name:
        raise ValueError("event_name must not be empty")
    digest = hashlib.sha256(f"event:{event_name}".encode()).digest()
    return digest[:DISCRIMINATOR_LENGTH]


__all__ = [
    "DISCRIMINATOR_LENGTH",
    "DISCRIMINATOR_OFFSET",
    "EMITTER_LENGTH",
    "EMITTER_OFFSET",
    "FINALIZE_COMPUTATION_EVENT_DISCRIMINATOR",
    "FINALIZE_COMPUTATION_EVENT_NAME",
    "HANDLE_LENGTH",
    "HANDLE_OFFSET",
    "MIN_EVENT_PAYLOAD_LENGTH",
    "PROGRAM_DATA_MARKER",
    "event_discriminator",
]
