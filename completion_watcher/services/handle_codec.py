"""Fixed-width little-endian encoding of request handles."""

import secrets

from completion_watcher.domain.event_constants import HANDLE_LENGTH
from completion_watcher.domain.exceptions import HandleOverflowError


def encode_handle(handle: int, width: int = HANDLE_LENGTH) -> bytes:
    """Serialize a request handle to ``width`` little-endian bytes.

    Values that do not fit are rejected rather than truncated.

    Args:
        handle: Unsigned request handle (computation offset)
        width: Output width in bytes

    Returns:
        Little-endian bytes, zero-padded to ``width``

    Raises:
        HandleOverflowError: If ``handle`` is negative or wider than ``width``

    Example:
        >>> encode_handle(1, 4)
        b'\\x01\\x00\\x00\\x00'
    """
    if width <= 0:
        raise ValueError("width must be positive")
    if handle < 0 or handle >= 1 << (8 * width):
        raise HandleOverflowError(handle, width)
    return handle.to_bytes(width, "little")


def decode_handle(data: bytes) -> int:
    """Inverse of :func:`encode_handle`."""
    return int.from_bytes(data, "little")


def random_handle(width: int = HANDLE_LENGTH) -> int:
    """Pick a random handle for a new submission."""
    return secrets.randbits(8 * width)


__all__ = ["decode_handle", "encode_handle", "random_handle"]
