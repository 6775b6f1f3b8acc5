"""Conversion of emitter identities to their 32-byte wire form."""

import base58

from completion_watcher.domain.event_constants import EMITTER_LENGTH
from completion_watcher.domain.exceptions import InvalidAddressError

EmitterLike = str | bytes | bytearray


def encode_address(address: EmitterLike) -> bytes:
    """Return the fixed-width identity bytes of ``address``.

    Strings are treated as base58 account addresses; raw bytes are passed
    through after a length check.

    Raises:
        InvalidAddressError: If the address is not valid base58 or not 32 bytes
    """
    if isinstance(address, (bytes, bytearray)):
        raw = bytes(address)
    elif isinstance(address, str):
        try:
            raw = base58.b58decode(address.strip())
        except ValueError as exc:
            raise InvalidAddressError(f"Invalid base58 address: {address!r}") from exc
    else:
        raise InvalidAddressError(f"Unsupported address type: {type(address).__name__}")

    if len(raw) != EMITTER_LENGTH:
        raise InvalidAddressError(
            f"Address must decode to {EMITTER_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def format_address(identity: bytes) -> str:
    return base58.b58encode(identity).decode("ascii")


__all__ = ["EmitterLike", "encode_address", "format_address"]
