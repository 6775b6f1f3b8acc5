"""Tests for request handle encoding."""

import pytest

from completion_watcher.domain.exceptions import HandleOverflowError, ValidationError
from completion_watcher.services.handle_codec import (
    decode_handle,
    encode_handle,
    random_handle,
)


def test_encode_handle_is_little_endian() -> None:
    encoded = encode_handle(0x1122334455667711)

    assert encoded == bytes([0x11, 0x77, 0x66, 0x55, 0x44, 0x33, 0x22, 0x11])


def test_encode_handle_pads_small_values() -> None:
    assert encode_handle(1) == b"\x01" + b"\x00" * 7
    assert encode_handle(0, 4) == b"\x00\x00\x00\x00"


@pytest.mark.parametrize(
    ("handle", "width"),
    [(0, 8), (1, 8), (2**64 - 1, 8), (0x1122334455667711, 8), (255, 1), (2**128 - 1, 16)],
)
def test_decode_inverts_encode(handle: int, width: int) -> None:
    assert decode_handle(encode_handle(handle, width)) == handle


def test_encode_handle_rejects_values_that_do_not_fit() -> None:
    with pytest.raises(HandleOverflowError) as exc_info:
        encode_handle(2**64)

    assert exc_info.value.handle == 2**64
    assert exc_info.value.width == 8
    assert isinstance(exc_info.value, ValidationError)


def test_encode_handle_rejects_negative_values() -> None:
    with pytest.raises(HandleOverflowError):
        encode_handle(-1)


def test_encode_handle_rejects_non_positive_width() -> None:
    with pytest.raises(ValueError):
        encode_handle(1, 0)


def test_random_handle_fits_width() -> None:
    for _ in range(20):
        handle = random_handle()
        assert 0 <= handle < 2**64
        assert len(encode_handle(handle)) == 8
