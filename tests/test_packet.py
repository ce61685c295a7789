from __future__ import annotations

import pytest

from netprint.errors import EncodingLimitExceeded, ProtocolParseError
from netprint.packet import Frame, encode_frame, xor8_checksum


@pytest.mark.parametrize("payload", [b"", b"Test\r\n", b"Testq\r\n", b"Testqw\r\n"])
def test_checksum_short_payload_is_zero(payload):
    assert xor8_checksum(payload) == 0x00


@pytest.mark.parametrize(
    "payload, expected",
    [
        (b"Testqwe\r\n", 0x54),
        (b"Testqwer\r\n", 0x31),
        (b"Testqwert\r\n", 0x42),
        (b"Testqwerty\r\n", 0x36),
    ],
)
def test_checksum_skips_last_eight_bytes(payload, expected):
    assert xor8_checksum(payload) == expected


def test_checksum_ignores_trailing_bytes():
    assert xor8_checksum(b"\x01\x02" + b"\xff" * 8) == xor8_checksum(b"\x01\x02" + b"\x00" * 8) == 0x03


def test_frame_layout():
    payload = b"Testqwer\r\n"
    raw = encode_frame(0x0A0B0C, payload)
    assert len(raw) == len(payload) + 8
    assert raw[0] == 0xAA
    assert raw[1:4] == b"\x0a\x0b\x0c"
    assert raw[4:6] == b"\x00\x0a"
    assert raw[6] == 0x31
    assert raw[7] == 0x55
    assert raw[8:] == payload


def test_decode_recovers_index_and_payload():
    raw = encode_frame(70000, b"x" * 1442)
    frame = Frame.from_bytes(raw)
    assert frame.index == 70000
    assert frame.payload == b"x" * 1442


def test_empty_payload_frame():
    raw = encode_frame(3, b"")
    assert raw == b"\xaa\x00\x00\x03\x00\x00\x00\x55"


def test_index_limit():
    assert len(encode_frame((1 << 24) - 1, b"a")) == 9
    with pytest.raises(EncodingLimitExceeded):
        encode_frame(1 << 24, b"a")


def test_length_limit():
    assert len(encode_frame(0, b"\x00" * 65535)) == 65535 + 8
    with pytest.raises(EncodingLimitExceeded):
        encode_frame(0, b"\x00" * 65536)


def test_bad_checksum():
    raw = bytearray(encode_frame(2, b"0123456789"))
    raw[8] ^= 0xFF
    with pytest.raises(ProtocolParseError):
        Frame.from_bytes(bytes(raw))


def test_bad_marker_and_truncation():
    raw = encode_frame(2, b"0123456789")
    with pytest.raises(ValueError):
        Frame.from_bytes(b"\x00" + raw[1:])
    with pytest.raises(ValueError):
        Frame.from_bytes(raw[:-1])
    with pytest.raises(ValueError):
        Frame.from_bytes(raw[:5])
