from __future__ import annotations

import struct
from dataclasses import dataclass
from functools import reduce

from .constants import END_MARKER, FRAME_HEADER_SIZE, MAX_CHUNK_INDEX, MAX_PAYLOAD_LEN, START_MARKER
from .errors import EncodingLimitExceeded, ProtocolParseError

# start marker, index (24-bit, split as 8 + 16), payload length, xor8, end marker
HEADER_FORMAT = "!BBHHBB"


def xor8_checksum(payload: bytes) -> int:
    """XOR of every payload byte except the last eight.

    The firmware verifies frames this way, so the trailing eight bytes are
    never covered. Payloads of eight bytes or fewer checksum to zero.
    """
    if len(payload) <= FRAME_HEADER_SIZE:
        return 0x00
    return reduce(lambda acc, b: acc ^ b, payload[: len(payload) - FRAME_HEADER_SIZE], 0)


@dataclass(frozen=True, slots=True)
class Frame:
    index: int
    payload: bytes = b""

    @property
    def checksum(self) -> int:
        return xor8_checksum(self.payload)

    def to_bytes(self) -> bytes:
        if not 0 <= self.index <= MAX_CHUNK_INDEX:
            raise EncodingLimitExceeded(f"chunk index too large: {self.index}")
        length = len(self.payload)
        if length > MAX_PAYLOAD_LEN:
            raise EncodingLimitExceeded(f"payload too large: {length}")
        header = struct.pack(
            HEADER_FORMAT,
            START_MARKER,
            self.index >> 16,
            self.index & 0xFFFF,
            length,
            self.checksum,
            END_MARKER,
        )
        return header + self.payload

    @staticmethod
    def from_bytes(raw: bytes) -> "Frame":
        if len(raw) < FRAME_HEADER_SIZE:
            raise ProtocolParseError("datagram too small to be a valid frame")

        start, index_hi, index_lo, length, checksum, end = struct.unpack(
            HEADER_FORMAT, raw[:FRAME_HEADER_SIZE]
        )
        if start != START_MARKER or end != END_MARKER:
            raise ProtocolParseError(f"bad frame markers: {start:#04x} {end:#04x}")

        payload = raw[FRAME_HEADER_SIZE:]
        if len(payload) != length:
            raise ProtocolParseError(f"length mismatch: header {length}, got {len(payload)}")

        frame = Frame(index=(index_hi << 16) | index_lo, payload=payload)
        if frame.checksum != checksum:
            raise ProtocolParseError("checksum mismatch")
        return frame


def encode_frame(index: int, payload: bytes) -> bytes:
    return Frame(index=index, payload=payload).to_bytes()
