from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from .constants import MAX_REQUEST_INDEX, MSG_TRANSFER_COMPLETED, MSG_TRANSFER_ERROR

CHUNK_REQUEST = re.compile(r"N (?P<chunk>[0-9]+)")


@dataclass(frozen=True, slots=True)
class ChunkIndex:
    index: int


@dataclass(frozen=True, slots=True)
class TransferCompleted:
    pass


@dataclass(frozen=True, slots=True)
class TransferError:
    pass


@dataclass(frozen=True, slots=True)
class Unparseable:
    reason: str


ChunkSignal = Union[ChunkIndex, TransferCompleted, TransferError, Unparseable]


def classify_chunk_request(body: str) -> ChunkSignal:
    # terminal messages take priority over any "N <n>" on the same line
    if MSG_TRANSFER_COMPLETED in body:
        return TransferCompleted()
    if MSG_TRANSFER_ERROR in body:
        return TransferError()

    m = CHUNK_REQUEST.search(body)
    if m is None:
        return Unparseable("failed to parse chunk")

    digits = m.group("chunk").lstrip("0") or "0"
    # u64 holds at most 20 decimal digits; also keeps int() clear of its digit limit
    if len(digits) > 20 or int(digits) > MAX_REQUEST_INDEX:
        return Unparseable("number too large to fit in target type")
    return ChunkIndex(int(digits))
