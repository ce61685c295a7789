from __future__ import annotations

import enum
import logging
import os
import time
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Optional

from .constants import CHUNK_SIZE, CMD_CREATE_FILE
from .errors import (
    DeviceReportedError,
    EncodingLimitExceeded,
    FileIOError,
    NetprintError,
    ReadyTimeout,
    TransportError,
)
from .net import Address, Transport
from .packet import encode_frame
from .response import classify_response
from .signals import ChunkIndex, TransferCompleted, TransferError, Unparseable, classify_chunk_request

log = logging.getLogger(__name__)


class TransferState(enum.Enum):
    IDLE = "idle"
    CREATING_FILE = "creating_file"
    AWAITING_READY = "awaiting_ready"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(enum.Enum):
    DEVICE_REPORTED = "device_reported"
    ENCODING_LIMIT = "encoding_limit"
    FILE_IO = "file_io"
    READY_TIMEOUT = "ready_timeout"


_REASONS: tuple[tuple[type[NetprintError], FailureReason], ...] = (
    (DeviceReportedError, FailureReason.DEVICE_REPORTED),
    (EncodingLimitExceeded, FailureReason.ENCODING_LIMIT),
    (FileIOError, FailureReason.FILE_IO),
    (ReadyTimeout, FailureReason.READY_TIMEOUT),
)


@dataclass(frozen=True, slots=True)
class TransferProgress:
    chunk: int
    start: int
    end: int
    total: int


@dataclass(slots=True)
class TransferOutcome:
    state: TransferState
    reason: FailureReason | None = None
    detail: str = ""
    chunks_sent: int = 0
    bytes_sent: int = 0
    duration_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.state is TransferState.COMPLETED


@dataclass(slots=True)
class TransferEngine:
    """Uploads one file with the device-driven chunk protocol.

    After the create-file command and the device's "ok", the device asks for
    chunks by index and the engine answers each request with one frame. Only
    the device decides when the transfer is over, so a lost frame is simply
    requested again.
    """

    transport: Transport
    chunk_size: int = CHUNK_SIZE
    ready_timeout_s: Optional[float] = None
    clock: Callable[[], float] = time.monotonic
    progress: Optional[Callable[[TransferProgress], None]] = None
    state: TransferState = field(default=TransferState.IDLE, init=False)
    _chunks_sent: int = field(default=0, init=False)
    _bytes_sent: int = field(default=0, init=False)

    def transfer(self, file_path: str, device_address: Address) -> TransferOutcome:
        self.state = TransferState.IDLE
        self._chunks_sent = 0
        self._bytes_sent = 0
        start_ts = self.clock()

        try:
            self._run(file_path, device_address)
        except NetprintError as e:
            reason = next((r for cls, r in _REASONS if isinstance(e, cls)), None)
            if reason is None:
                raise
            self._enter(TransferState.FAILED)
            log.error("transfer failed (%s): %s", reason.value, e)
            return self._outcome(reason, str(e), start_ts)

        self._enter(TransferState.COMPLETED)
        return self._outcome(None, "", start_ts)

    def _outcome(self, reason: FailureReason | None, detail: str, start_ts: float) -> TransferOutcome:
        return TransferOutcome(
            state=self.state,
            reason=reason,
            detail=detail,
            chunks_sent=self._chunks_sent,
            bytes_sent=self._bytes_sent,
            duration_s=max(0.0, self.clock() - start_ts),
        )

    def _enter(self, state: TransferState) -> None:
        log.info("state %s -> %s", self.state.value, state.value)
        self.state = state

    def _run(self, file_path: str, address: Address) -> None:
        try:
            filesize = os.path.getsize(file_path)
            f = open(file_path, "rb")
        except OSError as e:
            raise FileIOError(f"cannot open {file_path}: {e}") from e

        with f:
            self._create_file(filesize, os.path.basename(file_path), address)
            self._await_ready()
            self._serve_chunks(f, filesize, address)

    def _create_file(self, filesize: int, filename: str, address: Address) -> None:
        self._enter(TransferState.CREATING_FILE)
        command = CMD_CREATE_FILE.format(size=filesize, name=filename)
        try:
            self.transport.send(command.encode("utf-8"), address)
        except TransportError as e:
            # the device may still answer the readiness handshake
            log.warning("failed to create file: %s", e)

    def _await_ready(self) -> None:
        self._enter(TransferState.AWAITING_READY)
        deadline = None if self.ready_timeout_s is None else self.clock() + self.ready_timeout_s

        while True:
            if deadline is not None and self.clock() >= deadline:
                raise ReadyTimeout(f"device not ready after {self.ready_timeout_s:g}s")
            try:
                data, addr = self.transport.receive()
            except TransportError as e:
                log.debug("waiting for ready: %s", e)
                continue

            body = classify_response(data, addr).body
            log.info("%s", body)
            if body.startswith("ok"):
                return

    def _serve_chunks(self, f: BinaryIO, filesize: int, address: Address) -> None:
        self._enter(TransferState.TRANSFERRING)

        while True:
            try:
                data, addr = self.transport.receive()
            except TransportError as e:
                log.debug("waiting for chunk request: %s", e)
                continue

            signal = classify_chunk_request(classify_response(data, addr).body)

            if isinstance(signal, TransferCompleted):
                log.info("file transfer completed")
                return
            if isinstance(signal, TransferError):
                raise DeviceReportedError("device reported file transfer error")
            if isinstance(signal, Unparseable):
                log.info("ignoring device line: %s", signal.reason)
                continue
            if isinstance(signal, ChunkIndex):
                self._send_chunk(f, signal.index, filesize, address)

    def _send_chunk(self, f: BinaryIO, index: int, filesize: int, address: Address) -> None:
        start = index * self.chunk_size
        if start > filesize:
            log.debug("ignoring request for chunk %d beyond end of file", index)
            return

        count = min(self.chunk_size, filesize - start)
        try:
            f.seek(start)
            payload = f.read(count)
        except OSError as e:
            raise FileIOError(f"failed to read chunk {index}: {e}") from e
        if len(payload) != count:
            raise FileIOError(f"short read at offset {start}: wanted {count}, got {len(payload)}")

        frame = encode_frame(index, payload)
        log.debug("sending chunk %d: %d-%d of %d", index, start, start + count, filesize)
        if self.progress is not None:
            self.progress(TransferProgress(chunk=index, start=start, end=start + count, total=filesize))

        try:
            self.transport.send(frame, address)
        except TransportError as e:
            # the device asks again for anything it did not get
            log.warning("failed to send chunk %d: %s", index, e)
            return
        self._chunks_sent += 1
        self._bytes_sent += count
