from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Dict

from .constants import CHUNK_SIZE, MSG_TRANSFER_COMPLETED, MSG_TRANSFER_ERROR
from .errors import ProtocolParseError, TransportError
from .net import Address, UdpEndpoint
from .packet import Frame

CREATE_FILE = re.compile(r"M828 P(?P<size>[0-9]+) U:(?P<name>.+)")

# terminal messages are repeated because nothing acknowledges them
TERMINAL_REPEAT = 3

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SimulatedDevice:
    """Loopback stand-in for the printer firmware.

    Answers the one-shot commands and, after a create-file command, pulls
    the file chunk by chunk, asking again for any chunk that times out or
    arrives damaged.
    """

    endpoint: UdpEndpoint
    chunk_size: int = CHUNK_SIZE
    max_requests: int = 20
    info: Dict[str, str] = field(
        default_factory=lambda: {"Machine Type": "netprint simulator", "Firmware": "V1.0"}
    )
    uploads: Dict[str, bytes] = field(default_factory=dict)
    re_requests: int = 0
    stop_event: threading.Event = field(default_factory=threading.Event)

    def run(self) -> None:
        while not self.stop_event.is_set():
            try:
                data, addr = self.endpoint.receive()
            except TransportError:
                continue
            self.handle(data, addr)

    def stop(self) -> None:
        self.stop_event.set()

    def handle(self, data: bytes, addr: Address) -> None:
        line = data.decode("utf-8", errors="replace").strip()
        m = CREATE_FILE.match(line)
        if m is not None:
            self._reply("ok\r\n", addr)
            self._receive_file(m.group("name").strip(), int(m.group("size")), addr)
        elif line.startswith("M888"):
            self._reply("ok\r\n", addr)
        elif line.startswith("M86"):
            self._reply("X:0.00 Y:0.00 Z:0.00\r\nok\r\n", addr)
        elif line.startswith("M115"):
            info = "".join(f"{k}: {v}\r" for k, v in self.info.items())
            self._reply(f"{info}\nok\r\n", addr)
        else:
            log.debug("simulator ignoring %r", line)

    def _reply(self, text: str, addr: Address) -> None:
        try:
            self.endpoint.send(text.encode("utf-8"), addr)
        except TransportError as e:
            log.debug("simulator reply failed: %s", e)

    def _receive_file(self, name: str, size: int, addr: Address) -> None:
        chunk_count = -(-size // self.chunk_size)
        chunks = []
        for index in range(chunk_count):
            payload = self._pull_chunk(index, addr)
            if payload is None:
                log.info("simulator giving up on chunk %d of %s", index, name)
                self._terminal(MSG_TRANSFER_ERROR, addr)
                return
            chunks.append(payload)

        self.uploads[name] = b"".join(chunks)
        self._terminal(MSG_TRANSFER_COMPLETED, addr)

    def _pull_chunk(self, index: int, addr: Address) -> bytes | None:
        for attempt in range(self.max_requests):
            if attempt:
                self.re_requests += 1
            self._reply(f"N {index} ok\r\n", addr)
            try:
                raw, _ = self.endpoint.receive()
            except TransportError:
                continue
            try:
                frame = Frame.from_bytes(raw)
            except ProtocolParseError as e:
                log.debug("simulator rejected frame for chunk %d: %s", index, e)
                continue
            if frame.index == index:
                return frame.payload
        return None

    def _terminal(self, message: str, addr: Address) -> None:
        for _ in range(TERMINAL_REPEAT):
            self._reply(f"{message}\r\n", addr)
