from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Protocol, Tuple

from .constants import DEFAULT_TIMEOUT_MS, RECV_BUFSIZE
from .errors import TransportError

Address = Tuple[str, int]

log = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, data: bytes, address: Address) -> None: ...

    def receive(self) -> Tuple[bytes, Address]: ...


@dataclass(frozen=True, slots=True)
class Impairment:
    loss_rate: float = 0.0
    delay_ms: int = 0

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and random.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


class UdpEndpoint:
    """Blocking UDP socket with a read timeout; socket errors surface as TransportError."""

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None, name: str = ""):
        self.sock = sock
        self.impairment = impairment or Impairment()
        self.name = name

    @classmethod
    def bound(
        cls,
        host: str = "0.0.0.0",
        port: int = 0,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        impairment: Impairment | None = None,
        broadcast: bool = False,
        name: str = "",
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            if broadcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            raise TransportError(f"cannot bind {host}:{port}: {e}") from e
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment, name)

    @property
    def address(self) -> Address:
        host, port = self.sock.getsockname()[:2]
        return host, port

    def send(self, data: bytes, address: Address) -> None:
        if self.impairment.should_drop():
            log.debug("[%s] dropped outbound %d bytes", self.name, len(data))
            return
        self.impairment.sleep_if_needed()
        try:
            self.sock.sendto(data, address)
        except OSError as e:
            raise TransportError(f"send to {address[0]}:{address[1]} failed: {e}") from e

    def receive(self) -> Tuple[bytes, Address]:
        while True:
            try:
                data, addr = self.sock.recvfrom(RECV_BUFSIZE)
            except socket.timeout as e:
                raise TransportError("receive timed out") from e
            except OSError as e:
                raise TransportError(f"receive failed: {e}") from e
            if self.impairment.should_drop():
                log.debug("[%s] dropped inbound %d bytes", self.name, len(data))
                continue
            self.impairment.sleep_if_needed()
            return data, (addr[0], addr[1])

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpEndpoint":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def local_ip() -> str:
    """Address of the interface routing off-host. Connecting a UDP socket sends nothing."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(("10.255.255.255", 1))
        return probe.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        probe.close()
