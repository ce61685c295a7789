from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass

from .constants import CHUNK_SIZE
from .net import Impairment, UdpEndpoint
from .simulator import SimulatedDevice
from .transfer import TransferEngine


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    bytes_transferred: int
    duration_s: float
    throughput_mbps: float
    ok: bool
    chunks_sent: int
    re_requests: int


def run_benchmark(
    *,
    size_bytes: int,
    loss_rate: float = 0.0,
    delay_ms: int = 0,
    chunk_size: int = CHUNK_SIZE,
    timeout_ms: int = 250,
    ready_timeout_s: float = 5.0,
) -> BenchmarkResult:
    """Upload random bytes to a simulated device on loopback.

    Loss applies to both directions. A lost create-file command or readiness
    "ok" ends the run with a ready timeout, the engine does not repeat its
    handshake.
    """
    payload = os.urandom(size_bytes)
    impair = Impairment(loss_rate=loss_rate, delay_ms=delay_ms)

    device_ep = UdpEndpoint.bound("127.0.0.1", 0, timeout_ms=timeout_ms, impairment=impair, name="device")
    device = SimulatedDevice(device_ep, chunk_size=chunk_size)
    t = threading.Thread(target=device.run, daemon=True)
    t.start()

    engine_ep = UdpEndpoint.bound("127.0.0.1", 0, timeout_ms=timeout_ms, impairment=impair, name="engine")
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "bench.bin")
        with open(path, "wb") as f:
            f.write(payload)
        try:
            engine = TransferEngine(engine_ep, chunk_size=chunk_size, ready_timeout_s=ready_timeout_s)
            outcome = engine.transfer(path, device_ep.address)
        finally:
            engine_ep.close()
            device.stop()
            t.join(timeout=10.0)
            device_ep.close()

    ok = outcome.ok and device.uploads.get("bench.bin") == payload
    duration_s = max(0.001, outcome.duration_s)
    return BenchmarkResult(
        bytes_transferred=size_bytes,
        duration_s=duration_s,
        throughput_mbps=(size_bytes * 8 / 1_000_000) / duration_s,
        ok=ok,
        chunks_sent=outcome.chunks_sent,
        re_requests=device.re_requests,
    )
