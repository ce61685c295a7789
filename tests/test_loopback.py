from __future__ import annotations

import os
import threading

import pytest

from netprint.bench import run_benchmark
from netprint.device import discover, query_info, query_stats
from netprint.net import UdpEndpoint
from netprint.simulator import SimulatedDevice
from netprint.transfer import TransferEngine


@pytest.fixture
def device():
    ep = UdpEndpoint.bound("127.0.0.1", 0, timeout_ms=200, name="device")
    dev = SimulatedDevice(ep)
    t = threading.Thread(target=dev.run, daemon=True)
    t.start()
    yield dev
    dev.stop()
    t.join(timeout=5.0)
    ep.close()


@pytest.fixture
def client():
    ep = UdpEndpoint.bound("127.0.0.1", 0, timeout_ms=500, name="client")
    yield ep
    ep.close()


def test_upload_to_simulated_device(device, client, tmp_path):
    data = os.urandom(5000)
    path = tmp_path / "part.gcode"
    path.write_bytes(data)

    outcome = TransferEngine(client, ready_timeout_s=5.0).transfer(str(path), device.endpoint.address)

    assert outcome.ok
    assert outcome.chunks_sent == 4
    assert device.uploads["part.gcode"] == data


def test_upload_empty_file(device, client, tmp_path):
    path = tmp_path / "empty.gcode"
    path.write_bytes(b"")

    outcome = TransferEngine(client, ready_timeout_s=5.0).transfer(str(path), device.endpoint.address)

    assert outcome.ok
    assert outcome.chunks_sent == 0
    assert device.uploads["empty.gcode"] == b""


def test_discover_stats_and_info(device, client):
    found = discover(client, "127.0.0.1", device.endpoint.address)
    assert [d.address for d in found] == [device.endpoint.address]

    stats = query_stats(client, device.endpoint.address)
    assert stats.ok
    assert stats.body.startswith("X:0.00")

    info = query_info(client, device.endpoint.address)
    assert info.info == device.info


def test_benchmark_without_loss():
    r = run_benchmark(size_bytes=20_000, timeout_ms=200)
    assert r.ok
    assert r.bytes_transferred == 20_000
    assert r.chunks_sent == 14
