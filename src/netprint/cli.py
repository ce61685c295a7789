from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Any, Dict

from .bench import run_benchmark
from .constants import BROADCAST_HOST, CHUNK_SIZE, DEFAULT_TIMEOUT_MS, DISCOVERY_PORT
from .device import discover, query_info, query_stats, send_command
from .errors import TransportError
from .net import Address, UdpEndpoint, local_ip
from .transfer import TransferEngine, TransferProgress

log = logging.getLogger(__name__)


def _emit(args: argparse.Namespace, payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2) if args.json else payload)


def _endpoint(args: argparse.Namespace, broadcast: bool = False) -> UdpEndpoint:
    return UdpEndpoint.bound(args.bind_host, args.bind_port, timeout_ms=args.timeout_ms, broadcast=broadcast)


def _target(args: argparse.Namespace) -> Address:
    return args.host, args.port


def cmd_discover(args: argparse.Namespace) -> int:
    ip = args.local_ip or local_ip()
    with _endpoint(args, broadcast=True) as udp:
        devices = discover(udp, ip, (args.broadcast, args.port))
    _emit(args, {"role": "discover", "devices": [f"{d.address[0]}:{d.address[1]}" for d in devices]})
    return 0 if devices else 1


def cmd_stats(args: argparse.Namespace) -> int:
    with _endpoint(args) as udp:
        response = query_stats(udp, _target(args))
    _emit(args, {"role": "stats", "status": response.status.name, "body": response.body})
    return 0 if response.ok else 1


def cmd_info(args: argparse.Namespace) -> int:
    with _endpoint(args) as udp:
        device = query_info(udp, _target(args))
    _emit(args, {"role": "info", "address": f"{device.address[0]}:{device.address[1]}", "info": device.info})
    return 0


def cmd_command(args: argparse.Namespace) -> int:
    with _endpoint(args) as udp:
        response = send_command(udp, args.text, _target(args))
    _emit(args, {"role": "command", "status": response.status.name, "body": response.body})
    return 0 if response.ok else 1


def log_progress(p: TransferProgress) -> None:
    log.info("sending chunk %d: %d-%d of %d", p.chunk, p.start, p.end, p.total)


def cmd_upload(args: argparse.Namespace) -> int:
    with _endpoint(args) as udp:
        engine = TransferEngine(
            udp,
            chunk_size=args.chunk_size,
            ready_timeout_s=args.ready_timeout,
            progress=log_progress,
        )
        outcome = engine.transfer(args.file, _target(args))

    payload = {
        "role": "upload",
        "state": outcome.state.value,
        "reason": outcome.reason.value if outcome.reason else None,
        "detail": outcome.detail,
        "chunks": outcome.chunks_sent,
        "bytes": outcome.bytes_sent,
        "seconds": outcome.duration_s,
    }
    _emit(args, payload)
    return 0 if outcome.ok else 1


def cmd_bench(args: argparse.Namespace) -> int:
    r = run_benchmark(
        size_bytes=args.size_bytes,
        loss_rate=args.loss_rate,
        delay_ms=args.delay_ms,
        chunk_size=args.chunk_size,
        timeout_ms=args.timeout_ms,
        ready_timeout_s=5.0 if args.ready_timeout is None else args.ready_timeout,
    )
    _emit(args, {"role": "bench", **asdict(r)})
    return 0 if r.ok else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="netprint", description="Discover and upload files to UDP-connected printers.")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS, help="read timeout per receive")
        x.add_argument("--bind-host", default="0.0.0.0")
        x.add_argument("--bind-port", type=int, default=0)
        x.add_argument("--json", action="store_true")

    def add_target(x: argparse.ArgumentParser) -> None:
        x.add_argument("--host", required=True)
        x.add_argument("--port", type=int, default=DISCOVERY_PORT)

    disc = sub.add_parser("discover", help="broadcast a discovery request")
    add_common(disc)
    disc.add_argument("--broadcast", default=BROADCAST_HOST)
    disc.add_argument("--port", type=int, default=DISCOVERY_PORT)
    disc.add_argument("--local-ip", default=None, help="address announced to the device")
    disc.set_defaults(func=cmd_discover)

    stats = sub.add_parser("stats", help="query device status (M86)")
    add_common(stats)
    add_target(stats)
    stats.set_defaults(func=cmd_stats)

    info = sub.add_parser("info", help="query device info (M115)")
    add_common(info)
    add_target(info)
    info.set_defaults(func=cmd_info)

    command = sub.add_parser("command", help="send one raw command line")
    add_common(command)
    add_target(command)
    command.add_argument("text")
    command.set_defaults(func=cmd_command)

    upload = sub.add_parser("upload", help="upload a file")
    add_common(upload)
    add_target(upload)
    upload.add_argument("--file", required=True)
    upload.add_argument("--chunk-size", type=int, default=CHUNK_SIZE)
    upload.add_argument("--ready-timeout", type=float, default=None, help="seconds to wait for the device's ok")
    upload.set_defaults(func=cmd_upload)

    bench = sub.add_parser("bench", help="loopback upload against a simulated device")
    add_common(bench)
    bench.add_argument("--size-bytes", type=int, default=1_000_000)
    bench.add_argument("--chunk-size", type=int, default=CHUNK_SIZE)
    bench.add_argument("--loss-rate", type=float, default=0.0)
    bench.add_argument("--delay-ms", type=int, default=0)
    bench.add_argument("--ready-timeout", type=float, default=None)
    bench.set_defaults(func=cmd_bench)

    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return int(args.func(args))
    except TransportError as e:
        log.error("%s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
