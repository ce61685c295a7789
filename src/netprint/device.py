"""Device-side helpers around the transfer engine: discovery, one-shot commands, info parsing."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .constants import BROADCAST_HOST, CMD_DISCOVER, CMD_INFO, CMD_STATS, DISCOVERY_PORT
from .errors import TransportError
from .net import Address, UdpEndpoint
from .response import Response, classify_response

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Device:
    address: Address
    info: Dict[str, str] = field(default_factory=dict)


def discovery_command(local_ip: str, port: int) -> str:
    octets = local_ip.split(".")
    if len(octets) != 4:
        raise ValueError(f"not an IPv4 address: {local_ip!r}")
    return CMD_DISCOVER.format(*octets, port=port)


def discover(
    endpoint: UdpEndpoint,
    local_ip: str,
    broadcast_address: Address = (BROADCAST_HOST, DISCOVERY_PORT),
) -> List[Device]:
    """Broadcast the discovery command once and collect replies until the read timeout."""
    command = discovery_command(local_ip, endpoint.address[1])
    endpoint.send(command.encode("ascii"), broadcast_address)
    log.info("sent discovery to %s:%d: %s", broadcast_address[0], broadcast_address[1], command.strip())

    devices: List[Device] = []
    while True:
        try:
            data, addr = endpoint.receive()
        except TransportError:
            break
        response = classify_response(data, addr)
        if response.ok:
            devices.append(Device(address=response.address))
            log.info("found device at %s:%d", addr[0], addr[1])
        else:
            log.warning("error searching for devices: %s", response.body)
    return devices


def send_command(endpoint: UdpEndpoint, command: str, address: Address) -> Response:
    if not command.endswith("\n"):
        command += "\n"
    endpoint.send(command.encode("utf-8"), address)
    data, addr = endpoint.receive()
    return classify_response(data, addr)


def query_stats(endpoint: UdpEndpoint, address: Address) -> Response:
    return send_command(endpoint, CMD_STATS, address)


def query_info(endpoint: UdpEndpoint, address: Address) -> Device:
    response = send_command(endpoint, CMD_INFO, address)
    return Device(address=response.address, info=parse_info(response.body))


def parse_info(body: str) -> Dict[str, str]:
    """Parse "Key: value" lines separated by carriage returns."""
    info: Dict[str, str] = {}
    for piece in body.split("\r"):
        if not piece.strip():
            continue
        cleaned = piece.replace("\n", "").strip()
        parts = cleaned.split(":")
        if len(parts) != 2:
            log.warning("invalid device info: %s", cleaned)
            continue
        info[parts[0].strip()] = parts[1].strip()
    return info
