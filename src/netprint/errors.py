from __future__ import annotations


class NetprintError(Exception):
    pass


class TransportError(NetprintError):
    """Send or receive failed, including read timeouts."""


class ReadyTimeout(NetprintError):
    pass


class ProtocolParseError(NetprintError, ValueError):
    pass


class DeviceReportedError(NetprintError):
    pass


class EncodingLimitExceeded(NetprintError):
    """Chunk index or payload length does not fit the frame header."""


class FileIOError(NetprintError):
    pass
