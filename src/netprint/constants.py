from __future__ import annotations

LINK_BUDGET = 1450
FRAME_HEADER_SIZE = 8
CHUNK_SIZE = LINK_BUDGET - FRAME_HEADER_SIZE  # 1442, must match device

START_MARKER = 0xAA
END_MARKER = 0x55
MAX_CHUNK_INDEX = (1 << 24) - 1
MAX_PAYLOAD_LEN = 0xFFFF
MAX_REQUEST_INDEX = (1 << 64) - 1

DISCOVERY_PORT = 8686
BROADCAST_HOST = "255.255.255.255"
RECV_BUFSIZE = 65535

DEFAULT_TIMEOUT_MS = 1000

CMD_DISCOVER = "M888 A{0} B{1} C{2} D{3} P{port}\n"
CMD_STATS = "M86\n"
CMD_INFO = "M115\n"
CMD_CREATE_FILE = "M828 P{size} U:{name}\n\n"

MSG_TRANSFER_COMPLETED = "File transfer completed"
MSG_TRANSFER_ERROR = "File transfer error"
