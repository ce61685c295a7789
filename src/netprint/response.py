from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .net import Address

log = logging.getLogger(__name__)


class ResponseStatus(enum.Enum):
    SUCCESS = "ok"
    FAILURE = "error"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Response:
    address: Address
    status: ResponseStatus
    body: str

    @property
    def ok(self) -> bool:
        return self.status is ResponseStatus.SUCCESS


def classify_response(data: bytes, address: Address) -> Response:
    """Classify one received datagram.

    "error" anywhere wins over a trailing "ok". The body drops whatever follows
    the last newline of the trimmed text, which is where the firmware puts its
    "ok" acknowledgement.
    """
    trimmed = data.decode("utf-8", errors="replace").strip()
    if "error" in trimmed:
        status = ResponseStatus.FAILURE
    elif trimmed.endswith("ok"):
        status = ResponseStatus.SUCCESS
    else:
        status = ResponseStatus.UNKNOWN

    cut = trimmed.rfind("\n")
    body = trimmed if cut == -1 else trimmed[:cut]

    log.debug("received from %s:%d status=%s body=%r", address[0], address[1], status.name, body)
    return Response(address=address, status=status, body=body)
