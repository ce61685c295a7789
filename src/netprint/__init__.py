"""netprint: upload files to UDP-connected printers.

The device drives the upload: it asks for each chunk by index and alone
decides when the file is complete. The sender answers requests with
fixed-layout binary frames and keeps no retransmission state of its own.

- framing lives in `packet`, line classification in `response` and `signals`
- the upload state machine lives in `transfer` and talks to an injected transport
"""

from .transfer import TransferEngine, TransferOutcome

__all__ = ["TransferEngine", "TransferOutcome"]
