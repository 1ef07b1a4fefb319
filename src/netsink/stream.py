from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .errors import PayloadTooLarge
from .framing import MacContext
from .log import get_logger
from .sink import NetworkSink

"""
Producer loop
- Feeds each PDU to the sink once (plain or framed write)
- A 0 return means dropped: the collector is not ready, nothing is retried
- Optional fixed cadence via monotonic clock (drift-free, like a TTI tick)
"""

_LOG = get_logger(__name__)


@dataclass
class StreamResult:
    sent: int = 0
    dropped: int = 0
    rejected: int = 0
    bytes: int = 0

    @property
    def total(self) -> int:
        return self.sent + self.dropped + self.rejected


# This function writes one PDU and returns the byte count reported by the sink.
def _write_one(sink: NetworkSink, pdu: bytes, context: Optional[MacContext]) -> int:
    if context is None:
        return sink.write(pdu)
    return sink.write_framed(context, pdu)


def run_stream(
    sink: NetworkSink,
    payloads: Iterable[bytes],
    *,
    context: Optional[MacContext] = None,
    interval: float = 0.0,
    monotonic_fn: Callable[[], float] = time.monotonic,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> StreamResult:
    """
    Push every payload through the sink once.

    FatalConnectError, SocketCreationError and unexpected OSErrors propagate;
    an oversized payload is logged and skipped.
    """
    result = StreamResult()
    for pdu in payloads:
        t0 = monotonic_fn()

        try:
            n = _write_one(sink, pdu, context)
        except PayloadTooLarge as e:
            _LOG.error("skipping PDU: %s", e)
            result.rejected += 1
            n = None

        if n:
            result.sent += 1
            result.bytes += n
        elif n is not None:
            result.dropped += 1

        if interval > 0:
            delay = interval - (monotonic_fn() - t0)
            if delay > 0:
                sleep_fn(delay)
            # If delay <= 0, go straight to the next PDU

    return result


__all__ = ["StreamResult", "run_stream"]
