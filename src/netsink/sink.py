from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from .errors import ConfigurationError, FatalConnectError, SocketCreationError
from .framing import DEFAULT_MAX_PAYLOAD, MacContext, check_payload_size, frame_record
from .log import get_logger
from .state import (
    ConnectOutcome,
    LinkState,
    WriteOutcome,
    after_connect,
    after_write,
    classify_connect,
    classify_write_error,
)

"""
Network sink

A socket that starts disconnected, connects on the first write, reports
0 bytes written while the collector is not reachable yet, and recreates its
socket after the peer resets the connection. Nothing here retries or blocks
beyond a single connect/send syscall; with set_nonblocking() even the TCP
handshake never stalls the caller.

Return values of write()/write_framed():
  n > 0  bytes accepted by the transport for this call (may be partial on TCP)
  0      not connected yet, or the connection was just reset: try again later
Other failures are raised (see errors.py) or are the underlying OSError.
"""

_LOG = get_logger(__name__)

Buffer = Union[bytes, bytearray, memoryview]
SocketFactory = Callable[[int, int], socket.socket]


class TransportKind(Enum):
    TCP = "tcp"
    UDP = "udp"

    @property
    def socktype(self) -> int:
        return socket.SOCK_STREAM if self is TransportKind.TCP else socket.SOCK_DGRAM

    @classmethod
    def parse(cls, value: Union[str, "TransportKind"]) -> "TransportKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"transport must be 'tcp' or 'udp'; got {value!r}") from None


@dataclass
class SinkStats:
    """Diagnostic counters; not a delivery record."""

    connect_attempts: int = 0
    deferred: int = 0
    resets: int = 0
    bytes_sent: int = 0
    records_sent: int = 0


# This function validates a dotted-quad IPv4 address and a non-zero 16-bit port.
def _parse_destination(address: str, port: int) -> Tuple[str, int]:
    try:
        addr = str(ipaddress.IPv4Address(address))
    except (ipaddress.AddressValueError, ValueError):
        raise ValueError(f"address must be a dotted-quad IPv4 address; got {address!r}") from None
    port = int(port)
    if not (1 <= port <= 0xFFFF):
        raise ValueError(f"port must be between 1 and 65535; got {port}")
    return addr, port


# Address/port reuse options the platform knows about.
_REUSE_OPTIONS: List[Tuple[str, int]] = [
    (name, getattr(socket, name)) for name in ("SO_REUSEADDR", "SO_REUSEPORT") if hasattr(socket, name)
]


class NetworkSink:
    """
    Lazy-connecting TCP/UDP sink for one destination.

    Not thread-safe: one producer per instance, or serialize externally.
    """

    def __init__(
        self,
        address: str,
        port: int,
        transport: Union[str, TransportKind] = TransportKind.UDP,
        *,
        max_payload: int = DEFAULT_MAX_PAYLOAD,
        socket_factory: SocketFactory = socket.socket,
    ) -> None:
        self._destination: Optional[Tuple[str, int]] = _parse_destination(address, port)
        self._transport: Optional[TransportKind] = TransportKind.parse(transport)
        if max_payload < 0:
            raise ValueError("max_payload must not be negative")
        self._max_payload = int(max_payload)
        self._socket_factory = socket_factory
        self._nonblocking = False
        self._state = LinkState.DISCONNECTED
        self._fatal_errno = 0
        self._warnings: List[str] = []
        self.stats = SinkStats()
        self._sock: Optional[socket.socket] = None
        self._sock = self._new_socket()

    # ----- properties -----

    @property
    def destination(self) -> Optional[Tuple[str, int]]:
        return self._destination

    @property
    def transport(self) -> Optional[TransportKind]:
        return self._transport

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def failed(self) -> bool:
        """True after an unexpected connect error; only free() clears it."""
        return self._state is LinkState.FAILED

    @property
    def connected(self) -> bool:
        return self._state is LinkState.CONNECTED

    @property
    def nonblocking(self) -> bool:
        return self._nonblocking

    @property
    def max_payload(self) -> int:
        return self._max_payload

    @property
    def warnings(self) -> List[str]:
        """Non-fatal socket option failures, oldest first."""
        return list(self._warnings)

    @property
    def closed(self) -> bool:
        return self._sock is None

    def fileno(self) -> int:
        return self._sock.fileno() if self._sock is not None else -1

    def __repr__(self) -> str:
        kind = self._transport.value if self._transport else None
        return f"<NetworkSink {kind} {self._destination} {self._state.value}>"

    # ----- socket lifecycle -----

    # This function creates a socket for the current transport kind and applies the sink's options.
    def _new_socket(self) -> socket.socket:
        if self._transport is None:
            raise ConfigurationError("sink has been freed")
        try:
            sock = self._socket_factory(socket.AF_INET, self._transport.socktype)
        except OSError as e:
            _LOG.error("socket creation failed (%s): %s", self._transport.value, e)
            raise SocketCreationError(f"cannot create {self._transport.value} socket: {e}") from e

        for name, opt in _REUSE_OPTIONS:
            try:
                sock.setsockopt(socket.SOL_SOCKET, opt, 1)
            except OSError as e:
                msg = f"setsockopt({name}) failed: {e}"
                _LOG.warning(msg)
                self._warnings.append(msg)

        if self._nonblocking:
            try:
                sock.setblocking(False)
            except OSError as e:
                sock.close()
                raise ConfigurationError(f"cannot make socket non-blocking: {e}") from e
        return sock

    def _require_open(self) -> socket.socket:
        if self._sock is None:
            raise ConfigurationError("sink has no socket (freed, or socket recreation failed)")
        return self._sock

    def set_nonblocking(self) -> None:
        """
        Switch the socket to non-blocking mode. Sockets recreated after a
        reset inherit the mode.

        Raises:
            ConfigurationError: if the OS rejects the mode change
        """
        sock = self._require_open()
        try:
            sock.setblocking(False)
        except OSError as e:
            _LOG.error("cannot set non-blocking mode: %s", e)
            raise ConfigurationError(f"cannot make socket non-blocking: {e}") from e
        self._nonblocking = True

    def _ensure_connected(self) -> bool:
        sock = self._require_open()
        if self._state is LinkState.CONNECTED:
            return True
        if self._state is LinkState.FAILED:
            raise FatalConnectError(self._fatal_errno, self._destination)
        self.stats.connect_attempts += 1
        err = sock.connect_ex(self._destination)
        outcome = classify_connect(err)
        self._state = after_connect(self._state, outcome)
        if self._state is LinkState.FAILED:
            self._fatal_errno = err
            _LOG.error("connect to %s:%s failed (errno %s); sink unusable until freed", *self._destination, err)
            raise FatalConnectError(err, self._destination)
        if outcome is ConnectOutcome.DEFERRED:
            self.stats.deferred += 1
            _LOG.debug("collector %s:%s not ready (errno %s)", *self._destination, err)
            return False
        _LOG.info("connected to %s:%s over %s", *self._destination, self._transport.value)
        return True

    def _recover_from_reset(self) -> None:
        old = self._sock
        self._sock = None
        if old is not None:
            old.close()
        self._state = after_write(self._state, WriteOutcome.RESET)
        self.stats.resets += 1
        self._sock = self._new_socket()

    def _send(self, data: Buffer) -> int:
        sock = self._require_open()
        try:
            n = sock.send(data)
        except OSError as e:
            outcome = classify_write_error(e.errno)
            if outcome is WriteOutcome.RESET:
                _LOG.warning("connection to %s:%s reset by peer; recreating socket", *self._destination)
                self._recover_from_reset()
                return 0
            raise
        self._state = after_write(self._state, WriteOutcome.SENT)
        self.stats.bytes_sent += n
        self.stats.records_sent += 1
        return n

    # ----- public write path -----

    def write(self, payload: Buffer) -> int:
        """
        Send payload in a single send() call, connecting first if needed.

        Returns the byte count the transport accepted, or 0 when the
        collector is not reachable yet or the connection was just reset.

        Raises:
            FatalConnectError: connect failed for a reason other than
                refused / in progress, now or on an earlier call (the sink
                stays failed until free())
            SocketCreationError: the replacement socket after a reset could
                not be created
            ConfigurationError: the sink was already freed
            OSError: any other send() failure, unchanged
        """
        if not self._ensure_connected():
            return 0
        return self._send(payload)

    def write_framed(self, ctx: MacContext, payload: Buffer) -> int:
        """
        Like write(), but prefixes the MAC-LTE context header for ctx.

        The return value counts header and payload bytes together.

        Raises:
            PayloadTooLarge: payload is longer than max_payload (checked
                before any connect attempt)
        """
        check_payload_size(payload, self._max_payload)
        if not self._ensure_connected():
            return 0
        record = frame_record(ctx, payload, max_payload=self._max_payload)
        return self._send(record)

    # ----- teardown -----

    def free(self) -> None:
        """Close the socket and reset every field. Safe to call twice."""
        sock = self._sock
        self._sock = None
        if sock is not None:
            sock.close()
        self._destination = None
        self._transport = None
        self._nonblocking = False
        self._state = LinkState.DISCONNECTED
        self._fatal_errno = 0
        self._warnings = []
        self.stats = SinkStats()

    close = free

    def __enter__(self) -> "NetworkSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.free()


__all__ = ["TransportKind", "SinkStats", "NetworkSink"]
