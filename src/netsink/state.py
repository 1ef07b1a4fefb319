from __future__ import annotations

import errno
from enum import Enum

"""
Connection state machine

States: DISCONNECTED -> CONNECTED (connect success)
        CONNECTED -> DISCONNECTED (peer reset on write)
        DISCONNECTED -> FAILED (unexpected connect error; terminal until free)

Everything here is pure: the sink performs the socket calls and feeds the
resulting errno values through classify_* and after_* to learn what to do.
"""


class LinkState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    FAILED = "failed"


class ConnectOutcome(Enum):
    SUCCESS = "success"
    DEFERRED = "deferred"  # peer not reachable yet, write reports 0
    FATAL = "fatal"


class WriteOutcome(Enum):
    SENT = "sent"
    RESET = "reset"  # peer reset, socket must be recreated
    FAILED = "failed"


# connect() results that mean "not ready yet" rather than "broken".
# EALREADY is what a second connect() returns while a non-blocking
# handshake is still outstanding.
_DEFERRED_CONNECT_ERRNOS = frozenset(
    {
        errno.ECONNREFUSED,
        errno.EINPROGRESS,
        errno.EALREADY,
        errno.EWOULDBLOCK,
        errno.EAGAIN,
        errno.EINTR,
    }
)


# This function maps a connect_ex() return value to a connect outcome.
def classify_connect(err: int) -> ConnectOutcome:
    if err == 0 or err == errno.EISCONN:
        return ConnectOutcome.SUCCESS
    if err in _DEFERRED_CONNECT_ERRNOS:
        return ConnectOutcome.DEFERRED
    return ConnectOutcome.FATAL


# This function maps the errno of a failed send() to a write outcome.
def classify_write_error(err: int | None) -> WriteOutcome:
    if err == errno.ECONNRESET:
        return WriteOutcome.RESET
    return WriteOutcome.FAILED


def after_connect(state: LinkState, outcome: ConnectOutcome) -> LinkState:
    """Next state after a connect attempt. FATAL is terminal: FAILED never leaves."""
    if state is LinkState.FAILED:
        return state
    if outcome is ConnectOutcome.SUCCESS:
        return LinkState.CONNECTED
    if outcome is ConnectOutcome.DEFERRED:
        return state
    return LinkState.FAILED


def after_write(state: LinkState, outcome: WriteOutcome) -> LinkState:
    """Next state after a send attempt on a connected socket."""
    if outcome is WriteOutcome.RESET:
        return LinkState.DISCONNECTED
    return state


__all__ = [
    "LinkState",
    "ConnectOutcome",
    "WriteOutcome",
    "classify_connect",
    "classify_write_error",
    "after_connect",
    "after_write",
]
