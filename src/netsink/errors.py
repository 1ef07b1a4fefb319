from __future__ import annotations

import os

"""
Exception taxonomy for the network sink.

Recoverable conditions (peer not listening yet, peer reset) are never raised;
the sink reports them as 0 bytes written. Everything here is surfaced to the
caller immediately, with no retry inside the sink.
"""


class NetSinkError(Exception):
    """Base class for all sink errors."""


class SocketCreationError(NetSinkError):
    """The OS refused to allocate a socket (initialize or post-reset recreation)."""


class ConfigurationError(NetSinkError):
    """A socket mode change was rejected, or the sink was used after free()."""


class FatalConnectError(NetSinkError):
    """connect() failed with an errno the sink cannot treat as 'try later'."""

    def __init__(self, errno: int, destination: object = None) -> None:
        self.errno = errno
        self.destination = destination
        super().__init__(f"connect to {destination} failed: [Errno {errno}] {os.strerror(errno)}")


class PayloadTooLarge(NetSinkError, ValueError):
    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"payload of {size} bytes exceeds the {limit} byte limit")


__all__ = [
    "NetSinkError",
    "SocketCreationError",
    "ConfigurationError",
    "FatalConnectError",
    "PayloadTooLarge",
]
