from __future__ import annotations

import errno
import os
from typing import Dict, List, Optional, Set, Tuple

import pytest


def _oserror(code: int) -> OSError:
    return OSError(code, os.strerror(code))


class FakeSocket:
    """Records every call the sink makes; behavior is scripted through FakeNet."""

    def __init__(self, net: "FakeNet", family: int, type_: int, fd: int) -> None:
        self.net = net
        self.family = family
        self.type = type_
        self.fd = fd
        self.blocking = True
        self.options: Dict[int, int] = {}
        self.connect_calls: List[Tuple[str, int]] = []
        self.sent: List[bytes] = []
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def setsockopt(self, level: int, opt: int, value: int) -> None:
        if opt in self.net.failing_options:
            raise _oserror(errno.ENOPROTOOPT)
        self.options[opt] = value

    def setblocking(self, flag: bool) -> None:
        if self.net.fail_setblocking:
            raise _oserror(errno.EINVAL)
        self.blocking = flag

    def connect_ex(self, addr: Tuple[str, int]) -> int:
        self.connect_calls.append(addr)
        if self.net.connect_results:
            return self.net.connect_results.pop(0)
        return 0

    def send(self, data) -> int:
        if self.net.send_errors:
            code = self.net.send_errors.pop(0)
            if code:
                raise _oserror(code)
        data = bytes(data)
        limit = self.net.send_limit
        n = len(data) if limit is None else min(limit, len(data))
        self.sent.append(data[:n])
        return n

    def fileno(self) -> int:
        return -1 if self.closed else self.fd

    def close(self) -> None:
        self.close_calls += 1


class FakeNet:
    """socket_factory stand-in: creates FakeSockets and holds the script."""

    def __init__(self) -> None:
        self.sockets: List[FakeSocket] = []
        self.connect_results: List[int] = []  # connect_ex() return values, in order
        self.send_errors: List[Optional[int]] = []  # errno per send() call, None = succeed
        self.send_limit: Optional[int] = None
        self.failing_options: Set[int] = set()
        self.fail_setblocking = False
        self.fail_create = False

    def __call__(self, family: int, type_: int) -> FakeSocket:
        if self.fail_create:
            raise _oserror(errno.EMFILE)
        sock = FakeSocket(self, family, type_, fd=100 + len(self.sockets))
        self.sockets.append(sock)
        return sock

    @property
    def current(self) -> FakeSocket:
        return self.sockets[-1]


@pytest.fixture
def fake_net() -> FakeNet:
    return FakeNet()
