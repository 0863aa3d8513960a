"""Shared test fixtures for rxcord tests."""

import queue
import threading
import time

import pytest
from opentelemetry.sdk._logs import LoggerProvider

from rxcord.gateway import RawMessage
from rxcord.mechanism import TransportClosed, WriteFailure

_CLOSED = object()


class FakeTransport:
    """In-memory transport: tests push inbound frames and inspect writes."""

    def __init__(self):
        self.inbox: queue.Queue = queue.Queue()
        self.sent: list[str] = []
        self.closed_with: list[int] = []
        self.connected_to = None
        self.handshake_args = None
        # Writes beyond this many succeed no more.
        self.fail_after: int | None = None
        self._cond = threading.Condition()

    def connect(self, host, port, tls):
        self.connected_to = (host, port, tls)

    def handshake(self, path, headers, timeout_ms):
        self.handshake_args = (path, dict(headers), timeout_ms)

    def push(self, data):
        self.inbox.put(data)

    def read(self):
        item = self.inbox.get()
        if item is _CLOSED:
            self.inbox.put(_CLOSED)
            raise TransportClosed("closed", source="FakeTransport", code=self.closed_with[-1])
        return RawMessage(item)

    def write(self, data):
        with self._cond:
            if self.fail_after is not None and len(self.sent) >= self.fail_after:
                raise WriteFailure("broken pipe", source="FakeTransport")
            self.sent.append(data)
            self._cond.notify_all()

    def close(self, code=1000):
        self.closed_with.append(code)
        self.inbox.put(_CLOSED)

    def wait_for_sent(self, count, timeout=2.0):
        with self._cond:
            return self._cond.wait_for(lambda: len(self.sent) >= count, timeout)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def logger_provider():
    """A provider with no processors, so nothing reaches stderr."""
    return LoggerProvider()


@pytest.fixture
def wait_until():
    def _wait_until(predicate, timeout=2.0, interval=0.005):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait_until
