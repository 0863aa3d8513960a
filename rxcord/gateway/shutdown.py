"""Graceful shutdown wiring for gateway sessions.

A :class:`ShutdownContext` holds the sessions to stop; a signal
registration binds a handler to one context instead of a process-wide
client, so several sessions (or several contexts) can coexist.
"""

import signal
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from .session import OFFLINE_CLOSE_CODE


class Stoppable(Protocol):
    def shutdown(self, code: int = OFFLINE_CLOSE_CODE) -> None: ...


class ShutdownContext:
    """The set of sessions to stop together, and how to stop them."""

    def __init__(
        self, sessions: Iterable[Stoppable] = (), code: int = OFFLINE_CLOSE_CODE
    ):
        self.code = code
        self._sessions: list[Stoppable] = list(sessions)
        self._lock = threading.Lock()
        self._done = threading.Event()

    def add(self, session: Stoppable) -> None:
        with self._lock:
            self._sessions.append(session)

    def remove(self, session: Stoppable) -> None:
        with self._lock:
            if session in self._sessions:
                self._sessions.remove(session)

    @property
    def sessions(self) -> tuple[Stoppable, ...]:
        with self._lock:
            return tuple(self._sessions)

    @property
    def triggered(self) -> bool:
        return self._done.is_set()

    def shutdown(self) -> None:
        """Shut every session down once; later calls are no-ops."""
        with self._lock:
            if self._done.is_set():
                return
            self._done.set()
            sessions = list(self._sessions)
        for session in sessions:
            session.shutdown(self.code)

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)


@dataclass
class SignalRegistration:
    """Handlers installed by :func:`register_shutdown_signals`."""

    context: ShutdownContext
    previous: dict[int, Any] = field(default_factory=dict)

    def unregister(self) -> None:
        """Restore the handlers that were installed before."""
        for signum, handler in self.previous.items():
            signal.signal(signum, handler)
        self.previous.clear()


def register_shutdown_signals(
    context: ShutdownContext,
    signals: Iterable[int] = (signal.SIGINT,),
) -> SignalRegistration:
    """Install handlers that shut ``context`` down on the given signals.

    Must be called from the main thread. The handler hands the work to a
    new thread since the main thread may be holding a session's write lock
    when the signal arrives.
    """

    def _handler(signum: int, frame: Any) -> None:
        threading.Thread(
            target=context.shutdown, name="rxcord-shutdown", daemon=True
        ).start()

    registration = SignalRegistration(context)
    for signum in signals:
        registration.previous[signum] = signal.signal(signum, _handler)
    return registration
