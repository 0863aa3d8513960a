"""Heartbeat timer thread.

State transitions:
    IDLE → RUNNING: first ``start`` (hello processed)
    RUNNING → RUNNING: further ``start``/``restart`` beat immediately
    RUNNING → STOPPED: ``kill``, or a beat raised
    IDLE → STOPPED: ``kill`` before any hello

The loop beats, then waits on a condition bounded by the interval. A
``restart`` signal ends the wait early and beats again; ``kill`` ends the
loop. Signals are guarded by their own lock so that stopping the timer
never waits behind a frame being written.
"""

import threading
from collections.abc import Callable
from enum import Enum, auto

from ..telemetry import OTelLogger
from ..utils import get_short_error_info


class HeartbeatSignal(Enum):
    RESTART = auto()
    KILL = auto()


class HeartbeatState(Enum):
    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


class HeartbeatDriver:
    """Periodically calls ``beat`` on a background thread.

    Parameters
    ----------
    beat : Callable[[], None]
        Sends one heartbeat. Anything it raises stops the driver and is
        handed to ``on_failure``.
    on_failure : Callable[[Exception], None] | None
        Called on the timer thread with the exception that stopped it.
    logger : OTelLogger | None
        Logger for signals and lifecycle.
    name : str
        Thread name.
    """

    def __init__(
        self,
        beat: Callable[[], None],
        on_failure: Callable[[Exception], None] | None = None,
        logger: OTelLogger | None = None,
        name: str = "rxcord-heartbeat",
    ):
        self._beat = beat
        self._on_failure = on_failure
        self._logger = logger
        self._name = name

        self._interval_ms: int | None = None
        self._state = HeartbeatState.IDLE
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None

        self._signal: HeartbeatSignal | None = None
        self._signal_condition = threading.Condition(threading.Lock())

    @property
    def interval_ms(self) -> int | None:
        return self._interval_ms

    @property
    def state(self) -> HeartbeatState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is HeartbeatState.RUNNING

    def start(self, interval_ms: int) -> None:
        """Spawn the timer, or restart it if it is already running.

        The interval is fixed by the first call; later calls keep it.
        """
        if interval_ms <= 0:
            raise ValueError(f"heartbeat interval must be positive, got {interval_ms}")
        with self._state_lock:
            if self._state is HeartbeatState.RUNNING:
                if interval_ms != self._interval_ms:
                    self._warn(
                        f"Ignoring new heartbeat interval {interval_ms}ms,"
                        f" keeping {self._interval_ms}ms"
                    )
                self._broadcast(HeartbeatSignal.RESTART)
                return
            if self._state is HeartbeatState.STOPPED:
                raise RuntimeError("heartbeat driver was stopped and cannot restart")

            self._interval_ms = interval_ms
            self._state = HeartbeatState.RUNNING
            self._thread = threading.Thread(
                target=self._loop, name=self._name, daemon=True
            )
            self._thread.start()
        self._info(f"Heartbeat thread started (interval {interval_ms}ms)")

    def restart(self) -> None:
        """Beat now and restart the interval. No-op unless running."""
        with self._state_lock:
            if self._state is not HeartbeatState.RUNNING:
                return
            self._broadcast(HeartbeatSignal.RESTART)

    def kill(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for the thread to exit."""
        with self._state_lock:
            previous = self._state
            self._state = HeartbeatState.STOPPED
            thread = self._thread
        if previous is HeartbeatState.IDLE:
            return
        self._broadcast(HeartbeatSignal.KILL)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _broadcast(self, signal: HeartbeatSignal) -> None:
        with self._signal_condition:
            self._signal = signal
            self._signal_condition.notify_all()

    def _loop(self) -> None:
        assert self._interval_ms is not None
        interval_s = self._interval_ms / 1000
        while True:
            try:
                self._beat()
            except Exception as e:
                with self._state_lock:
                    self._state = HeartbeatState.STOPPED
                if self._logger is not None:
                    self._logger.error(f"Heartbeat failed: {get_short_error_info(e)}")
                if self._on_failure is not None:
                    self._on_failure(e)
                break

            with self._signal_condition:
                self._signal_condition.wait_for(
                    lambda: self._signal is not None, timeout=interval_s
                )
                signal, self._signal = self._signal, None

            if signal is None:
                continue
            self._info(f"Heartbeat thread received signal {signal.name}")
            if signal is HeartbeatSignal.KILL:
                break

        self._info("Heartbeat loop stopped")

    def _info(self, message: str) -> None:
        if self._logger is not None:
            self._logger.info(message)

    def _warn(self, message: str) -> None:
        if self._logger is not None:
            self._logger.warning(message)
