"""Ordered message-handling stages.

Each stage receives one message, does one thing with it, and forwards the
(possibly transformed) message to the next stage. The gateway pipeline is::

    RawMessage ─► TextFilter ─► EnvelopeDecode ─► SequenceUpdate
               ─► HeartbeatIntercept ─► UserHandler

Exceptions raised by any stage before :class:`UserHandler` propagate out of
:meth:`Pipeline.handle`. Exceptions raised by the user handler are logged
and discarded.

Example:
    >>> pipeline = (
    ...     PipelineBuilder()
    ...     .add(TextFilter())
    ...     .add(EnvelopeDecode())
    ...     .add(UserHandler(print))
    ...     .build()
    ... )
    >>> pipeline.handle(RawMessage('{"op":11,"d":null}'))
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence as SequenceT
from functools import partial
from typing import Any

from reactivex.abc import ObserverBase

from ..mechanism import HandlerError, NonTextFrame
from ..telemetry import OTelLogger
from ..utils import get_full_error_info, get_short_error_info
from .framing import Frame, RawMessage, decode_envelope, parse_heartbeat_interval
from .heartbeat import HeartbeatDriver
from .opcodes import Opcode
from .sequence import Sequence

Forward = Callable[[Any], None]
FrameHandler = Callable[[Frame], Any] | ObserverBase


class Stage(ABC):
    """One link of a :class:`Pipeline`."""

    name: str = "stage"

    @abstractmethod
    def handle(self, message: Any, forward: Forward) -> None:
        """Process ``message`` and call ``forward`` to pass it on."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class TextFilter(Stage):
    """Drops binary frames; forwards the text of text frames."""

    name = "text"

    def __init__(self, logger: OTelLogger | None = None):
        self._logger = logger
        self.dropped = 0

    def handle(self, message: RawMessage, forward: Forward) -> None:
        if not message.is_text:
            self.dropped += 1
            if self._logger is not None:
                error = NonTextFrame(
                    f"{message.kind} frame of {len(message.data)} bytes",
                    source="TextFilter",
                )
                self._logger.warning(f"Gateway received a non-text frame: {error}; ignoring")
            return
        forward(message.data)


class EnvelopeDecode(Stage):
    """Parses the ``{op, s, t, d}`` envelope. Decode errors propagate."""

    name = "decode"

    def handle(self, message: str, forward: Forward) -> None:
        forward(decode_envelope(message))


class SequenceUpdate(Stage):
    """Folds ``s`` into the session sequence, whatever the opcode."""

    name = "sequence"

    def __init__(self, sequence: Sequence):
        self._sequence = sequence

    def handle(self, message: Frame, forward: Forward) -> None:
        if message.s is not None:
            self._sequence.merge(message.s)
        forward(message)


class HeartbeatIntercept(Stage):
    """Starts the heartbeat timer on hello, beats at once on heartbeat."""

    name = "heartbeat"

    def __init__(
        self,
        driver: HeartbeatDriver,
        beat_now: Callable[[], None],
        logger: OTelLogger | None = None,
    ):
        self._driver = driver
        self._beat_now = beat_now
        self._logger = logger

    def handle(self, message: Frame, forward: Forward) -> None:
        if message.op == Opcode.HELLO:
            interval_ms = parse_heartbeat_interval(message)
            if self._logger is not None:
                self._logger.info(
                    f"Hello received (heartbeat interval {interval_ms}ms)"
                )
            self._driver.start(interval_ms)
        elif message.op == Opcode.HEARTBEAT:
            if self._logger is not None:
                self._logger.debug("Server requested an immediate heartbeat")
            self._beat_now()
        forward(message)


class UserHandler(Stage):
    """Terminal stage calling the application handler.

    ``handler`` may be a callable taking a :class:`Frame` or a ReactiveX
    observer, whose ``on_next`` receives the frame. Whatever it raises is
    wrapped in :class:`HandlerError`, logged, and passed to ``on_error``.
    """

    name = "handler"

    def __init__(
        self,
        handler: FrameHandler,
        logger: OTelLogger | None = None,
        on_error: Callable[[HandlerError], None] | None = None,
    ):
        if isinstance(handler, ObserverBase):
            self._call = handler.on_next
        elif callable(handler):
            self._call = handler
        else:
            raise TypeError(f"handler must be callable or an Observer, got {handler!r}")
        self._logger = logger
        self._on_error = on_error
        self.errors = 0

    def handle(self, message: Frame, forward: Forward) -> None:
        try:
            self._call(message)
        except Exception as e:
            self.errors += 1
            error = HandlerError(e, source="UserHandler", note=f"op={message.op} t={message.t}")
            if self._logger is not None:
                self._logger.error(
                    f"Gateway handler error: {get_short_error_info(e)}; ignoring",
                    traceback=get_full_error_info(e),
                )
            if self._on_error is not None:
                self._on_error(error)
            return
        forward(message)


def _discard(message: Any) -> None:
    pass


class Pipeline:
    """A fixed, linear chain of :class:`Stage` objects."""

    def __init__(self, stages: SequenceT[Stage]):
        if not stages:
            raise ValueError("a pipeline needs at least one stage")
        names = [stage.name for stage in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate stage names: {names}")
        self._stages = tuple(stages)
        self._names = tuple(names)

        # entries[i] feeds a message into stage i, already bound to its successor
        entries: list[Forward] = []
        forward: Forward = _discard
        for stage in reversed(self._stages):
            forward = partial(stage.handle, forward=forward)
            entries.append(forward)
        self._entries = tuple(reversed(entries))

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return len(self._stages)

    def __getitem__(self, name: str) -> Stage:
        return self._stages[self.index(name)]

    def index(self, name: str) -> int:
        try:
            return self._names.index(name)
        except ValueError:
            raise KeyError(f"no stage named {name!r}; stages are {self._names}") from None

    def handle(self, message: Any, start: str | None = None) -> None:
        """Run ``message`` through the chain, from stage ``start`` if given."""
        index = 0 if start is None else self.index(start)
        self._entries[index](message)

    def __repr__(self) -> str:
        return " -> ".join(self._names)


class PipelineBuilder:
    """Collects stages in order and builds a :class:`Pipeline`."""

    def __init__(self):
        self._stages: list[Stage] = []

    def add(self, stage: Stage) -> "PipelineBuilder":
        self._stages.append(stage)
        return self

    def build(self) -> Pipeline:
        return Pipeline(self._stages)


def build_gateway_pipeline(
    sequence: Sequence,
    driver: HeartbeatDriver,
    beat_now: Callable[[], None],
    handler: FrameHandler,
    logger: OTelLogger | None = None,
    on_handler_error: Callable[[HandlerError], None] | None = None,
) -> Pipeline:
    """Build the standard five-stage gateway pipeline."""
    return (
        PipelineBuilder()
        .add(TextFilter(logger))
        .add(EnvelopeDecode())
        .add(SequenceUpdate(sequence))
        .add(HeartbeatIntercept(driver, beat_now, logger))
        .add(UserHandler(handler, logger, on_handler_error))
        .build()
    )
