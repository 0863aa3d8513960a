"""Gateway session state machine.

A :class:`Session` owns one transport connection and drives it through::

    IDLE ─connect─► CONNECTED ─hello + identify─► LIVE ─shutdown/error─► CLOSED

Two threads share the transport. The thread calling :meth:`Session.start`
blocks in ``Transport.read`` and feeds every frame through the pipeline;
the heartbeat thread wakes every ``heartbeat_interval`` to send a beat.
All writes go through one lock, so at most one frame is in flight.

Example:
    >>> identify = Identify(token="Bot ...", intents=Intent.GUILDS | Intent.GUILD_MESSAGES)
    >>> session = Session.connect(identify, handler=lambda frame: print(frame.t))
    >>> registration = register_shutdown_signals(ShutdownContext([session]))
    >>> session.start()  # blocks until shutdown or a fatal error
"""

import contextlib
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from opentelemetry._logs import LoggerProvider
from opentelemetry.metrics import MeterProvider
from opentelemetry.trace import Tracer, TracerProvider
from reactivex import Observable
from reactivex.abc import ObserverBase
from reactivex.subject import BehaviorSubject, Subject

from ..mechanism import (
    GatewayError,
    HandlerError,
    HelloUnexpected,
    ReadError,
    TransportClosed,
    WriteFailure,
)
from ..telemetry import GatewayMetrics, LogContext, OTelLogger, get_default_providers
from ..utils import get_short_error_info, redact
from .framing import (
    Frame,
    HeartbeatBuffer,
    Identify,
    decode_envelope,
    encode_frame,
    parse_heartbeat_interval,
)
from .heartbeat import HeartbeatDriver
from .opcodes import SEND_OPCODES, Opcode
from .pipeline import FrameHandler, SequenceUpdate, build_gateway_pipeline
from .sequence import Sequence
from .transport import Transport, WebSocketTransport

# Closing with any code other than 1000/1001 keeps the session resumable.
RESUMABLE_CLOSE_CODE = 4000
OFFLINE_CLOSE_CODE = 1000


class SessionState(Enum):
    """Observable states of a gateway session."""

    IDLE = "idle"
    CONNECTED = "connected"
    LIVE = "live"
    CLOSED = "closed"


@dataclass(frozen=True)
class GatewayConfig:
    """Where and how to reach the gateway."""

    host: str = "gateway.discord.gg"
    port: int = 443
    tls: bool = True
    version: str = "10"
    encoding: str = "json"
    timeout_ms: int = 5_000

    @property
    def path(self) -> str:
        return f"/?v={self.version}&encoding={self.encoding}"

    @property
    def url(self) -> str:
        scheme = "wss" if self.tls else "ws"
        return f"{scheme}://{self.host}:{self.port}{self.path}"


class Session:
    """One gateway connection and its heartbeat.

    Parameters
    ----------
    identify : Identify
        Credentials and intents; serialized once, here.
    handler : FrameHandler | None
        Receives every decoded frame, hello included. Exceptions it raises
        are logged and never end the session.
    config : GatewayConfig | None
        Gateway host, protocol version and handshake timeout.
    transport : Transport | None
        Defaults to a :class:`WebSocketTransport`.
    heartbeat_buffer : HeartbeatBuffer | None
        Defaults to a nullable buffer sized for 64-bit sequences.
    name : str | None
        Log source name. Defaults to ``"Session:{host}"``.
    tracer_provider, logger_provider, meter_provider
        Optional OTel providers. Logging falls back to
        :func:`get_default_providers`; no meter provider means no metrics.
    """

    def __init__(
        self,
        identify: Identify,
        handler: FrameHandler | None = None,
        config: GatewayConfig | None = None,
        transport: Transport | None = None,
        heartbeat_buffer: HeartbeatBuffer | None = None,
        name: str | None = None,
        tracer_provider: TracerProvider | None = None,
        logger_provider: LoggerProvider | None = None,
        meter_provider: MeterProvider | None = None,
    ):
        self.config = config or GatewayConfig()
        self.session_id = uuid.uuid4().hex[:8]
        self._name = name or f"Session:{self.config.host}"

        if logger_provider is None:
            tracer_provider, logger_provider = get_default_providers("rxcord")
        self._tracer: Tracer | None = (
            tracer_provider.get_tracer("rxcord.gateway") if tracer_provider else None
        )
        self._log = OTelLogger(
            logger_provider.get_logger(f"rxcord.gateway.{self._name}"),
            source=self._name,
            context=LogContext(
                service="rxcord",
                session=self.session_id,
                gateway_host=self.config.host,
            ),
        )
        self._metrics = GatewayMetrics(meter_provider)

        self._transport: Transport = transport or WebSocketTransport(
            logger=self._log.with_context(component="transport"),
            connect_timeout_ms=self.config.timeout_ms,
        )
        self._write_lock = threading.Lock()
        self._heartbeat_buffer = heartbeat_buffer or HeartbeatBuffer()

        self._identify = identify
        self._identify_message = identify.serialize()

        self._sequence = Sequence()
        self._user_handler = handler
        self._frames: Subject[Frame] = Subject()
        self._state_subject: BehaviorSubject[SessionState] = BehaviorSubject(
            SessionState.IDLE
        )
        self._state_lock = threading.RLock()

        self._heartbeat = HeartbeatDriver(
            self.heartbeat_now,
            on_failure=self._fail,
            logger=self._log.with_context(
                component="heartbeat", source=f"{self._name}:heartbeat"
            ),
            name=f"rxcord-heartbeat-{self.session_id}",
        )
        self._pipeline = build_gateway_pipeline(
            self._sequence,
            self._heartbeat,
            self.heartbeat_now,
            self._deliver,
            logger=self._log.with_context(component="pipeline"),
            on_handler_error=self._on_handler_error,
        )

        self._fatal: BaseException | None = None
        self._shutdown_requested = False
        self._started = False
        self.error: BaseException | None = None

    # ------------------------------------------------------------------ #
    # lifecycle

    @classmethod
    def connect(
        cls,
        identify: Identify,
        handler: FrameHandler | None = None,
        config: GatewayConfig | None = None,
        **kwargs: Any,
    ) -> "Session":
        """Create a session and open its transport.

        Raises:
            ConnectError: The gateway host was unreachable.
            HandshakeError: The websocket upgrade failed or timed out.
        """
        session = cls(identify, handler=handler, config=config, **kwargs)
        session.open()
        return session

    def open(self) -> None:
        """Connect and handshake the transport at the versioned gateway path."""
        if self.current_state is not SessionState.IDLE:
            raise GatewayError("session already opened", source=self._name, note="open")
        cfg = self.config
        self._log.info(f"Connecting to {cfg.url}")
        with self._span("gateway.connect"):
            self._transport.connect(cfg.host, cfg.port, cfg.tls)
            self._transport.handshake(cfg.path, {}, cfg.timeout_ms)
        self._set_state(SessionState.CONNECTED)

    def start(self) -> None:
        """Run hello/identify, then the receive loop.

        Blocks until :meth:`shutdown` (returns normally) or a fatal error
        (raised). Handler errors never end the loop.
        """
        if self.current_state is not SessionState.CONNECTED or self._started:
            raise GatewayError(
                "start() needs a connected session that has not started",
                source=self._name,
                note="start",
            )
        self._started = True
        try:
            self._handshake()
            self._receive_loop()
        except Exception as e:
            if self._shutdown_requested:
                # A frame still in flight when the transport closed.
                self._log.info(
                    f"Ignoring error raised during shutdown: {get_short_error_info(e)}"
                )
                return
            self._log.error(f"Session terminated: {get_short_error_info(e)}")
            self._abort()
            raise
        finally:
            self._heartbeat.kill(timeout=5.0)
            self._set_state(SessionState.CLOSED)

    def spawn(self) -> threading.Thread:
        """Run :meth:`start` on a new thread; a fatal error lands in :attr:`error`."""

        def _run() -> None:
            try:
                self.start()
            except Exception as e:
                self.error = e

        thread = threading.Thread(
            target=_run, name=f"rxcord-reader-{self.session_id}", daemon=True
        )
        thread.start()
        return thread

    def shutdown(self, code: int = OFFLINE_CLOSE_CODE) -> None:
        """Stop the heartbeat, then close the transport.

        The receive loop returns once its pending read fails on the closed
        transport. Code 1000/1001 makes the bot appear offline.
        """
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        self._log.info(f"Shutting down (code {code})")
        self._heartbeat.kill(timeout=5.0)
        self.disconnect(code)
        self._set_state(SessionState.CLOSED)

    def disconnect(self, code: int = OFFLINE_CLOSE_CODE) -> None:
        """Close the transport under the write lock."""
        with self._write_lock:
            self._transport.close(code)

    # ------------------------------------------------------------------ #
    # outbound

    def heartbeat_now(self) -> None:
        """Send a heartbeat carrying the current sequence (or null).

        Raises:
            WriteFailure: The transport rejected the write.
        """
        with self._write_lock:
            sequence = self._sequence.value
            message = self._heartbeat_buffer.format(sequence)
            self._log.debug(
                f"Sending heartbeat (sequence {sequence})", payload=message
            )
            self._transport.write(message)
        self._metrics.heartbeat_sent()

    def send(self, op: int, d: Any) -> None:
        """Write an arbitrary client frame, e.g. a presence update."""
        if op not in SEND_OPCODES:
            raise ValueError(f"opcode {op} is not sent by clients")
        message = encode_frame(op, d)
        with self._write_lock:
            self._log.debug(f"Sending op {int(op)}", payload=message)
            self._transport.write(message)

    def _send_identify(self) -> None:
        with self._write_lock:
            self._log.debug(
                "Sending identify",
                token=redact(self._identify.token),
                intents=int(self._identify.intents),
            )
            self._transport.write(self._identify_message)
        self._log.info("Identify sent")

    # ------------------------------------------------------------------ #
    # inbound

    def _handshake(self) -> None:
        with self._span("gateway.hello"):
            raw = self._read()
            self._metrics.frame_received()
            if not raw.is_text:
                raise HelloUnexpected(
                    f"first frame was {raw.kind}, expected a text hello",
                    source=self._name,
                    note="handshake",
                )
            frame = decode_envelope(raw.data)
            if frame.op != Opcode.HELLO:
                raise HelloUnexpected(
                    f"first frame had op {frame.op}, expected hello ({int(Opcode.HELLO)})",
                    source=self._name,
                    note="handshake",
                )
            parse_heartbeat_interval(frame)
            self._send_identify()
            # Skip text filter and decoding, already done above.
            self._pipeline.handle(frame, start=SequenceUpdate.name)
        self._set_state(SessionState.LIVE)

    def _receive_loop(self) -> None:
        while True:
            try:
                raw = self._read()
            except (TransportClosed, ReadError):
                if self._shutdown_requested:
                    self._log.info("Receive loop stopped after shutdown")
                    return
                raise
            self._metrics.frame_received()
            self._pipeline.handle(raw)

    def _read(self):
        try:
            return self._transport.read()
        except (TransportClosed, ReadError) as e:
            if self._fatal is not None and not self._shutdown_requested:
                raise self._fatal from e
            raise

    def _deliver(self, frame: Frame) -> None:
        self._frames.on_next(frame)
        if self._user_handler is not None:
            if isinstance(self._user_handler, ObserverBase):
                self._user_handler.on_next(frame)
            else:
                self._user_handler(frame)

    def _on_handler_error(self, error: HandlerError) -> None:
        self._metrics.handler_error()

    # ------------------------------------------------------------------ #
    # failure

    def _fail(self, error: Exception) -> None:
        """Heartbeat thread failed: record it and unblock the reader."""
        if self._shutdown_requested:
            return
        if not isinstance(error, WriteFailure):
            error = WriteFailure(
                get_short_error_info(error), source=self._name, note="heartbeat"
            )
        if self._fatal is None:
            self._fatal = error
        self._log.error(f"Heartbeat write failed, closing connection: {error}")
        self._abort()

    def _abort(self) -> None:
        self._heartbeat.kill(timeout=0)
        self.disconnect(RESUMABLE_CLOSE_CODE)

    # ------------------------------------------------------------------ #
    # observation

    @property
    def sequence(self) -> int | None:
        return self._sequence.value

    @property
    def heartbeat(self) -> HeartbeatDriver:
        return self._heartbeat

    @property
    def pipeline(self):
        return self._pipeline

    @property
    def frames(self) -> Observable[Frame]:
        """Every frame that reached the terminal stage."""
        return self._frames

    @property
    def state(self) -> Observable[SessionState]:
        """Stream of state changes; new subscribers get the current state."""
        return self._state_subject

    @property
    def current_state(self) -> SessionState:
        return self._state_subject.value

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            current = self._state_subject.value
            if current is state or current is SessionState.CLOSED:
                return
            self._log.debug(f"Session state: {state.value}")
            self._state_subject.on_next(state)

    def _span(self, name: str):
        if self._tracer is None:
            return contextlib.nullcontext()
        return self._tracer.start_as_current_span(
            name, attributes={"gateway.host": self.config.host}
        )
