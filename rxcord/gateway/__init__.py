"""Gateway (events) client.

This package provides the pieces of a long-lived gateway connection:
    - Opcode, intent and close-code tables
    - Envelope decoding, Identify serialization and heartbeat framing
    - A websocket transport with blocking reads
    - A heartbeat timer thread with restart/kill signals
    - An ordered message pipeline ending in the user handler
    - The Session state machine tying them together

Example:
    >>> from rxcord.gateway import Identify, Intent, Session
    >>>
    >>> session = Session.connect(
    ...     Identify(token="Bot ...", intents=Intent.GUILDS),
    ...     handler=lambda frame: print(frame.t, frame.d),
    ... )
    >>> session.start()
"""

from .framing import (
    Frame,
    HeartbeatBuffer,
    Identify,
    IdentifyProperties,
    RawMessage,
    decode_envelope,
    encode_frame,
    max_digits,
    parse_heartbeat_interval,
)
from .heartbeat import HeartbeatDriver, HeartbeatSignal, HeartbeatState
from .opcodes import (
    OFFLINE_CLOSE_CODES,
    SEND_OPCODES,
    CloseCode,
    Intent,
    Opcode,
    should_reconnect,
)
from .pipeline import (
    EnvelopeDecode,
    HeartbeatIntercept,
    Pipeline,
    PipelineBuilder,
    SequenceUpdate,
    Stage,
    TextFilter,
    UserHandler,
    build_gateway_pipeline,
)
from .sequence import Sequence
from .session import (
    OFFLINE_CLOSE_CODE,
    RESUMABLE_CLOSE_CODE,
    GatewayConfig,
    Session,
    SessionState,
)
from .shutdown import ShutdownContext, SignalRegistration, register_shutdown_signals
from .transport import Transport, WebSocketTransport

__all__ = [
    # opcodes
    "Opcode",
    "Intent",
    "CloseCode",
    "SEND_OPCODES",
    "OFFLINE_CLOSE_CODES",
    "should_reconnect",
    # framing
    "RawMessage",
    "Frame",
    "Identify",
    "IdentifyProperties",
    "HeartbeatBuffer",
    "decode_envelope",
    "encode_frame",
    "max_digits",
    "parse_heartbeat_interval",
    # sequence
    "Sequence",
    # transport
    "Transport",
    "WebSocketTransport",
    # heartbeat
    "HeartbeatDriver",
    "HeartbeatSignal",
    "HeartbeatState",
    # pipeline
    "Stage",
    "TextFilter",
    "EnvelopeDecode",
    "SequenceUpdate",
    "HeartbeatIntercept",
    "UserHandler",
    "Pipeline",
    "PipelineBuilder",
    "build_gateway_pipeline",
    # session
    "GatewayConfig",
    "Session",
    "SessionState",
    "OFFLINE_CLOSE_CODE",
    "RESUMABLE_CLOSE_CODE",
    # shutdown
    "ShutdownContext",
    "SignalRegistration",
    "register_shutdown_signals",
]
