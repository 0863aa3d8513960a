"""Convenience exports for the :mod:`rxcord` package."""

from .gateway import (  # noqa: F401
    CloseCode,
    Frame,
    GatewayConfig,
    HeartbeatBuffer,
    HeartbeatDriver,
    Identify,
    IdentifyProperties,
    Intent,
    Opcode,
    Pipeline,
    PipelineBuilder,
    RawMessage,
    Sequence,
    Session,
    SessionState,
    ShutdownContext,
    Transport,
    WebSocketTransport,
    register_shutdown_signals,
    should_reconnect,
)
from .mechanism import (  # noqa: F401
    ConnectError,
    EndpointParseError,
    EnvelopeDecodeError,
    GatewayError,
    HandlerError,
    HandshakeError,
    HelloUnexpected,
    NonTextFrame,
    ReadError,
    RestError,
    TransportClosed,
    WriteFailure,
)
from .rest import Endpoint, RestClient, RestConfig  # noqa: F401
from .telemetry import OTelLogger, configure_telemetry, get_default_providers  # noqa: F401
from .utils import snowflake_timestamp_ms, snowflake_timestamp_raw_ms  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    # errors
    "GatewayError",
    "ConnectError",
    "HandshakeError",
    "HelloUnexpected",
    "EnvelopeDecodeError",
    "NonTextFrame",
    "ReadError",
    "TransportClosed",
    "WriteFailure",
    "HandlerError",
    "EndpointParseError",
    "RestError",

    # gateway
    "Opcode",
    "Intent",
    "CloseCode",
    "should_reconnect",
    "RawMessage",
    "Frame",
    "Identify",
    "IdentifyProperties",
    "HeartbeatBuffer",
    "Sequence",
    "HeartbeatDriver",
    "Pipeline",
    "PipelineBuilder",
    "Transport",
    "WebSocketTransport",
    "GatewayConfig",
    "Session",
    "SessionState",
    "ShutdownContext",
    "register_shutdown_signals",

    # REST
    "Endpoint",
    "RestClient",
    "RestConfig",

    # telemetry
    "OTelLogger",
    "configure_telemetry",
    "get_default_providers",

    # identifiers
    "snowflake_timestamp_raw_ms",
    "snowflake_timestamp_ms",
]
