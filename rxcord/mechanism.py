"""Core error types for :mod:`rxcord`.

Errors raised below the message pipeline (transport, envelope decoding)
terminate the session. Errors raised by the terminal user handler are
wrapped in :class:`HandlerError`, logged and discarded.
"""


class GatewayError(Exception):
    """Base class for all rxcord exceptions."""

    def __init__(self, message: str = "", source: str = "Unknown", note: str = ""):
        super().__init__(message)
        self.message = message
        self.source = source
        self.note = note

    def __str__(self):
        if self.note:
            return f"<{self.source}> {self.note}: {self.message}"
        return f"<{self.source}> {self.message}"


class ConnectError(GatewayError):
    """The transport could not reach the gateway host."""


class HandshakeError(GatewayError):
    """The websocket opening handshake failed or timed out."""


class HelloUnexpected(GatewayError):
    """The first frame of a connection was not a textual hello."""


class EnvelopeDecodeError(GatewayError):
    """A frame did not carry a well-formed ``{op, s, t, d}`` envelope."""


class NonTextFrame(GatewayError):
    """A binary frame arrived where only text frames are understood."""


class ReadError(GatewayError):
    """The transport failed while waiting for the next frame."""


class TransportClosed(GatewayError):
    """The connection was closed; no further frames will arrive."""

    def __init__(
        self,
        message: str = "",
        source: str = "Unknown",
        note: str = "",
        code: int | None = None,
    ):
        super().__init__(message, source=source, note=note)
        self.code = code


class WriteFailure(GatewayError):
    """An outbound frame could not be written to the transport."""


class HandlerError(GatewayError):
    """The terminal user handler raised while processing a frame."""

    def __init__(self, exception: Exception, source: str = "Unknown", note: str = ""):
        super().__init__(str(exception), source=source, note=note)
        self.exception = exception


class EndpointParseError(GatewayError, ValueError):
    """A REST endpoint specifier could not be parsed."""


class RestError(GatewayError):
    """A REST call returned a non-success status."""

    def __init__(self, status: int, message: str = "", source: str = "RestClient"):
        super().__init__(message or f"HTTP {status}", source=source, note="request")
        self.status = status
