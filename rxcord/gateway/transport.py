"""Framed duplex transport used by the gateway session.

:class:`Transport` is the contract the session relies on;
:class:`WebSocketTransport` implements it on top of the blocking
``websockets.sync`` client. ``read`` blocks with no timeout; ``write`` may
be called from another thread while a ``read`` is pending, and ``close``
from any thread unblocks a pending ``read``.
"""

import contextlib
import socket
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.sync.client import ClientConnection
from websockets.sync.client import connect as ws_connect

from ..mechanism import (
    ConnectError,
    HandshakeError,
    ReadError,
    TransportClosed,
    WriteFailure,
)
from ..telemetry import OTelLogger
from ..utils import get_short_error_info
from .framing import RawMessage


@runtime_checkable
class Transport(Protocol):
    """Bidirectional framed-message connection."""

    def connect(self, host: str, port: int, tls: bool) -> None:
        """Open the underlying stream. Raises ConnectError."""
        ...

    def handshake(
        self, path: str, headers: Mapping[str, str], timeout_ms: int
    ) -> None:
        """Upgrade the stream to a framed connection. Raises HandshakeError."""
        ...

    def read(self) -> RawMessage:
        """Block until the next message. Raises TransportClosed or ReadError."""
        ...

    def write(self, data: str) -> None:
        """Send one text message. Raises WriteFailure."""
        ...

    def close(self, code: int = 1000) -> None:
        """Close the connection, best-effort."""
        ...


def _close_code(e: ConnectionClosed) -> int | None:
    if e.rcvd is not None:
        return e.rcvd.code
    if e.sent is not None:
        return e.sent.code
    return None


class WebSocketTransport:
    """:class:`Transport` backed by ``websockets.sync.client``.

    Parameters
    ----------
    logger : OTelLogger | None
        Logger for connection lifecycle events. Nothing is logged if None.
    connect_timeout_ms : int
        Timeout for opening the TCP connection.
    """

    def __init__(
        self,
        logger: OTelLogger | None = None,
        connect_timeout_ms: int = 5_000,
    ):
        self._logger = logger
        self._connect_timeout_ms = connect_timeout_ms
        self._sock: socket.socket | None = None
        self._ws: ClientConnection | None = None
        self._stack = contextlib.ExitStack()
        self.host = ""
        self.port = 0
        self.tls = True

    def _log(self, message: str, level: str = "DEBUG") -> None:
        if self._logger is None:
            return
        {
            "DEBUG": self._logger.debug,
            "INFO": self._logger.info,
            "WARN": self._logger.warning,
            "ERROR": self._logger.error,
        }[level](message)

    @property
    def url_base(self) -> str:
        scheme = "wss" if self.tls else "ws"
        return f"{scheme}://{self.host}:{self.port}"

    def connect(self, host: str, port: int, tls: bool) -> None:
        self.host, self.port, self.tls = host, port, tls
        try:
            self._sock = socket.create_connection(
                (host, port), timeout=self._connect_timeout_ms / 1000
            )
        except OSError as e:
            raise ConnectError(
                get_short_error_info(e), source="WebSocketTransport", note=f"{host}:{port}"
            ) from e
        # The timeout bounds the TCP connect only; reads must block indefinitely.
        self._sock.settimeout(None)
        self._log(f"TCP connection to {host}:{port} established")

    def handshake(
        self, path: str, headers: Mapping[str, str], timeout_ms: int
    ) -> None:
        if self._sock is None:
            raise HandshakeError("connect() must be called first", source="WebSocketTransport")
        url = f"{self.url_base}{path}"
        try:
            self._ws = self._stack.enter_context(
                ws_connect(
                    url,
                    sock=self._sock,
                    additional_headers=dict(headers) or None,
                    open_timeout=timeout_ms / 1000,
                    max_size=None,
                )
            )
        except (
            websockets.InvalidHandshake,
            websockets.InvalidURI,
            TimeoutError,
            OSError,
        ) as e:
            self._sock.close()
            self._sock = None
            raise HandshakeError(
                get_short_error_info(e), source="WebSocketTransport", note=url
            ) from e
        self._log(f"Websocket handshake with {url} complete", "INFO")

    def _connection(self) -> ClientConnection:
        if self._ws is None:
            raise TransportClosed("transport is not connected", source="WebSocketTransport")
        return self._ws

    def read(self) -> RawMessage:
        ws = self._connection()
        try:
            return RawMessage(ws.recv())
        except ConnectionClosed as e:
            raise TransportClosed(
                get_short_error_info(e),
                source="WebSocketTransport",
                note="read",
                code=_close_code(e),
            ) from e
        except OSError as e:
            raise ReadError(
                get_short_error_info(e), source="WebSocketTransport", note="read"
            ) from e

    def write(self, data: str) -> None:
        ws = self._connection()
        try:
            ws.send(data)
        except (ConnectionClosed, OSError) as e:
            raise WriteFailure(
                get_short_error_info(e), source="WebSocketTransport", note="write"
            ) from e

    def close(self, code: int = 1000) -> None:
        if self._ws is None:
            if self._sock is not None:
                self._sock.close()
                self._sock = None
            return
        try:
            self._ws.close(code=code)
            self._stack.close()
        except (websockets.WebSocketException, OSError) as e:
            self._log(f"Close with code {code} failed: {get_short_error_info(e)}", "WARN")
        else:
            self._log(f"Connection closed with code {code}", "INFO")
