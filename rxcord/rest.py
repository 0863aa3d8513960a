"""Synchronous helper for the vendor REST API.

Endpoints are written as ``"METHOD /path/{param}"`` specifiers and parsed
once; path parameters are substituted (and URL-quoted) per request.

Example:
    >>> client = RestClient(token="Bot ...")
    >>> create_message = Endpoint.parse("POST /channels/{channel_id}/messages")
    >>> client.request(create_message, {"content": "hi"}, channel_id=1234)
"""

import json
import string
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from opentelemetry._logs import LoggerProvider
from requests import Response

from .mechanism import EndpointParseError, RestError
from .telemetry import OTelLogger, get_default_providers
from .utils import get_short_error_info

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class Endpoint:
    """An HTTP method and a literal path template."""

    method: str
    path: str

    @classmethod
    def parse(cls, specifier: str) -> "Endpoint":
        """Parse ``"GET /users/@me"``-style specifiers.

        Raises:
            EndpointParseError: Wrong shape, unknown method, or a path not
                starting with ``/``.
        """
        parts = specifier.split()
        if len(parts) != 2:
            raise EndpointParseError(
                f"expected 'METHOD /path', got {specifier!r}", source="Endpoint", note="parse"
            )
        method, path = parts
        if method not in HTTP_METHODS:
            raise EndpointParseError(
                f"unknown HTTP method {method!r}", source="Endpoint", note="parse"
            )
        if not path.startswith("/"):
            raise EndpointParseError(
                f"path must start with '/', got {path!r}", source="Endpoint", note="parse"
            )
        return cls(method, path)

    @property
    def params(self) -> tuple[str, ...]:
        return tuple(
            name for _, name, _, _ in string.Formatter().parse(self.path) if name
        )

    def format(self, **params: Any) -> str:
        """Substitute path parameters, quoting each value."""
        missing = [name for name in self.params if name not in params]
        if missing:
            raise EndpointParseError(
                f"missing path parameters {missing} for {self}",
                source="Endpoint",
                note="format",
            )
        return self.path.format(
            **{name: quote(str(value), safe="") for name, value in params.items()}
        )

    def __str__(self) -> str:
        return f"{self.method} {self.path}"


@dataclass(frozen=True)
class RestConfig:
    base_url: str = "https://discord.com/api/v10"
    user_agent: str = "DiscordBot (https://example.com, 1)"
    timeout_s: float = 10.0


class RestClient:
    """Sends authenticated JSON requests to the REST API.

    Unrelated to gateway state; it only shares the token.
    """

    def __init__(
        self,
        token: str | None = None,
        config: RestConfig | None = None,
        session: requests.Session | None = None,
        logger_provider: LoggerProvider | None = None,
    ):
        self.config = config or RestConfig()
        self._token = token
        self._session = session or requests.Session()
        if logger_provider is None:
            _, logger_provider = get_default_providers("rxcord")
        self._log = OTelLogger(
            logger_provider.get_logger("rxcord.rest"), source="RestClient"
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.config.user_agent,
        }
        if self._token:
            headers["Authorization"] = self._token
        return headers

    def request(
        self, endpoint: Endpoint | str, payload: Any = None, **params: Any
    ) -> Response:
        """Send one request; non-2xx responses raise :class:`RestError`."""
        if isinstance(endpoint, str):
            endpoint = Endpoint.parse(endpoint)
        url = self.config.base_url.rstrip("/") + endpoint.format(**params)
        data = None
        if payload is not None:
            data = payload if isinstance(payload, (str, bytes)) else json.dumps(payload)

        self._log.debug(f"{endpoint.method} {url}")
        try:
            response = self._session.request(
                endpoint.method,
                url,
                headers=self._headers(),
                data=data,
                timeout=self.config.timeout_s,
            )
        except requests.RequestException as e:
            self._log.error(f"{endpoint.method} {url} failed: {get_short_error_info(e)}")
            raise RestError(0, get_short_error_info(e)) from e

        if not 200 <= response.status_code < 300:
            self._log.error(f"request error code {response.status_code}", url=url)
            raise RestError(response.status_code, response.text[:500])
        return response

    def request_json(
        self, endpoint: Endpoint | str, payload: Any = None, **params: Any
    ) -> Any:
        response = self.request(endpoint, payload, **params)
        if not response.content:
            return None
        return response.json()

    def close(self) -> None:
        self._session.close()
