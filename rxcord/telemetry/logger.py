"""OTel logger wrapper and log context for gateway sessions.

Provides :class:`OTelLogger`, a thin wrapper around the OTel Logger API
with convenience ``info``/``debug``/``warning``/``error`` methods, and
:class:`LogContext`, an immutable bundle of dimensional log attributes
(service, session, component, gateway host).

Also contains :func:`format_log_record`, used by the console exporter.
"""

import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from opentelemetry._logs import LogRecord, SeverityNumber


@dataclass(frozen=True)
class LogContext:
    """Immutable bundle of dimensional log attributes.

    Automatically attached to every log record emitted by an
    OTelLogger carrying this context.
    """

    service: str = ""
    session: str = ""
    component: str = ""
    gateway_host: str = ""

    def as_attributes(self) -> dict[str, str]:
        """Convert to OTel log record attributes dict. Omits empty values."""
        attrs: dict[str, str] = {}
        if self.service:
            attrs["service.name"] = self.service
        if self.session:
            attrs["gateway.session"] = self.session
        if self.component:
            attrs["component.name"] = self.component
        if self.gateway_host:
            attrs["gateway.host"] = self.gateway_host
        return attrs

    def child(self, **overrides: str) -> "LogContext":
        """Derive a child context, inheriting parent values for unspecified fields."""
        return LogContext(**{**asdict(self), **overrides})


def format_log_record(record: LogRecord) -> str:
    """
    Format a LogRecord as a human-readable line for console output.

    Format: YYYY-MM-DDTHH:MM:SSZ [LEVEL] service/session/component source\\t: body\\n

    Args:
        record: OpenTelemetry LogRecord to format.

    Returns:
        Formatted string terminated by a newline.
    """
    timestamp_ns = record.timestamp or 0
    timestamp_str = datetime.fromtimestamp(timestamp_ns / 1e9, tz=UTC).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )
    attrs = record.attributes or {}
    source = attrs.get("log.source", "Unknown")
    parts = [
        attrs.get(key, "")
        for key in ("service.name", "gateway.session", "component.name")
    ]
    parts = [p for p in parts if p]
    dim_prefix = "/".join(str(v) for v in parts) + " " if parts else ""

    return (
        f"{timestamp_str} [{record.severity_text}] "
        f"{dim_prefix}{source}\t: {record.body}\n"
    )


class OTelLogger:
    """Thin wrapper for OTel Logger with convenient emit methods.

    Example:
        >>> logger = OTelLogger(provider.get_logger("rxcord"), source="Session")
        >>> logger.info("Hello received", heartbeat_interval_ms=41250)
        >>> child = logger.with_context(component="heartbeat", source="Heartbeat")
    """

    def __init__(
        self,
        logger,
        source: str,
        context: LogContext | None = None,
        min_severity: SeverityNumber | None = None,
    ):
        """Initialize OTel logger wrapper.

        Args:
            logger: OTel Logger instance from LoggerProvider.get_logger()
            source: Source identifier for log.source attribute
            context: Optional LogContext with dimensional attributes.
            min_severity: Optional minimum severity -- records below this
                level are silently dropped.
        """
        self._logger = logger
        self._source = source
        self._context = context or LogContext()
        self._min_severity = min_severity

    @property
    def source(self) -> str:
        return self._source

    def info(self, message: str, **attrs) -> None:
        self._emit(SeverityNumber.INFO, "INFO", message, attrs)

    def debug(self, message: str, **attrs) -> None:
        self._emit(SeverityNumber.DEBUG, "DEBUG", message, attrs)

    def warning(self, message: str, **attrs) -> None:
        self._emit(SeverityNumber.WARN, "WARN", message, attrs)

    def error(self, message: str, **attrs) -> None:
        self._emit(SeverityNumber.ERROR, "ERROR", message, attrs)

    def with_context(self, **overrides) -> "OTelLogger":
        """Derive a child logger inheriting this logger's context with overrides.

        A ``source`` key is popped and used as the child's source string; the
        remaining keys override :class:`LogContext` fields.
        """
        new_source = overrides.pop("source", self._source)
        return OTelLogger(
            self._logger,
            source=new_source,
            context=self._context.child(**overrides),
            min_severity=self._min_severity,
        )

    def _emit(
        self,
        severity_number: SeverityNumber,
        severity_text: str,
        message: str,
        attrs: dict,
    ) -> None:
        if self._min_severity and severity_number.value < self._min_severity.value:
            return
        merged = {
            "log.source": self._source,
            **self._context.as_attributes(),
            **attrs,
        }
        record = LogRecord(
            timestamp=time.time_ns(),
            body=message,
            severity_text=severity_text,
            severity_number=severity_number,
            attributes=merged,
        )
        self._logger.emit(record)
