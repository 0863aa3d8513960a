"""OTel provider configuration for rxcord sessions.

Provides :func:`configure_telemetry` (tracer + logger providers),
:func:`configure_metrics` (meter provider), and :func:`get_default_providers`
(lazy singleton with console output).
"""

from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import (
    BatchLogRecordProcessor,
    LogRecordExporter,
    SimpleLogRecordProcessor,
)
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .exporters import ConsoleLogRecordExporter


def _resource(service_name: str, service_version: str) -> Resource:
    return Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
        }
    )


def configure_telemetry(
    service_name: str = "rxcord",
    service_version: str = "",
    span_exporter: SpanExporter | None = None,
    log_exporter: LogRecordExporter | None = None,
    batch_logs: bool = True,
) -> tuple[TracerProvider, LoggerProvider]:
    """
    Configure OTel providers for gateway sessions.

    Returns the providers for explicit injection into a
    :class:`~rxcord.gateway.Session` -- does NOT set global providers.

    Args:
        service_name: Service identifier for resource attributes.
        service_version: Service version for resource attributes.
        span_exporter: Optional span exporter.
        log_exporter: Optional log exporter.
        batch_logs: If True, use BatchLogRecordProcessor (network exporters).
            If False, use SimpleLogRecordProcessor (immediate, console).

    Example:
        >>> tracer_provider, logger_provider = configure_telemetry(
        ...     service_name="my-bot",
        ...     log_exporter=ConsoleLogRecordExporter(),
        ...     batch_logs=False,
        ... )
        >>> session = Session.connect(identify, logger_provider=logger_provider)
    """
    resource = _resource(service_name, service_version)

    tracer_provider = TracerProvider(resource=resource)
    if span_exporter:
        tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))

    logger_provider = LoggerProvider(resource=resource)
    if log_exporter:
        processor = (
            BatchLogRecordProcessor(log_exporter)
            if batch_logs
            else SimpleLogRecordProcessor(log_exporter)
        )
        logger_provider.add_log_record_processor(processor)

    return tracer_provider, logger_provider


_default_tracer_provider: TracerProvider | None = None
_default_logger_provider: LoggerProvider | None = None


def get_default_providers(
    service_name: str = "rxcord",
) -> tuple[TracerProvider, LoggerProvider]:
    """Get or create default providers with console output.

    Lazily initializes default providers on first call and returns the same
    providers afterwards. Components fall back to these when no provider is
    injected.

    Args:
        service_name: Service name for the default providers (only used on first call).
    """
    global _default_tracer_provider, _default_logger_provider

    if _default_logger_provider is None:
        _default_tracer_provider, _default_logger_provider = configure_telemetry(
            service_name=service_name,
            log_exporter=ConsoleLogRecordExporter(),
            batch_logs=False,  # Immediate output for CLI
        )

    assert _default_tracer_provider is not None
    return _default_tracer_provider, _default_logger_provider


def configure_metrics(
    service_name: str = "rxcord",
    service_version: str = "",
    metric_exporter: MetricExporter | None = None,
    export_interval_ms: int = 10_000,
) -> MeterProvider:
    """Configure and return an OTel MeterProvider.

    Args:
        service_name: Service identifier added as a resource attribute.
        service_version: Service version resource attribute.
        metric_exporter: Optional metric exporter. Defaults to
            ``ConsoleMetricExporter``.
        export_interval_ms: Polling interval for the periodic reader.
    """
    exporter = (
        metric_exporter if metric_exporter is not None else ConsoleMetricExporter()
    )
    reader = PeriodicExportingMetricReader(
        exporter, export_interval_millis=export_interval_ms
    )
    return MeterProvider(
        resource=_resource(service_name, service_version), metric_readers=[reader]
    )
