"""OpenTelemetry configuration helpers for rxcord sessions.

This package provides OTel provider configuration, a structured logger
wrapper, a console log-record exporter, and gateway counters.
"""

from .config import (
    configure_metrics,
    configure_telemetry,
    get_default_providers,
)
from .exporters import ConsoleLogRecordExporter
from .logger import (
    LogContext,
    OTelLogger,
    format_log_record,
)
from .metrics import GatewayMetrics, MetricsHelper

__all__ = [
    # config
    "configure_telemetry",
    "configure_metrics",
    "get_default_providers",
    # logger
    "OTelLogger",
    "LogContext",
    "format_log_record",
    # exporters
    "ConsoleLogRecordExporter",
    # metrics
    "MetricsHelper",
    "GatewayMetrics",
]
