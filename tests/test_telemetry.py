"""Tests for OpenTelemetry logging integration.

Tests the OTel telemetry utilities:
- ConsoleLogRecordExporter for CLI-friendly output
- OTelLogger wrapper and LogContext dimensions
- get_default_providers() lazy initialization
- GatewayMetrics counters
"""

import io
import sys
import time
from unittest.mock import MagicMock, patch

from opentelemetry._logs import LogRecord, SeverityNumber
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import LogRecordExportResult
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, InMemoryMetricReader
from opentelemetry.sdk.trace import TracerProvider

from rxcord.telemetry import (
    ConsoleLogRecordExporter,
    GatewayMetrics,
    LogContext,
    OTelLogger,
    configure_metrics,
    configure_telemetry,
    format_log_record,
    get_default_providers,
)


class _Readable:
    def __init__(self, log_record):
        self.log_record = log_record


def _record(body="Test message", **attributes):
    return LogRecord(
        timestamp=int(time.time() * 1e9),
        body=body,
        severity_text="INFO",
        severity_number=SeverityNumber.INFO,
        attributes=attributes,
    )


class TestConsoleLogRecordExporter:
    def test_export_formats_correctly(self):
        exporter = ConsoleLogRecordExporter()
        captured = io.StringIO()
        with patch.object(sys, "stderr", captured):
            result = exporter.export([_Readable(_record(**{"log.source": "Session"}))])

        output = captured.getvalue()
        assert result == LogRecordExportResult.SUCCESS
        assert "[INFO]" in output
        assert "Session" in output
        assert "Test message" in output

    def test_explicit_stream(self):
        stream = io.StringIO()
        exporter = ConsoleLogRecordExporter(stream)
        exporter.export([_Readable(_record())])
        assert "Test message" in stream.getvalue()

    def test_export_handles_empty_batch(self):
        stream = io.StringIO()
        result = ConsoleLogRecordExporter(stream).export([])
        assert result == LogRecordExportResult.SUCCESS
        assert stream.getvalue() == ""

    def test_closed_stream_reports_failure(self):
        stream = io.StringIO()
        stream.close()
        result = ConsoleLogRecordExporter(stream).export([_Readable(_record())])
        assert result == LogRecordExportResult.FAILURE

    def test_force_flush_returns_true(self):
        assert ConsoleLogRecordExporter(io.StringIO()).force_flush() is True


class TestFormatLogRecord:
    def test_dimensions_prefix_source(self):
        record = _record(
            body="Hello received",
            **{
                "log.source": "Session:gw",
                "service.name": "rxcord",
                "gateway.session": "3f2a9c1e",
                "component.name": "heartbeat",
            },
        )
        line = format_log_record(record)
        assert line.endswith("rxcord/3f2a9c1e/heartbeat Session:gw\t: Hello received\n")

    def test_missing_source(self):
        assert "Unknown\t: Test message" in format_log_record(_record())


class TestOTelLogger:
    def test_severity_levels_map_correctly(self):
        mock_logger = MagicMock()
        otel_logger = OTelLogger(mock_logger, source="TestSource")

        otel_logger.info("info message")
        otel_logger.debug("debug message")
        otel_logger.warning("warning message")
        otel_logger.error("error message")

        calls = mock_logger.emit.call_args_list
        assert [c[0][0].severity_number for c in calls] == [
            SeverityNumber.INFO,
            SeverityNumber.DEBUG,
            SeverityNumber.WARN,
            SeverityNumber.ERROR,
        ]
        assert [c[0][0].severity_text for c in calls] == ["INFO", "DEBUG", "WARN", "ERROR"]

    def test_custom_attributes_included(self):
        mock_logger = MagicMock()
        OTelLogger(mock_logger, source="TestSource").info("sent", sequence=3)

        record = mock_logger.emit.call_args[0][0]
        assert record.attributes["log.source"] == "TestSource"
        assert record.attributes["sequence"] == 3
        assert record.body == "sent"

    def test_context_attributes_attached(self):
        mock_logger = MagicMock()
        context = LogContext(service="rxcord", session="abcd", gateway_host="gw")
        OTelLogger(mock_logger, source="S", context=context).info("x")

        attrs = mock_logger.emit.call_args[0][0].attributes
        assert attrs["service.name"] == "rxcord"
        assert attrs["gateway.session"] == "abcd"
        assert attrs["gateway.host"] == "gw"
        assert "component.name" not in attrs

    def test_with_context_overrides_source_and_component(self):
        mock_logger = MagicMock()
        parent = OTelLogger(mock_logger, source="Session", context=LogContext(session="abcd"))
        child = parent.with_context(component="heartbeat", source="Session:heartbeat")
        child.info("beat")

        attrs = mock_logger.emit.call_args[0][0].attributes
        assert child.source == "Session:heartbeat"
        assert parent.source == "Session"
        assert attrs["gateway.session"] == "abcd"
        assert attrs["component.name"] == "heartbeat"

    def test_min_severity_drops_lower_records(self):
        mock_logger = MagicMock()
        otel_logger = OTelLogger(mock_logger, source="S", min_severity=SeverityNumber.WARN)
        otel_logger.debug("dropped")
        otel_logger.info("dropped")
        otel_logger.error("kept")
        assert mock_logger.emit.call_count == 1

    def test_timestamp_is_set(self):
        mock_logger = MagicMock()
        before = time.time_ns()
        OTelLogger(mock_logger, source="S").info("test")
        after = time.time_ns()
        assert before <= mock_logger.emit.call_args[0][0].timestamp <= after


class TestProviders:
    def test_singleton_returns_same_providers(self):
        tracer1, logger1 = get_default_providers("service1")
        tracer2, logger2 = get_default_providers("service2")
        assert isinstance(tracer1, TracerProvider)
        assert isinstance(logger1, LoggerProvider)
        assert tracer1 is tracer2
        assert logger1 is logger2

    def test_custom_exporter_is_used(self):
        mock_exporter = MagicMock()
        mock_exporter.export.return_value = LogRecordExportResult.SUCCESS
        _, logger_provider = configure_telemetry(
            service_name="test-app", log_exporter=mock_exporter, batch_logs=False
        )
        OTelLogger(logger_provider.get_logger("test"), source="T").info("hello")
        assert mock_exporter.export.called


class TestGatewayMetrics:
    def test_counters_reach_reader(self):
        reader = InMemoryMetricReader()
        meter_provider = MeterProvider(metric_readers=[reader])
        GatewayMetrics(meter_provider).heartbeat_sent()
        names = [
            metric.name
            for resource_metrics in reader.get_metrics_data().resource_metrics
            for scope_metrics in resource_metrics.scope_metrics
            for metric in scope_metrics.metrics
        ]
        assert "rxcord.gateway.heartbeats.sent" in names

    def test_configure_metrics_returns_provider(self):
        exporter = ConsoleMetricExporter(out=io.StringIO())
        provider = configure_metrics("test-app", metric_exporter=exporter, export_interval_ms=60_000)
        assert isinstance(provider, MeterProvider)
        provider.shutdown()

    def test_without_provider_is_noop(self):
        metrics = GatewayMetrics()
        metrics.frame_received()
        metrics.heartbeat_sent()
        metrics.handler_error()

    def test_counters_created_and_incremented(self):
        meter_provider = MagicMock()
        counters = {}

        def create_counter(name, **kwargs):
            counters[name] = MagicMock()
            return counters[name]

        meter_provider.get_meter.return_value.create_counter.side_effect = create_counter
        metrics = GatewayMetrics(meter_provider)

        metrics.frame_received()
        metrics.heartbeat_sent()
        metrics.heartbeat_sent()
        metrics.handler_error()

        counters["rxcord.gateway.frames.inbound"].add.assert_called_once_with(1)
        assert counters["rxcord.gateway.heartbeats.sent"].add.call_count == 2
        counters["rxcord.gateway.handler.errors"].add.assert_called_once_with(1)
