"""Console log-record exporter for CLI-friendly gateway logs."""

import sys
from collections.abc import Sequence

from opentelemetry.sdk._logs._internal import ReadableLogRecord
from opentelemetry.sdk._logs.export import (
    LogRecordExporter,
    LogRecordExportResult,
)

from .logger import format_log_record


class ConsoleLogRecordExporter(LogRecordExporter):
    """OTel LogRecordExporter that writes one readable line per record.

    Unlike OTel's ConsoleLogExporter which outputs verbose JSON, this
    exporter produces lines such as::

        2026-02-03T10:30:00Z [INFO] rxcord/3f2a9c1e Session	: Hello received
    """

    def __init__(self, stream=None):
        # Resolved lazily so tests can patch sys.stderr.
        self._stream = stream

    def _out(self):
        return self._stream if self._stream is not None else sys.stderr

    def export(self, batch: Sequence[ReadableLogRecord]) -> LogRecordExportResult:
        out = self._out()
        try:
            for readable_record in batch:
                out.write(format_log_record(readable_record.log_record))
            out.flush()
            return LogRecordExportResult.SUCCESS
        except (OSError, ValueError):
            return LogRecordExportResult.FAILURE

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        self._out().flush()
        return True
