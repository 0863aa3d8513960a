"""OTel counters for gateway sessions.

Provides :class:`MetricsHelper`, a convenience wrapper around an OTel
``Meter``, and :class:`GatewayMetrics`, the fixed set of counters a
session updates when a meter provider is injected.
"""

from opentelemetry.metrics import Counter, Meter, MeterProvider


class MetricsHelper:
    """Convenience wrapper around an OTel ``Meter``.

    Args:
        meter_provider: The :class:`MeterProvider` to obtain a meter from.
        instrumentation_name: Identifies the instrumentation library.
    """

    def __init__(self, meter_provider: MeterProvider, instrumentation_name: str):
        self._meter: Meter = meter_provider.get_meter(instrumentation_name)

    def counter(
        self,
        name: str,
        description: str = "",
        unit: str = "1",
    ) -> Counter:
        """Create (or retrieve) a monotonic counter instrument."""
        return self._meter.create_counter(name, description=description, unit=unit)


class GatewayMetrics:
    """Counters for inbound frames, heartbeats sent and handler failures.

    All methods are no-ops when constructed without a meter provider.
    """

    def __init__(self, meter_provider: MeterProvider | None = None):
        self._frames: Counter | None = None
        self._heartbeats: Counter | None = None
        self._handler_errors: Counter | None = None
        if meter_provider is None:
            return
        helper = MetricsHelper(meter_provider, "rxcord.gateway")
        self._frames = helper.counter(
            "rxcord.gateway.frames.inbound",
            description="Frames read from the gateway",
        )
        self._heartbeats = helper.counter(
            "rxcord.gateway.heartbeats.sent",
            description="Heartbeat frames written to the gateway",
        )
        self._handler_errors = helper.counter(
            "rxcord.gateway.handler.errors",
            description="Frames whose user handler raised",
        )

    def frame_received(self) -> None:
        if self._frames is not None:
            self._frames.add(1)

    def heartbeat_sent(self) -> None:
        if self._heartbeats is not None:
            self._heartbeats.add(1)

    def handler_error(self) -> None:
        if self._handler_errors is not None:
            self._handler_errors.add(1)
