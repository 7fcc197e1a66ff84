from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from flight_telemetry.settings import settings
from flight_telemetry.utils.logging import get_logger

logger = get_logger("tracing")

_initialized = False


def init_tracer(service_name: str) -> None:
    """Install an SDK tracer provider when OTEL_ENABLED is set; otherwise spans are no-ops."""
    global _initialized
    if not settings.OTEL_ENABLED or _initialized:
        return

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    _initialized = True
    logger.info(f"Initialized tracer for {service_name}")


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(f"flight_telemetry.{name}")
