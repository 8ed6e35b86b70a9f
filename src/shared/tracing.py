from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from .config import settings


def setup_tracing(app_name: str) -> None:
    """Configure OpenTelemetry tracing."""
    resource = Resource.create(
        {"service.name": app_name, "service.version": settings.APP_VERSION}
    )
    provider = TracerProvider(resource=resource)

    # Short-lived process: export spans synchronously instead of batching
    if settings.TELEMETRY_CONSOLE:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
