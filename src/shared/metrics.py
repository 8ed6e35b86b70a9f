from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from .config import settings


def setup_metrics(app_name: str) -> MeterProvider:
    """Configure OpenTelemetry metrics.

    The provider is returned so the caller can flush it on exit; a CLI run is
    usually shorter than the export interval.
    """

    resource = Resource.create({"service.name": app_name})

    readers = []
    if settings.TELEMETRY_CONSOLE:
        readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

    provider = MeterProvider(resource=resource, metric_readers=readers)

    metrics.set_meter_provider(provider)
    return provider
