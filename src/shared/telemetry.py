"""OpenTelemetry setup for applications embedding devca.

devca itself only emits through ``logging.getLogger(__name__)``, the global
tracer and the global meter; nothing is exported until a provider is
installed. Call :func:`setup_telemetry` once at process start, or the
individual ``setup_*`` functions to pick what is exported.
"""

import logging
import sys

from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, ConsoleLogRecordExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Route Python logging through an OTel logger provider and to stdout."""
    level = level or settings.LOG_LEVEL

    logger_provider = LoggerProvider()
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(ConsoleLogRecordExporter()))
    set_logger_provider(logger_provider)

    root = logging.getLogger()
    root.addHandler(LoggingHandler(level=getattr(logging, level), logger_provider=logger_provider))

    # OTel batches its output; the stream handler shows records immediately
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(stream_handler)
    root.setLevel(level)


def setup_tracing(app_name: str) -> None:
    """Export spans to the console."""
    provider = TracerProvider(resource=Resource.create({"service.name": app_name}))
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)


def setup_metrics(app_name: str, prometheus: bool = True) -> None:
    """Export metrics to the console and, optionally, the Prometheus registry."""
    readers = [PeriodicExportingMetricReader(ConsoleMetricExporter())]
    if prometheus:
        readers.append(PrometheusMetricReader())

    provider = MeterProvider(
        resource=Resource.create({"service.name": app_name}),
        metric_readers=readers,
    )
    metrics.set_meter_provider(provider)


def setup_telemetry() -> None:
    """Configure logging, tracing and metrics from settings."""
    setup_logging(settings.LOG_LEVEL)
    setup_tracing(settings.APP_NAME)
    setup_metrics(settings.APP_NAME, prometheus=settings.METRICS_PROMETHEUS_ENABLED)
