# src/virtkube/core/telemetry.py
"""Initializes OpenTelemetry services for virtkube."""

import logging

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import config

logger = logging.getLogger(__name__)


def initialize_telemetry():
    """
    Configures and initializes the TracerProvider and MeterProvider for OpenTelemetry.
    Data will be exported via OTLP/HTTP.
    """
    endpoint = config.OTEL_EXPORTER_OTLP_ENDPOINT
    resource = Resource(attributes={SERVICE_NAME: "virtkube"})

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{endpoint}/v1/traces")))
    trace.set_tracer_provider(tracer_provider)

    metric_reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=f"{endpoint}/v1/metrics"))
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[metric_reader]))
    logger.info(f"OpenTelemetry initialized. Exporting to: {endpoint}")


# Make the tracer and meter globally accessible
tracer = trace.get_tracer("virtkube.tracer")
meter = metrics.get_meter("virtkube.meter")

machine_classes_generated = meter.create_counter(
    "virtkube.machine_classes.generated",
    unit="1",
    description="Number of machine classes produced by generation runs.",
)
