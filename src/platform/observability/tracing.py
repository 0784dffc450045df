"""
OpenTelemetry tracing configuration for distributed observability.

Provides:
- Tracer provider setup with OTLP / console export
- Context propagation across Kafka messages
"""

import os

from opentelemetry import context as otel_context, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagate import extract
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON


class TracingConfig:
    """
    Usage:
        # Initialize once at consumer startup
        tracing = TracingConfig(service_name="event-registration-service")
        tracing.setup()

        # Get tracer for manual spans
        tracer = tracing.get_tracer(name=__name__)
    """

    def __init__(
        self,
        *,
        service_name: str,
        otlp_endpoint: str | None = None,
        enable_console: bool = False,
    ) -> None:
        self.service_name = service_name
        self.otlp_endpoint = otlp_endpoint or os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
        self.enable_console = (
            enable_console or os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true'
        )

        self._provider: TracerProvider | None = None

    def setup(self) -> None:
        """
        Setup OpenTelemetry tracing.

        Should be called once at startup. Without an OTLP endpoint or console
        export the provider is still installed, spans are simply not exported.
        """
        resource = Resource(attributes={SERVICE_NAME: self.service_name})

        # Sampling strategy: ALWAYS_ON at SDK level
        # - Error status is unknown at span start, so head-based sampling would drop failures
        # - Use tail-based sampling in the collector for volume control
        self._provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            otlp_exporter = OTLPSpanExporter(endpoint=self.otlp_endpoint)
            self._provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    def get_tracer(self, *, name: str) -> trace.Tracer:
        return trace.get_tracer(name)

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()


def extract_trace_context(*, headers: dict[str, str] | None = None) -> Context:
    """
    Extract trace context from Kafka message headers and attach it to the current context.

    Spans created while handling the message become children of the
    producer's span when the producer injected a `traceparent` header.

    Args:
        headers: Kafka message headers (e.g., {"traceparent": "00-abc123-def456-01"})

    Returns:
        Context object with extracted trace context, or current context if no headers
    """
    if headers:
        ctx = extract(headers)
        otel_context.attach(ctx)
        return ctx
    return otel_context.get_current()
