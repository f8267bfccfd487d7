"""
OpenTelemetry tracing configuration.

FastAPI and SQLAlchemy are auto-instrumented; booking use cases open their own spans through
`trace.get_tracer(__name__)`. Spans go to OTLP (Jaeger/Tempo) when OTEL_EXPORTER_OTLP_ENDPOINT is
set and to stdout when OTEL_CONSOLE_EXPORT is on.
"""

from typing import Any, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from sqlalchemy.ext.asyncio import AsyncEngine

from src.platform.config.core_setting import settings


class TracingConfig:
    """
    Usage:
        tracing = TracingConfig()
        tracing.setup()
        tracing.instrument_sqlalchemy(engine=get_engine())
        ...
        tracing.shutdown()
    """

    def __init__(
        self,
        *,
        service_name: Optional[str] = None,
        otlp_endpoint: Optional[str] = None,
        enable_console: Optional[bool] = None,
    ) -> None:
        self.service_name = service_name or settings.SERVICE_NAME
        self.otlp_endpoint = otlp_endpoint or settings.OTEL_EXPORTER_OTLP_ENDPOINT
        self.enable_console = (
            settings.OTEL_CONSOLE_EXPORT if enable_console is None else enable_console
        )
        self._provider: Optional[TracerProvider] = None

    @property
    def is_exporting(self) -> bool:
        return bool(self.otlp_endpoint) or self.enable_console

    def setup(self) -> None:
        """Install the global tracer provider. Call once at application startup."""
        # Keep every span; volume control belongs to tail sampling in the collector
        self._provider = TracerProvider(
            resource=Resource(attributes={SERVICE_NAME: self.service_name}), sampler=ALWAYS_ON
        )
        if self.otlp_endpoint:
            self._provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )
        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(self._provider)

    def instrument_fastapi(self, *, app: Any, excluded_urls: str = 'health,metrics') -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    def instrument_sqlalchemy(self, *, engine: AsyncEngine) -> None:
        # The instrumentor hooks the sync engine underneath the async facade
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()
