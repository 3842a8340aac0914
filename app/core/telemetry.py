"""OpenTelemetry setup for distributed tracing."""

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.config import settings

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def setup_telemetry(app: "FastAPI") -> bool:
    """Configure tracing for the application.

    Returns True when an exporter was installed. Telemetry stays off unless
    OTEL_EXPORTER_OTLP_ENDPOINT is configured.
    """
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.info("Telemetry disabled: OTEL_EXPORTER_OTLP_ENDPOINT not configured")
        return False

    try:
        resource = Resource.create(
            {
                "service.name": settings.OTEL_SERVICE_NAME,
                "service.version": "1.0.0",
                "deployment.environment": settings.ENVIRONMENT,
            }
        )

        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
            insecure=not settings.is_production,
        )
        tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

        FastAPIInstrumentor.instrument_app(
            app,
            tracer_provider=tracer_provider,
            excluded_urls="health,api/docs,api/redoc,api/openapi.json",
        )

        logger.info(f"Telemetry enabled: exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
        return True

    except Exception as e:
        logger.warning(f"Failed to setup telemetry: {e}")
        return False


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for manual span creation."""
    return trace.get_tracer(name)


def instrument_httpx() -> None:
    """Instrument httpx for outbound calls to the Ollama server."""
    try:
        from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

        HTTPXClientInstrumentor().instrument()
        logger.info("httpx instrumentation enabled")
    except ImportError:
        logger.debug("httpx instrumentation not available")


def instrument_sqlalchemy() -> None:
    """Instrument SQLAlchemy for database tracing."""
    try:
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

        SQLAlchemyInstrumentor().instrument(enable_commenter=True)
        logger.info("SQLAlchemy instrumentation enabled")
    except ImportError:
        logger.debug("SQLAlchemy instrumentation not available")


def setup_all_instrumentation(app: "FastAPI") -> None:
    """Setup telemetry and, when enabled, all client instrumentations."""
    if setup_telemetry(app):
        instrument_httpx()
        instrument_sqlalchemy()
