"""OpenTelemetry tracing configuration.

Tracing is off unless BROKERDOCS_OTEL_ENABLED is set. When on, object store
primitives emit ``brokerdocs.object_store.*`` spans (see
``brokerdocs.storage.tracing``) and the FastAPI app is instrumented.

Environment Variables:
    BROKERDOCS_OTEL_ENABLED: "1" enables tracing (default: disabled)
    BROKERDOCS_REQUIRE_OTEL: "1" turns a setup failure into TracingConfigError
    BROKERDOCS_OTEL_SERVICE_NAME: service.name resource attribute (default: "brokerdocs")
    BROKERDOCS_OTEL_EXPORTER: "otlp" or "console" (default: "otlp")
    BROKERDOCS_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP/HTTP endpoint (optional)
    BROKERDOCS_OTEL_TEST_CAPTURE: "1" keeps spans in memory for tests

Spans never carry credentials, presigned URLs, raw keys or document content.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes"})

_tracer_provider: TracerProvider | None = None
_test_exporter: Any = None


class TracingConfigError(Exception):
    """Raised when tracing is required but cannot be set up."""


@dataclass(frozen=True)
class TracingSettings:
    enabled: bool = False
    required: bool = False
    test_capture: bool = False
    service_name: str = "brokerdocs"
    exporter: str = "otlp"
    otlp_endpoint: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TracingSettings:
        env = os.environ if environ is None else environ

        def flag(name: str) -> bool:
            return env.get(name, "").strip().lower() in _TRUE_VALUES

        return cls(
            enabled=flag("BROKERDOCS_OTEL_ENABLED"),
            required=flag("BROKERDOCS_REQUIRE_OTEL"),
            test_capture=flag("BROKERDOCS_OTEL_TEST_CAPTURE"),
            service_name=env.get("BROKERDOCS_OTEL_SERVICE_NAME", "").strip() or "brokerdocs",
            exporter=env.get("BROKERDOCS_OTEL_EXPORTER", "").strip().lower() or "otlp",
            otlp_endpoint=env.get("BROKERDOCS_OTEL_EXPORTER_OTLP_ENDPOINT", "").strip() or None,
        )


def _span_processor(settings: TracingSettings) -> Any:
    global _test_exporter

    from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

    if settings.test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

        _test_exporter = InMemorySpanExporter()
        return SimpleSpanProcessor(_test_exporter)

    if settings.exporter == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        return SimpleSpanProcessor(ConsoleSpanExporter())

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    if settings.otlp_endpoint:
        return BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
    return BatchSpanProcessor(OTLPSpanExporter())


def configure_tracing(settings: TracingSettings | None = None) -> bool:
    """Install the global tracer provider once.

    Safe to call repeatedly; later calls are no-ops.

    Returns:
        True if tracing is active.

    Raises:
        TracingConfigError: If setup fails and BROKERDOCS_REQUIRE_OTEL=1.
    """
    global _tracer_provider

    settings = settings or TracingSettings.from_env()
    if not settings.enabled:
        logger.debug("OpenTelemetry tracing disabled")
        return False

    if _tracer_provider is not None:
        return True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider

        provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
        provider.add_span_processor(_span_processor(settings))
        trace.set_tracer_provider(provider)
        _tracer_provider = provider
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if settings.required:
            raise TracingConfigError(f"Tracing is required but setup failed: {e}") from e
        return False

    logger.info(
        "OpenTelemetry tracing configured: service=%s exporter=%s",
        settings.service_name,
        "in-memory" if settings.test_capture else settings.exporter,
    )
    return True


def instrument_fastapi(app: Any, settings: TracingSettings | None = None) -> None:
    """Instrument a FastAPI app; /health is excluded."""
    settings = settings or TracingSettings.from_env()
    if not settings.enabled:
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    except ImportError:
        logger.warning("opentelemetry-instrumentation-fastapi is not installed")
        return

    FastAPIInstrumentor.instrument_app(app, excluded_urls="health")


def get_test_spans() -> list[ReadableSpan]:
    """Return spans captured by the in-memory exporter."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()
