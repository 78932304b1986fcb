"""Span plumbing for gridbattle: one process-wide tracer, flushed on exit."""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig


_TRACER: Tracer | None = None
_TRACER_PROVIDER: TracerProvider | None = None


def get_tracer(name: str = "gridbattle") -> Tracer:
    """Tracer used by engine modules; the no-op API tracer until init_tracing runs."""
    global _TRACER
    if _TRACER is None:
        _TRACER = trace.get_tracer(name)
    return _TRACER


def _span_processor(config: TelemetryConfig) -> SpanProcessor:
    # A CLI match without a collector still gets its spans, on stdout.
    if not config.otlp_traces_endpoint:
        return SimpleSpanProcessor(ConsoleSpanExporter())
    return BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True))


def init_tracing(config: TelemetryConfig) -> Tracer:
    global _TRACER, _TRACER_PROVIDER

    provider = TracerProvider(resource=Resource.create(config.resource()))
    provider.add_span_processor(_span_processor(config))
    trace.set_tracer_provider(provider)

    _TRACER_PROVIDER = provider
    _TRACER = provider.get_tracer(config.service_name)
    return _TRACER


def shutdown_tracing() -> None:
    """Flush batched spans and forget the provider. Safe to call without init."""
    global _TRACER, _TRACER_PROVIDER
    if _TRACER_PROVIDER is None:
        return
    _TRACER_PROVIDER.shutdown()
    _TRACER_PROVIDER = None
    _TRACER = None
