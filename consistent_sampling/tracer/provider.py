"""TracerProvider wiring for consistent samplers."""

from __future__ import annotations

from typing import Dict, Optional

from opentelemetry.sdk.resources import Resource as OTelResource
from opentelemetry.sdk.trace import TracerProvider as OTelTracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.id_generator import IdGenerator
from opentelemetry.sdk.trace.sampling import Sampler


def create_tracer_provider(
    sampler: Sampler,
    exporter: Optional[SpanExporter] = None,
    id_generator: Optional[IdGenerator] = None,
    resource: Optional[Dict[str, str]] = None,
) -> OTelTracerProvider:
    """
    Create an OpenTelemetry TracerProvider that samples with ``sampler``.

    Args:
        sampler: Sampler deciding for every span created by the provider
        exporter: Optional exporter, attached through a SimpleSpanProcessor
        id_generator: Optional id generator (e.g. DeterministicIdGenerator)
        resource: Resource attributes dictionary (converted to OTel Resource)

    Returns:
        The configured OTel TracerProvider
    """
    kwargs = {
        "sampler": sampler,
        "resource": OTelResource.create(resource or {}),
        "shutdown_on_exit": False,
    }
    if id_generator is not None:
        kwargs["id_generator"] = id_generator
    provider = OTelTracerProvider(**kwargs)
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider
