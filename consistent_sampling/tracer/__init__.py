"""Span records and OpenTelemetry SDK wiring."""

from consistent_sampling.tracer.id_generator import DeterministicIdGenerator
from consistent_sampling.tracer.provider import create_tracer_provider
from consistent_sampling.tracer.span_record import SpanRecord

__all__ = [
    "DeterministicIdGenerator",
    "SpanRecord",
    "create_tracer_provider",
]
