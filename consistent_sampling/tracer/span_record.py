"""Immutable span records consumed by the estimation stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.trace import TraceState

from consistent_sampling.utils.helpers import INVALID_SPAN_ID, format_span_id, format_trace_id


@dataclass(frozen=True)
class SpanRecord:
    """
    A finished, sampled span reduced to what estimation needs.

    ``trace_state`` is the state the span published (it carries the rate
    exponent), ``parent_trace_state`` is the state inherited from the parent
    (it carries the ancestor fields written by dropped ancestors).
    """

    trace_id: str
    span_id: str
    parent_span_id: str = INVALID_SPAN_ID
    name: str = ""
    trace_state: TraceState = field(default_factory=TraceState)
    parent_trace_state: TraceState = field(default_factory=TraceState)
    attributes: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def is_root(self) -> bool:
        return self.parent_span_id == INVALID_SPAN_ID

    @classmethod
    def from_readable_span(cls, span: ReadableSpan) -> "SpanRecord":
        context = span.get_span_context()
        parent = span.parent
        if parent is not None and parent.is_valid:
            parent_span_id = format_span_id(parent.span_id)
            parent_trace_state = parent.trace_state or TraceState()
        else:
            parent_span_id = INVALID_SPAN_ID
            parent_trace_state = TraceState()
        return cls(
            trace_id=format_trace_id(context.trace_id),
            span_id=format_span_id(context.span_id),
            parent_span_id=parent_span_id,
            name=span.name,
            trace_state=context.trace_state or TraceState(),
            parent_trace_state=parent_trace_state,
            attributes=MappingProxyType(dict(span.attributes or {})),
        )
