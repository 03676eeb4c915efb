"""Access to the parent span found in an OpenTelemetry context."""

from typing import Optional, Tuple

from opentelemetry.context import Context
from opentelemetry.trace import TraceState
from opentelemetry.trace import get_current_span

from consistent_sampling.utils.helpers import format_span_id


def get_parent_span_id_and_trace_state(
    parent_context: Optional[Context],
) -> Tuple[str, TraceState]:
    """
    Return the parent span id (hex) and the trace state it published.

    For a trace root the span id is the invalid id and the trace state is empty.
    """
    parent_span_context = get_current_span(parent_context).get_span_context()
    if parent_span_context is None:
        return format_span_id(0), TraceState()
    trace_state = parent_span_context.trace_state
    if trace_state is None:
        trace_state = TraceState()
    return format_span_id(parent_span_context.span_id), trace_state
