"""Down-sampling of already sampled spans to a coarser sampling rate."""

from __future__ import annotations

import dataclasses
import enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from consistent_sampling.context.propagators import (
    NUMBER_DROPPED_ANCESTORS_KEY,
    SAMPLED_ANCESTOR_SPAN_ID_KEY,
    SAMPLING_RATE_EXPONENT_KEY,
    SAMPLING_RATIO_KEY,
    SAMPLING_UNKNOWN_RATE_EXPONENT,
    put_value,
    read_number_dropped_ancestors,
    read_rate_exponent,
    read_sampled_ancestor_span_id,
    remove_value,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.tracer.span_record import SpanRecord
from consistent_sampling.utils import helpers


class SamplingScheme(enum.Enum):
    """How a span recorded its sampling rate."""

    RATE_EXPONENT = "rate-exponent"
    RATIO = "ratio"


def get_sampling_scheme(span: SpanRecord) -> Optional[SamplingScheme]:
    if SAMPLING_RATE_EXPONENT_KEY in span.trace_state:
        return SamplingScheme.RATE_EXPONENT
    if SAMPLING_RATIO_KEY in span.attributes:
        return SamplingScheme.RATIO
    return None


def check_single_sampling_scheme(spans: Iterable[SpanRecord]) -> Optional[SamplingScheme]:
    """
    Return the sampling scheme shared by all spans.

    Raises:
        ValidationError: if a span carries no sampling rate or schemes are mixed
    """
    scheme = None
    for span in spans:
        span_scheme = get_sampling_scheme(span)
        if span_scheme is None:
            raise ValidationError("span carries no sampling rate", {"span_id": span.span_id})
        if scheme is None:
            scheme = span_scheme
        elif scheme is not span_scheme:
            raise ValidationError(
                "spans mix sampling schemes",
                {"expected": scheme.value, "found": span_scheme.value, "span_id": span.span_id},
            )
    return scheme


def get_sampling_rate(span: SpanRecord) -> float:
    """
    Return the rate the span was sampled with.

    Raises:
        ValidationError: if the span carries no valid sampling rate
    """
    scheme = get_sampling_scheme(span)
    if scheme is SamplingScheme.RATE_EXPONENT:
        exponent = read_rate_exponent(span.trace_state)
        if exponent != SAMPLING_UNKNOWN_RATE_EXPONENT:
            return helpers.get_sampling_rate(exponent)
    elif scheme is SamplingScheme.RATIO:
        try:
            ratio = float(span.attributes[SAMPLING_RATIO_KEY])
        except (TypeError, ValueError):
            ratio = -1.0
        if 0.0 <= ratio <= 1.0:
            return ratio
    raise ValidationError("span carries no valid sampling rate", {"span_id": span.span_id})


def get_number_dropped_ancestors(span: SpanRecord) -> int:
    return read_number_dropped_ancestors(span.parent_trace_state)


def get_ancestor_span_id(span: SpanRecord) -> str:
    """Id of the nearest sampled ancestor, falling back to the parent id."""
    return read_sampled_ancestor_span_id(span.parent_trace_state) or span.parent_span_id


def get_parent_distance(span: SpanRecord) -> int:
    """Number of edges between the span and its linked ancestor."""
    return get_number_dropped_ancestors(span) + 1


def create_span_index(spans: Iterable[SpanRecord]) -> Dict[str, SpanRecord]:
    return {span.span_id: span for span in spans}


def _with_ancestor(span: SpanRecord, ancestor_span_id: str, number_dropped: int) -> SpanRecord:
    if span.is_root():
        return span
    trace_state = span.parent_trace_state
    if ancestor_span_id != span.parent_span_id:
        trace_state = put_value(trace_state, SAMPLED_ANCESTOR_SPAN_ID_KEY, ancestor_span_id)
    else:
        trace_state = remove_value(trace_state, SAMPLED_ANCESTOR_SPAN_ID_KEY)
    if number_dropped > 0:
        trace_state = put_value(trace_state, NUMBER_DROPPED_ANCESTORS_KEY, str(number_dropped))
    else:
        trace_state = remove_value(trace_state, NUMBER_DROPPED_ANCESTORS_KEY)
    return dataclasses.replace(span, parent_trace_state=trace_state)


def _update_ancestor_information(
    span: SpanRecord,
    index: Dict[str, SpanRecord],
    keep: Callable[[SpanRecord], bool],
) -> SpanRecord:
    ancestor_span_id = get_ancestor_span_id(span)
    number_dropped = get_number_dropped_ancestors(span)
    skipped = False
    steps = 0
    ancestor = index.get(ancestor_span_id)
    while ancestor is not None and not keep(ancestor):
        steps += 1
        if steps > len(index):
            raise ValidationError("cyclic ancestor chain", {"span_id": span.span_id})
        # the skipped ancestor and everything it already skipped
        number_dropped += get_number_dropped_ancestors(ancestor) + 1
        ancestor_span_id = get_ancestor_span_id(ancestor)
        ancestor = index.get(ancestor_span_id)
        skipped = True
    if not skipped:
        return span
    return _with_ancestor(span, ancestor_span_id, number_dropped)


def down_sample(spans: Sequence[SpanRecord], sample_rate_threshold: float) -> List[SpanRecord]:
    """
    Simulate sampling the given spans with a coarser rate.

    Only spans whose sampling rate is strictly greater than the threshold are
    kept. Their ancestor fields are rewritten to point at the nearest kept
    ancestor, with the number of ancestors dropped in between.

    Args:
        spans: Spans of a single trace
        sample_rate_threshold: Rate threshold

    Returns:
        New list of (possibly rewritten) span records
    """
    if not spans:
        return []

    check_single_sampling_scheme(spans)
    rates = {span.span_id: get_sampling_rate(span) for span in spans}

    def keep(span: SpanRecord) -> bool:
        return rates[span.span_id] > sample_rate_threshold

    index = create_span_index(spans)
    return [_update_ancestor_information(span, index, keep) for span in spans if keep(span)]
