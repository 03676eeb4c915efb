"""Trace-state protocol used by the consistent samplers."""

from consistent_sampling.context.context import get_parent_span_id_and_trace_state
from consistent_sampling.context.propagators import (
    NUMBER_DROPPED_ANCESTORS_KEY,
    SAMPLED_ANCESTOR_SPAN_ID_KEY,
    SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY,
    SAMPLING_MODE_KEY,
    SAMPLING_RATE_EXPONENT_KEY,
    SAMPLING_RATIO_KEY,
    SAMPLING_UNKNOWN_RATE_EXPONENT,
    clear_ancestor_fields,
    put_value,
    read_geometric_random_value,
    read_number_dropped_ancestors,
    read_rate_exponent,
    read_sampled_ancestor_span_id,
    record_dropped_ancestor,
    remove_value,
    to_trace_state,
)

__all__ = [
    "get_parent_span_id_and_trace_state",
    "NUMBER_DROPPED_ANCESTORS_KEY",
    "SAMPLED_ANCESTOR_SPAN_ID_KEY",
    "SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY",
    "SAMPLING_MODE_KEY",
    "SAMPLING_RATE_EXPONENT_KEY",
    "SAMPLING_RATIO_KEY",
    "SAMPLING_UNKNOWN_RATE_EXPONENT",
    "clear_ancestor_fields",
    "put_value",
    "read_geometric_random_value",
    "read_number_dropped_ancestors",
    "read_rate_exponent",
    "read_sampled_ancestor_span_id",
    "record_dropped_ancestor",
    "remove_value",
    "to_trace_state",
]
