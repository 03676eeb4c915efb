"""Utility functions for consistent sampling."""

from consistent_sampling.utils.helpers import (
    INVALID_SPAN_ID,
    MAX_RATE_EXPONENT,
    MIN_RATE_EXPONENT,
    format_trace_id,
    format_span_id,
    get_trace_id_random_part,
    get_sampling_rate,
)

__all__ = [
    "INVALID_SPAN_ID",
    "MAX_RATE_EXPONENT",
    "MIN_RATE_EXPONENT",
    "format_trace_id",
    "format_span_id",
    "get_trace_id_random_part",
    "get_sampling_rate",
]
