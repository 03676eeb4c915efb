"""Helper functions for OpenTelemetry id handling and rate arithmetic."""

from __future__ import annotations

from consistent_sampling.errors import ValidationError

INVALID_SPAN_ID = "0000000000000000"

MIN_RATE_EXPONENT = 1
MAX_RATE_EXPONENT = 63

_LOW_64_BITS = (1 << 64) - 1
_SIGN_BIT = 1 << 63


def format_trace_id(trace_id: int) -> str:
    """
    Format OTel trace_id (int) to hex string.

    Args:
        trace_id: OTel trace_id as 128-bit int

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def format_span_id(span_id: int) -> str:
    """
    Format OTel span_id (int) to hex string.

    Args:
        span_id: OTel span_id as 64-bit int

    Returns:
        16-character hex string
    """
    return format(span_id, '016x')


def get_trace_id_random_part(trace_id: int) -> int:
    """
    Return the low 64 bits of a trace id as a signed 64-bit integer.

    Args:
        trace_id: OTel trace_id as 128-bit int

    Returns:
        Integer in [-2**63, 2**63 - 1]
    """
    low = trace_id & _LOW_64_BITS
    if low & _SIGN_BIT:
        low -= 1 << 64
    return low


def get_sampling_rate(sampling_rate_exponent: int) -> float:
    """
    Convert a rate exponent into the sampling probability it stands for.

    1 means 1, 2 means 1/2, 3 means 1/4, ..., 62 means 1/2^61, 63 means 0.

    Raises:
        ValidationError: if the exponent is outside [1, 63]
    """
    if not MIN_RATE_EXPONENT <= sampling_rate_exponent <= MAX_RATE_EXPONENT:
        raise ValidationError(
            "Sampling rate exponent must be in the range [1, 63]",
            {"sampling_rate_exponent": sampling_rate_exponent},
        )
    if sampling_rate_exponent == MAX_RATE_EXPONENT:
        return 0.0
    return 1.0 / (1 << (sampling_rate_exponent - 1))
