"""Trace-state protocol for consistent sampling.

Every consistent sampler publishes its state as OpenTelemetry ``TraceState``
entries that children inherit. The keys below are a wire-level contract and
must not change. All values are decimal strings.

Reading is lenient: a value that is missing, unparsable or out of range is
treated as absent, because trace-state may come from foreign propagators.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional

from opentelemetry.trace import TraceState

from consistent_sampling.utils.helpers import MAX_RATE_EXPONENT, MIN_RATE_EXPONENT

if TYPE_CHECKING:
    from consistent_sampling.sampling.modes import RecordingMode

logger = logging.getLogger(__name__)

SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY = "sampling-geometric-random-value"
SAMPLING_RATE_EXPONENT_KEY = "sampling-rate-exponent"
NUMBER_DROPPED_ANCESTORS_KEY = "number-dropped-ancestors"
SAMPLED_ANCESTOR_SPAN_ID_KEY = "sampled-ancestor-span-id"
SAMPLING_RATIO_KEY = "sampling-ratio"
SAMPLING_MODE_KEY = "sampling-mode"

SAMPLING_UNKNOWN_RATE_EXPONENT = 0


def to_trace_state(state: Optional[Mapping[str, str]] = None) -> TraceState:
    """Build an OpenTelemetry TraceState from a mapping (insertion order kept)."""
    if not state:
        return TraceState()
    return TraceState([(str(k), str(v)) for k, v in state.items()])


def put_value(trace_state: TraceState, key: str, value: str) -> TraceState:
    """Return a copy of ``trace_state`` with ``key`` set to ``value``."""
    if key in trace_state:
        return trace_state.update(key, value)
    return trace_state.add(key, value)


def remove_value(trace_state: TraceState, key: str) -> TraceState:
    """Return a copy of ``trace_state`` without ``key``."""
    if key in trace_state:
        return trace_state.delete(key)
    return trace_state


def _parse_int(trace_state: Optional[Mapping[str, str]], key: str) -> Optional[int]:
    if not trace_state:
        return None
    raw = trace_state.get(key)
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring malformed trace-state value {key}={raw!r}")
        return None


def read_geometric_random_value(trace_state: Optional[Mapping[str, str]]) -> Optional[int]:
    """Return the inherited geometric random value, or None if absent or invalid."""
    value = _parse_int(trace_state, SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY)
    if value is None:
        return None
    if MIN_RATE_EXPONENT <= value <= MAX_RATE_EXPONENT:
        return value
    logger.debug(f"Ignoring out-of-range geometric random value {value}")
    return None


def read_rate_exponent(trace_state: Optional[Mapping[str, str]]) -> int:
    """Return the recorded rate exponent, or 0 (unknown) if absent or invalid."""
    value = _parse_int(trace_state, SAMPLING_RATE_EXPONENT_KEY)
    if value is None:
        return SAMPLING_UNKNOWN_RATE_EXPONENT
    if MIN_RATE_EXPONENT <= value <= MAX_RATE_EXPONENT:
        return value
    logger.debug(f"Ignoring out-of-range sampling rate exponent {value}")
    return SAMPLING_UNKNOWN_RATE_EXPONENT


def read_number_dropped_ancestors(trace_state: Optional[Mapping[str, str]]) -> int:
    """Return the number of consecutive dropped ancestors, 0 if absent or invalid."""
    value = _parse_int(trace_state, NUMBER_DROPPED_ANCESTORS_KEY)
    if value is None or value < 0:
        return 0
    return value


def read_sampled_ancestor_span_id(trace_state: Optional[Mapping[str, str]]) -> Optional[str]:
    if not trace_state:
        return None
    return trace_state.get(SAMPLED_ANCESTOR_SPAN_ID_KEY) or None


def clear_ancestor_fields(trace_state: TraceState) -> TraceState:
    """State published by a kept span: its children start counting from zero."""
    trace_state = remove_value(trace_state, NUMBER_DROPPED_ANCESTORS_KEY)
    return remove_value(trace_state, SAMPLED_ANCESTOR_SPAN_ID_KEY)


def record_dropped_ancestor(
    trace_state: TraceState,
    parent_trace_state: Optional[Mapping[str, str]],
    parent_span_id: str,
    recording_mode: "RecordingMode",
) -> TraceState:
    """
    Update the ancestor fields for a span that is being dropped.

    Args:
        trace_state: State to update (usually derived from the parent's state)
        parent_trace_state: State inherited from the parent span
        parent_span_id: Hex id of the parent span
        recording_mode: Which ancestor fields to maintain

    Returns:
        The updated TraceState
    """
    if recording_mode.collect_ancestor_distance:
        number_dropped = read_number_dropped_ancestors(parent_trace_state)
        trace_state = put_value(
            trace_state, NUMBER_DROPPED_ANCESTORS_KEY, str(number_dropped + 1)
        )
    else:
        trace_state = remove_value(trace_state, NUMBER_DROPPED_ANCESTORS_KEY)

    if recording_mode.collect_ancestor_link:
        ancestor_span_id = read_sampled_ancestor_span_id(parent_trace_state) or parent_span_id
        trace_state = put_value(trace_state, SAMPLED_ANCESTOR_SPAN_ID_KEY, ancestor_span_id)
    else:
        trace_state = remove_value(trace_state, SAMPLED_ANCESTOR_SPAN_ID_KEY)

    return trace_state
