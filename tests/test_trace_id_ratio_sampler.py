"""Tests for the trace-id ratio based sampler."""

import threading

import pytest
from opentelemetry.context import Context
from opentelemetry.sdk.trace.sampling import Decision
from opentelemetry.trace import (
    NonRecordingSpan,
    SpanContext,
    TraceFlags,
    set_span_in_context,
)

from consistent_sampling.context import (
    NUMBER_DROPPED_ANCESTORS_KEY,
    SAMPLED_ANCESTOR_SPAN_ID_KEY,
    SAMPLING_MODE_KEY,
    SAMPLING_RATIO_KEY,
    to_trace_state,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.sampling import AdvancedTraceIdRatioBasedSampler, RecordingMode
from consistent_sampling.sampling.trace_id_ratio import (
    MAX_LONG,
    MIN_LONG,
    calculate_id_upper_bound,
)

PARENT_SPAN_ID = 0x00F067AA0BA902B7
PARENT_SPAN_ID_HEX = "00f067aa0ba902b7"


def trace_id_with_random_part(value):
    return (0x1234 << 64) | (value & ((1 << 64) - 1))


def parent_context(trace_id, state):
    span_context = SpanContext(
        trace_id=trace_id,
        span_id=PARENT_SPAN_ID,
        is_remote=False,
        trace_flags=TraceFlags(TraceFlags.DEFAULT),
        trace_state=to_trace_state(state),
    )
    return set_span_in_context(NonRecordingSpan(span_context))


def test_upper_bound_limits():
    assert calculate_id_upper_bound(0.0) == MIN_LONG
    assert calculate_id_upper_bound(1.0) == MAX_LONG
    assert calculate_id_upper_bound(0.5) == int(0.5 * MAX_LONG)


@pytest.mark.parametrize("ratio", [-0.01, 1.01])
def test_invalid_ratio(ratio):
    with pytest.raises(ValidationError):
        AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, ratio)


def test_ratio_zero_never_samples():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 0.0)
    for value in (0, 1, -1, MIN_LONG, MAX_LONG):
        result = sampler.should_sample(Context(), trace_id_with_random_part(value), "root")
        assert result.decision == Decision.DROP


def test_ratio_one_always_samples():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 1.0)
    for value in (0, 1, -1, 1 << 62, -(1 << 62), MIN_LONG, MAX_LONG, MAX_LONG - 1):
        result = sampler.should_sample(Context(), trace_id_with_random_part(value), "root")
        assert result.decision == Decision.RECORD_AND_SAMPLE


def test_decision_uses_absolute_random_part():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 0.5)
    bound = calculate_id_upper_bound(0.5)
    for value, sampled in ((bound - 1, True), (-(bound - 1), True), (bound, False), (-bound, False)):
        result = sampler.should_sample(Context(), trace_id_with_random_part(value), "root")
        assert result.decision.is_sampled() == sampled


def test_sampled_span_carries_ratio_attributes():
    sampler = AdvancedTraceIdRatioBasedSampler.create(
        RecordingMode.ANCESTOR_LINK_AND_DISTANCE, 0.25
    )
    result = sampler.should_sample(Context(), trace_id_with_random_part(0), "root")
    assert result.decision == Decision.RECORD_AND_SAMPLE
    assert result.attributes[SAMPLING_RATIO_KEY] == 0.25
    assert result.attributes[SAMPLING_MODE_KEY] == "ANCESTOR_LINK_AND_DISTANCE"


def test_sampled_span_clears_ancestor_fields():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.ANCESTOR_LINK, 1.0)
    trace_id = trace_id_with_random_part(3)
    context = parent_context(
        trace_id,
        {NUMBER_DROPPED_ANCESTORS_KEY: "2", SAMPLED_ANCESTOR_SPAN_ID_KEY: "53995c3f42cd8ad8"},
    )
    result = sampler.should_sample(context, trace_id, "child")
    assert NUMBER_DROPPED_ANCESTORS_KEY not in result.trace_state
    assert SAMPLED_ANCESTOR_SPAN_ID_KEY not in result.trace_state


@pytest.mark.parametrize(
    "mode, expected_count, expected_link",
    [
        (RecordingMode.ANCESTOR_LINK_AND_DISTANCE, "1", PARENT_SPAN_ID_HEX),
        (RecordingMode.ANCESTOR_LINK, None, PARENT_SPAN_ID_HEX),
        (RecordingMode.PARENT_LINK, None, None),
    ],
)
def test_dropped_span_records_ancestor(mode, expected_count, expected_link):
    sampler = AdvancedTraceIdRatioBasedSampler.create(mode, 0.0)
    trace_id = trace_id_with_random_part(3)
    result = sampler.should_sample(parent_context(trace_id, {}), trace_id, "child")
    assert result.decision == Decision.DROP
    assert dict(result.attributes) == {}
    assert result.trace_state.get(NUMBER_DROPPED_ANCESTORS_KEY) == expected_count
    assert result.trace_state.get(SAMPLED_ANCESTOR_SPAN_ID_KEY) == expected_link


def test_set_ratio_replaces_snapshot():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 1.0)
    trace_id = trace_id_with_random_part(1 << 62)
    assert sampler.should_sample(Context(), trace_id, "root").decision.is_sampled()

    sampler.set_ratio(0.25)
    assert sampler.ratio == 0.25
    result = sampler.should_sample(Context(), trace_id, "root")
    assert result.decision == Decision.DROP

    with pytest.raises(ValidationError):
        sampler.set_ratio(2.0)
    assert sampler.ratio == 0.25


def test_concurrent_set_ratio_never_mixes_parameters():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 1.0)
    trace_id = trace_id_with_random_part(0)
    errors = []
    stop = threading.Event()

    def decide():
        while not stop.is_set():
            result = sampler.should_sample(Context(), trace_id, "root")
            # random part 0 is below every non-zero bound
            ratio = result.attributes.get(SAMPLING_RATIO_KEY)
            if ratio not in (1.0, 0.5):
                errors.append(ratio)

    threads = [threading.Thread(target=decide) for _ in range(4)]
    for thread in threads:
        thread.start()
    for i in range(2000):
        sampler.set_ratio(0.5 if i % 2 else 1.0)
    stop.set()
    for thread in threads:
        thread.join()
    assert errors == []


def test_description():
    sampler = AdvancedTraceIdRatioBasedSampler.create(RecordingMode.PARENT_LINK, 0.5)
    assert sampler.get_description() == (
        "AdvancedTraceIdRatioBasedSampler{ratio=0.5, mode=PARENT_LINK}"
    )
