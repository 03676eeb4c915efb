"""Trace-id ratio based sampler with ancestor bookkeeping and dynamic ratio."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.sdk.trace.sampling import Decision, Sampler, SamplingResult
from opentelemetry.trace import Link, SpanKind
from opentelemetry.util.types import Attributes

from consistent_sampling.context.context import get_parent_span_id_and_trace_state
from consistent_sampling.context.propagators import (
    SAMPLING_MODE_KEY,
    SAMPLING_RATIO_KEY,
    clear_ancestor_fields,
    record_dropped_ancestor,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.utils.helpers import get_trace_id_random_part

logger = logging.getLogger(__name__)

MIN_LONG = -(1 << 63)
MAX_LONG = (1 << 63) - 1


def calculate_id_upper_bound(ratio: float) -> int:
    # The limits are special-cased to avoid precision issues at the
    # float/int boundary. Ratio 0 uses MIN_LONG, which no absolute value is below.
    if ratio == 0.0:
        return MIN_LONG
    if ratio == 1.0:
        return MAX_LONG
    return int(ratio * MAX_LONG)


@dataclass(frozen=True)
class _RatioSpecificData:
    ratio: float
    id_upper_bound: int
    attributes: Mapping[str, object]

    @classmethod
    def create(cls, ratio: float, mode: RecordingMode) -> "_RatioSpecificData":
        if not 0.0 <= ratio <= 1.0:
            raise ValidationError("ratio must be in range [0.0, 1.0]", {"ratio": ratio})
        return cls(
            ratio=ratio,
            id_upper_bound=calculate_id_upper_bound(ratio),
            attributes=MappingProxyType(
                {SAMPLING_RATIO_KEY: float(ratio), SAMPLING_MODE_KEY: mode.name}
            ),
        )


class AdvancedTraceIdRatioBasedSampler(Sampler):
    """
    Samples a fixed ratio of traces, derived from the trace id.

    Unlike the geometric samplers, the random value comes from the trace id
    itself. Sampled spans carry the ratio as ``sampling-ratio`` and
    ``sampling-mode`` attributes; dropped spans maintain the ancestor fields
    according to the mode. The ratio can be changed at runtime.
    """

    def __init__(self, mode: RecordingMode, ratio: float = 1.0) -> None:
        self._mode = mode
        self._ratio_specific_data = _RatioSpecificData.create(ratio, mode)

    @classmethod
    def create(cls, mode: RecordingMode, ratio: float = 1.0) -> "AdvancedTraceIdRatioBasedSampler":
        return cls(mode, ratio)

    @property
    def mode(self) -> RecordingMode:
        return self._mode

    @property
    def ratio(self) -> float:
        return self._ratio_specific_data.ratio

    def set_ratio(self, ratio: float) -> None:
        """Atomically replace the sampling ratio."""
        self._ratio_specific_data = _RatioSpecificData.create(ratio, self._mode)
        logger.info(f"Sampling ratio of {self.get_description()} updated")

    def should_sample(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
        trace_state=None,
    ) -> SamplingResult:
        # read the snapshot once so a concurrent set_ratio cannot mix parameters
        ratio_data = self._ratio_specific_data

        parent_span_id, parent_trace_state = get_parent_span_id_and_trace_state(parent_context)

        # ratio 1 keeps every id, abs(MIN_LONG) is 2**63 and lies above any bound
        if ratio_data.ratio == 1.0 or (
            abs(get_trace_id_random_part(trace_id)) < ratio_data.id_upper_bound
        ):
            return SamplingResult(
                Decision.RECORD_AND_SAMPLE,
                ratio_data.attributes,
                clear_ancestor_fields(parent_trace_state),
            )

        return SamplingResult(
            Decision.DROP,
            None,
            record_dropped_ancestor(
                parent_trace_state, parent_trace_state, parent_span_id, self._mode
            ),
        )

    def get_description(self) -> str:
        return (
            f"AdvancedTraceIdRatioBasedSampler{{ratio={self._ratio_specific_data.ratio}, "
            f"mode={self._mode.name}}}"
        )

    def __repr__(self) -> str:
        return self.get_description()
