"""Unbiased estimation of population quantities from sampled spans.

The estimator inverts down-sampling. Starting from the sampled spans of one
trace, it repeatedly removes the spans with the lowest sampling rate ``v``.
Whatever the quantity loses in that step is only observable with probability
``v``, so the loss is weighted with ``1 / v``. Summing these weighted
differences over all rate bands (a telescoping Horvitz-Thompson estimator)
gives, in expectation, the value of the quantity on the unsampled trace.
"""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Sequence, TypeVar, overload

from consistent_sampling.errors import ValidationError
from consistent_sampling.estimation.downsampling import down_sample, get_sampling_rate
from consistent_sampling.estimation.extractors import (
    ScalarQuantityExtractor,
    VectorQuantityExtractor,
)
from consistent_sampling.tracer.span_record import SpanRecord

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

_SCALAR_KEY = "value"


def _check_same_trace(spans: Sequence[SpanRecord]) -> None:
    trace_ids = {span.trace_id for span in spans}
    if len(trace_ids) > 1:
        raise ValidationError(
            "all spans must belong to the same trace", {"trace_ids": len(trace_ids)}
        )


def _min_sampling_rate(spans: Sequence[SpanRecord]) -> float:
    return min(get_sampling_rate(span) for span in spans)


def estimate_vector(
    extractor: VectorQuantityExtractor[K], spans: Sequence[SpanRecord]
) -> Dict[K, float]:
    """
    Estimate a vector quantity of the unsampled trace.

    Args:
        extractor: Computes one quantity per key from a span collection
        spans: Sampled spans of a single trace

    Returns:
        Mapping from key to estimated quantity

    Raises:
        ValidationError: if the spans belong to different traces or mix
            sampling schemes
    """
    spans = list(spans)
    if not spans:
        return {key: 0.0 for key in extractor(spans)}

    _check_same_trace(spans)

    result: Dict[K, float] = {}
    q_prev = {key: float(value) for key, value in extractor(spans).items()}
    while True:
        v = _min_sampling_rate(spans)
        if v <= 0.0:
            raise ValidationError("sampled span with sampling rate 0")
        spans = down_sample(spans, v)

        if not spans:
            for key, value in q_prev.items():
                result[key] = result.get(key, 0.0) + value / v
            return result

        q_next = {key: float(value) for key, value in extractor(spans).items()}
        for key in q_prev.keys() | q_next.keys():
            difference = q_prev.get(key, 0.0) - q_next.get(key, 0.0)
            result[key] = result.get(key, 0.0) + difference / v
        q_prev = q_next


@overload
def estimate(extractor: VectorQuantityExtractor[K], spans: Sequence[SpanRecord]) -> Dict[K, float]:
    ...


@overload
def estimate(extractor: ScalarQuantityExtractor, spans: Sequence[SpanRecord]) -> float:
    ...


def estimate(extractor, spans):
    """
    Estimate a quantity of the unsampled trace from its sampled spans.

    A ``VectorQuantityExtractor`` yields a mapping of estimates, any other
    callable is treated as a scalar extractor and yields a float.
    """
    if isinstance(extractor, VectorQuantityExtractor):
        return estimate_vector(extractor, spans)
    return estimate_vector(VectorQuantityExtractor.of({_SCALAR_KEY: extractor}), spans).get(
        _SCALAR_KEY, 0.0
    )

