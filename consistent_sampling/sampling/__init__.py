"""Consistent sampling decision engines and the bounded reservoir sampler."""

from consistent_sampling.sampling.composed import ComposedSampler
from consistent_sampling.sampling.consistent import ConsistentSampler
from consistent_sampling.sampling.fixed_rate import ConsistentFixedRateSampler
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.sampling.random_source import (
    RandomBitSource,
    get_default_random_bit_source,
)
from consistent_sampling.sampling.reservoir import ReservoirSampler, Sample
from consistent_sampling.sampling.skip_period import SkipPeriodSampler
from consistent_sampling.sampling.trace_id_ratio import AdvancedTraceIdRatioBasedSampler

__all__ = [
    "AdvancedTraceIdRatioBasedSampler",
    "ComposedSampler",
    "ConsistentFixedRateSampler",
    "ConsistentSampler",
    "RandomBitSource",
    "RecordingMode",
    "ReservoirSampler",
    "Sample",
    "SkipPeriodSampler",
    "get_default_random_bit_source",
]
