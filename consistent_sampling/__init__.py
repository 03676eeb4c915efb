"""Consistent sampling of traces and estimation from sampled spans."""

from consistent_sampling.config import (
    ConsistentSamplingConfig,
    create_reservoir,
    create_sampler,
    load_config,
    validate_config,
)
from consistent_sampling.errors import (
    ConfigError,
    ConsistentSamplingError,
    InvariantViolationError,
    ValidationError,
)
from consistent_sampling.estimation import (
    ParentChildRelationshipCounter,
    VectorQuantityExtractor,
    count_matching_spans,
    count_matching_traces,
    down_sample,
    estimate,
    extract_trees,
)
from consistent_sampling.exporter import CollectingSpanExporter
from consistent_sampling.sampling import (
    AdvancedTraceIdRatioBasedSampler,
    ComposedSampler,
    ConsistentFixedRateSampler,
    ConsistentSampler,
    RandomBitSource,
    RecordingMode,
    ReservoirSampler,
    SkipPeriodSampler,
)
from consistent_sampling.tracer import DeterministicIdGenerator, SpanRecord, create_tracer_provider

__version__ = "0.1.0"

__all__ = [
    "AdvancedTraceIdRatioBasedSampler",
    "CollectingSpanExporter",
    "ComposedSampler",
    "ConfigError",
    "ConsistentFixedRateSampler",
    "ConsistentSampler",
    "ConsistentSamplingConfig",
    "ConsistentSamplingError",
    "DeterministicIdGenerator",
    "InvariantViolationError",
    "ParentChildRelationshipCounter",
    "RandomBitSource",
    "RecordingMode",
    "ReservoirSampler",
    "SkipPeriodSampler",
    "SpanRecord",
    "ValidationError",
    "VectorQuantityExtractor",
    "count_matching_spans",
    "count_matching_traces",
    "create_reservoir",
    "create_sampler",
    "create_tracer_provider",
    "down_sample",
    "estimate",
    "extract_trees",
    "load_config",
    "validate_config",
]
