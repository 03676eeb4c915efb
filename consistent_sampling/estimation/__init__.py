"""Down-sampling, estimation and tree reconstruction over sampled spans."""

from consistent_sampling.estimation.downsampling import (
    SamplingScheme,
    check_single_sampling_scheme,
    create_span_index,
    down_sample,
    get_ancestor_span_id,
    get_number_dropped_ancestors,
    get_parent_distance,
    get_sampling_rate,
    get_sampling_scheme,
)
from consistent_sampling.estimation.estimator import estimate, estimate_vector
from consistent_sampling.estimation.extractors import (
    ParentChildRelationshipCounter,
    ScalarQuantityExtractor,
    VectorQuantityExtractor,
    count_matching_spans,
    count_matching_traces,
)
from consistent_sampling.estimation.trees import (
    NO_PARENT,
    SpanTree,
    create_balanced_binary_tree,
    create_balanced_tree,
    create_chain,
    extract_trees,
    generate_random_tree,
    get_level,
    iterate_depth_first_order,
    print_structure,
)

__all__ = [
    "NO_PARENT",
    "ParentChildRelationshipCounter",
    "SamplingScheme",
    "ScalarQuantityExtractor",
    "SpanTree",
    "VectorQuantityExtractor",
    "check_single_sampling_scheme",
    "count_matching_spans",
    "count_matching_traces",
    "create_balanced_binary_tree",
    "create_balanced_tree",
    "create_chain",
    "create_span_index",
    "down_sample",
    "estimate",
    "estimate_vector",
    "extract_trees",
    "generate_random_tree",
    "get_ancestor_span_id",
    "get_level",
    "get_number_dropped_ancestors",
    "get_parent_distance",
    "get_sampling_rate",
    "get_sampling_scheme",
    "iterate_depth_first_order",
    "print_structure",
]
