"""Quantities that can be extracted from the spans of a single trace."""

from __future__ import annotations

from typing import Callable, Dict, Generic, Hashable, Mapping, Sequence, TypeVar

from consistent_sampling.errors import ValidationError
from consistent_sampling.estimation.downsampling import create_span_index, get_ancestor_span_id
from consistent_sampling.tracer.span_record import SpanRecord

K = TypeVar("K", bound=Hashable)

SpanPredicate = Callable[[SpanRecord], bool]
ScalarQuantityExtractor = Callable[[Sequence[SpanRecord]], float]


class VectorQuantityExtractor(Generic[K]):
    """
    Extracts one quantity per key from the spans of a single trace.

    Subclasses override ``extract``; the returned mapping must contain the
    same keys for any span collection.
    """

    def extract(self, spans: Sequence[SpanRecord]) -> Dict[K, float]:
        raise NotImplementedError

    def __call__(self, spans: Sequence[SpanRecord]) -> Dict[K, float]:
        return self.extract(spans)

    @staticmethod
    def of(scalar_extractors: Mapping[K, ScalarQuantityExtractor]) -> "VectorQuantityExtractor[K]":
        """Compose a vector extractor from named scalar extractors."""
        return _ComposedVectorQuantityExtractor(scalar_extractors)


class _ComposedVectorQuantityExtractor(VectorQuantityExtractor[K]):
    def __init__(self, scalar_extractors: Mapping[K, ScalarQuantityExtractor]) -> None:
        self._scalar_extractors = dict(scalar_extractors)

    def extract(self, spans: Sequence[SpanRecord]) -> Dict[K, float]:
        return {
            key: float(extractor(spans)) for key, extractor in self._scalar_extractors.items()
        }


def count_matching_spans(span_predicate: SpanPredicate) -> ScalarQuantityExtractor:
    def extract(spans: Sequence[SpanRecord]) -> float:
        return float(sum(1 for span in spans if span_predicate(span)))

    return extract


def count_matching_traces(
    trace_predicate: Callable[[Sequence[SpanRecord]], bool],
) -> ScalarQuantityExtractor:
    def extract(spans: Sequence[SpanRecord]) -> float:
        return 1.0 if trace_predicate(spans) else 0.0

    return extract


class ParentChildRelationshipCounter:
    """
    Counts spans matching ``child_matcher`` that have an ancestor matching
    ``parent_matcher``.

    Ancestors are found by following the ancestor links of the spans, so an
    ancestor is also found across dropped spans.
    """

    def __init__(self, parent_matcher: SpanPredicate, child_matcher: SpanPredicate) -> None:
        if parent_matcher is None or child_matcher is None:
            raise ValidationError("parent and child matchers are required")
        self._parent_matcher = parent_matcher
        self._child_matcher = child_matcher

    def __call__(self, spans: Sequence[SpanRecord]) -> float:
        return self.extract(spans)

    def extract(self, spans: Sequence[SpanRecord]) -> float:
        index = create_span_index(spans)
        result = 0
        for span in spans:
            if not self._child_matcher(span):
                continue
            ancestor = index.get(get_ancestor_span_id(span))
            steps = 0
            while ancestor is not None and steps < len(index):
                if self._parent_matcher(ancestor):
                    result += 1
                    break
                ancestor = index.get(get_ancestor_span_id(ancestor))
                steps += 1
        return float(result)
