"""Base class for consistent samplers driven by a geometric random value."""

from __future__ import annotations

import abc
from typing import Callable, Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.sdk.trace.sampling import Decision, Sampler, SamplingResult
from opentelemetry.trace import Link, SpanKind
from opentelemetry.util.types import Attributes

from consistent_sampling import runtime_config
from consistent_sampling.context.context import get_parent_span_id_and_trace_state
from consistent_sampling.context.propagators import (
    SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY,
    SAMPLING_RATE_EXPONENT_KEY,
    clear_ancestor_fields,
    put_value,
    read_geometric_random_value,
    record_dropped_ancestor,
)
from consistent_sampling.errors import ValidationError
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.sampling.random_source import get_default_random_bit_source
from consistent_sampling.utils.helpers import MAX_RATE_EXPONENT, MIN_RATE_EXPONENT

# geometric random values are clipped at this value
MAX_GEOMETRIC_RANDOM_VALUE = 62

RandomBitGenerator = Callable[[], bool]


class ConsistentSampler(Sampler):
    """
    Sampler whose decisions are consistent across all spans of a trace.

    A geometric random value is drawn once at the trace root and inherited by
    every descendant through trace-state. A span is sampled iff that value is
    at least the rate exponent returned by ``get_sampling_rate_exponent``, so
    a span that is sampled implies that every span of the same trace that
    asked for an equal or lower exponent was sampled too.

    Subclasses only decide the rate exponent.
    """

    def __init__(
        self,
        random_bit_generator: Optional[RandomBitGenerator] = None,
        recording_mode: Optional[RecordingMode] = None,
    ) -> None:
        """
        Args:
            random_bit_generator: Thread-safe callable returning a fair random bit
            recording_mode: Ancestor bookkeeping for dropped spans; defaults to
                the runtime default recording mode
        """
        self._random_bit_generator = random_bit_generator or get_default_random_bit_source()
        self._recording_mode = recording_mode or runtime_config.get_default_recording_mode()

    @property
    def recording_mode(self) -> RecordingMode:
        return self._recording_mode

    def _generate_random_bit(self) -> bool:
        return self._random_bit_generator()

    def _generate_geometric_random_value(self) -> int:
        # geometric distribution with success probability 1/2 and minimum 1
        count = 1
        while count < MAX_GEOMETRIC_RANDOM_VALUE and self._generate_random_bit():
            count += 1
        return count

    def _get_geometric_random_value(self, parent_trace_state) -> int:
        value = read_geometric_random_value(parent_trace_state)
        if value is None:
            return self._generate_geometric_random_value()
        return value

    @abc.abstractmethod
    def get_sampling_rate_exponent(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
    ) -> int:
        """
        Return the rate exponent for the span about to be created.

        Must be in [1, 63]: 1 means rate 1, k means rate 1/2^(k-1), 63 means rate 0.
        """

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
        parent_span_id, parent_trace_state = get_parent_span_id_and_trace_state(parent_context)

        geometric_random_value = self._get_geometric_random_value(parent_trace_state)

        sampling_rate_exponent = self.get_sampling_rate_exponent(
            parent_context, trace_id, name, kind, attributes, links
        )
        if not MIN_RATE_EXPONENT <= sampling_rate_exponent <= MAX_RATE_EXPONENT:
            raise ValidationError(
                "Sampling rate exponent must be in the range [1, 63]",
                {"sampler": self.get_description(), "exponent": sampling_rate_exponent},
            )

        new_trace_state = put_value(
            parent_trace_state, SAMPLING_GEOMETRIC_RANDOM_VALUE_KEY, str(geometric_random_value)
        )
        new_trace_state = put_value(
            new_trace_state, SAMPLING_RATE_EXPONENT_KEY, str(sampling_rate_exponent)
        )

        # exponent 63 is rate 0, even for a foreign geometric random value of 63
        if (
            geometric_random_value >= sampling_rate_exponent
            and sampling_rate_exponent != MAX_RATE_EXPONENT
        ):
            return SamplingResult(
                Decision.RECORD_AND_SAMPLE,
                None,
                clear_ancestor_fields(new_trace_state),
            )

        new_trace_state = record_dropped_ancestor(
            new_trace_state, parent_trace_state, parent_span_id, self._recording_mode
        )
        return SamplingResult(Decision.DROP, None, new_trace_state)

    def __repr__(self) -> str:
        return self.get_description()
