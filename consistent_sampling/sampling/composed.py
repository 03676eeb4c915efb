"""Logical OR combination of consistent samplers."""

from __future__ import annotations

from typing import Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.trace import Link, SpanKind
from opentelemetry.util.types import Attributes

from consistent_sampling.errors import ValidationError
from consistent_sampling.sampling.consistent import ConsistentSampler, RandomBitGenerator
from consistent_sampling.sampling.modes import RecordingMode


class ComposedSampler(ConsistentSampler):
    """
    Samples if at least one of its component samplers would sample.

    The smallest exponent is the highest sampling rate; since all components
    compare against the same geometric random value, this is exactly the
    logical OR of their decisions.
    """

    def __init__(
        self,
        sampler1: ConsistentSampler,
        sampler2: ConsistentSampler,
        random_bit_generator: Optional[RandomBitGenerator] = None,
        recording_mode: Optional[RecordingMode] = None,
    ) -> None:
        super().__init__(random_bit_generator, recording_mode)
        if sampler1 is None or sampler2 is None:
            raise ValidationError("ComposedSampler requires two component samplers")
        self._sampler1 = sampler1
        self._sampler2 = sampler2

    def get_sampling_rate_exponent(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
    ) -> int:
        return min(
            self._sampler1.get_sampling_rate_exponent(
                parent_context, trace_id, name, kind, attributes, links
            ),
            self._sampler2.get_sampling_rate_exponent(
                parent_context, trace_id, name, kind, attributes, links
            ),
        )

    def get_description(self) -> str:
        return (
            f"ComposedSampler{{sampler1={self._sampler1.get_description()}, "
            f"sampler2={self._sampler2.get_description()}}}"
        )
