"""Consistent sampler with a fixed sampling rate."""

from __future__ import annotations

from typing import Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.trace import Link, SpanKind
from opentelemetry.util.types import Attributes

from consistent_sampling.errors import InvariantViolationError, ValidationError
from consistent_sampling.sampling.consistent import ConsistentSampler, RandomBitGenerator
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.utils.helpers import (
    MAX_RATE_EXPONENT,
    MIN_RATE_EXPONENT,
    get_sampling_rate,
)


class ConsistentFixedRateSampler(ConsistentSampler):
    """
    Samples with an arbitrary fixed rate in [0, 1].

    Rates that are not a power of two are realized by randomly choosing, per
    span, between the two neighboring power-of-two exponents such that the
    expected sampling rate is exactly the requested one.
    """

    def __init__(
        self,
        sampling_rate: float,
        random_bit_generator: Optional[RandomBitGenerator] = None,
        recording_mode: Optional[RecordingMode] = None,
    ) -> None:
        super().__init__(random_bit_generator, recording_mode)
        if not 0.0 <= sampling_rate <= 1.0:
            raise ValidationError(
                "Sampling rate must be in the range [0, 1]", {"sampling_rate": sampling_rate}
            )
        self._sampling_rate = sampling_rate

        lower = MIN_RATE_EXPONENT
        while lower < MAX_RATE_EXPONENT and get_sampling_rate(lower + 1) >= sampling_rate:
            lower += 1
        upper = MAX_RATE_EXPONENT
        while upper > MIN_RATE_EXPONENT and get_sampling_rate(upper - 1) <= sampling_rate:
            upper -= 1

        # lower exponent has the higher rate
        if not (
            get_sampling_rate(lower) >= sampling_rate >= get_sampling_rate(upper)
            and lower <= upper <= lower + 1
        ):
            raise InvariantViolationError(
                "Could not bracket sampling rate",
                {"sampling_rate": sampling_rate, "lower": lower, "upper": upper},
            )

        self.lower_bound_exponent = lower
        self.upper_bound_exponent = upper

        if lower == upper:
            self.probability_to_use_lower_bound_exponent = 1.0
        else:
            upper_rate = get_sampling_rate(lower)
            lower_rate = get_sampling_rate(upper)
            self.probability_to_use_lower_bound_exponent = (
                (sampling_rate - lower_rate) / (upper_rate - lower_rate)
            )

    @property
    def sampling_rate(self) -> float:
        return self._sampling_rate

    def _do_bernoulli_trial(self, success_probability: float) -> bool:
        # consumes one random bit per binary digit of the probability
        while True:
            if success_probability == 0.0:
                return False
            if success_probability == 1.0:
                return True
            above_half = success_probability > 0.5
            if self._generate_random_bit():
                return above_half
            success_probability += success_probability
            if above_half:
                success_probability -= 1.0

    def get_sampling_rate_exponent(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
    ) -> int:
        if self._do_bernoulli_trial(self.probability_to_use_lower_bound_exponent):
            return self.lower_bound_exponent
        return self.upper_bound_exponent

    def get_description(self) -> str:
        return f"ConsistentFixedRateSampler{{samplingRate={self._sampling_rate}}}"
