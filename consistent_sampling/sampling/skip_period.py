"""Consistent sampler that keeps at most one span per time period."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional, Sequence

from opentelemetry.context import Context
from opentelemetry.trace import Link, SpanKind
from opentelemetry.util.types import Attributes

from consistent_sampling.errors import ValidationError
from consistent_sampling.sampling.consistent import ConsistentSampler, RandomBitGenerator
from consistent_sampling.sampling.modes import RecordingMode
from consistent_sampling.utils.helpers import MAX_RATE_EXPONENT, MIN_RATE_EXPONENT


def _current_time_millis() -> int:
    return time.time_ns() // 1_000_000


class _AtomicLong:
    """Integer cell with compare-and-set semantics."""

    def __init__(self, value: int) -> None:
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> int:
        return self._value

    def compare_and_set(self, expected: int, new_value: int) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new_value
            return True


class SkipPeriodSampler(ConsistentSampler):
    """
    Does not sample for a fixed period after the last sampled span.

    Among concurrent callers within the same period exactly one wins and gets
    rate 1, everybody else gets rate 0. No inherited randomness is needed.
    """

    def __init__(
        self,
        period_millis: int,
        clock: Optional[Callable[[], int]] = None,
        random_bit_generator: Optional[RandomBitGenerator] = None,
        recording_mode: Optional[RecordingMode] = None,
    ) -> None:
        """
        Args:
            period_millis: Length of the period in milliseconds
            clock: Callable returning the current time in milliseconds
        """
        super().__init__(random_bit_generator, recording_mode)
        if period_millis <= 0:
            raise ValidationError("period_millis must be positive", {"period_millis": period_millis})
        self._period_millis = period_millis
        self._clock = clock or _current_time_millis
        self._next_sampling_time_millis = _AtomicLong(self._clock())

    @property
    def period_millis(self) -> int:
        return self._period_millis

    def get_sampling_rate_exponent(
        self,
        parent_context: Optional[Context],
        trace_id: int,
        name: str,
        kind: Optional[SpanKind] = None,
        attributes: Attributes = None,
        links: Optional[Sequence[Link]] = None,
    ) -> int:
        now = self._clock()
        next_sampling_time = self._next_sampling_time_millis.get()
        while now >= next_sampling_time:
            if self._next_sampling_time_millis.compare_and_set(
                next_sampling_time, now + self._period_millis
            ):
                return MIN_RATE_EXPONENT
            next_sampling_time = self._next_sampling_time_millis.get()
        return MAX_RATE_EXPONENT

    def get_description(self) -> str:
        return f"SkipPeriodSampler{{periodMillis={self._period_millis}}}"
