"""Bounded reservoir sampling for items with individual eligible sample rates."""

from __future__ import annotations

import logging
import random as _random
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from consistent_sampling import runtime_config
from consistent_sampling.errors import InvariantViolationError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Sample(Generic[T]):
    """A retained item and the index of the sample rate it was retained with."""

    item: T
    sample_rate_index: int


class ReservoirSampler(Generic[T]):
    """
    Fixed-capacity sample of a stream whose items are eligible up to different rates.

    Sample rates form a descending sequence indexed from 0 (rate 1). For every
    item, ``greatest_sample_rate_index`` gives the largest index whose rate is
    still greater than the item's random value, i.e. the coarsest rate at which
    the item would still be sampled.

    The buffer is split in two regions. Slots below the separator are sampled
    with the current rate index, slots at or above it with the previous (one
    step finer) index. While the buffer is not yet full the current index is 0
    and the separator is the fill level. Once every slot qualifies for the
    current index, the whole buffer moves on to the next index.

    Not safe for concurrent ``add`` calls.
    """

    def __init__(
        self,
        capacity: int,
        greatest_sample_rate_index: Callable[[T], int],
        sample_rate_index_to_sample_rate: Callable[[int], float],
        random: Optional[_random.Random] = None,
    ) -> None:
        """
        Args:
            capacity: Maximum number of retained items
            greatest_sample_rate_index: Coarsest rate index an item is eligible for
            sample_rate_index_to_sample_rate: Maps a rate index to its rate, must be 1 at index 0
            random: Random generator used for the swaps
        """
        if capacity <= 0:
            raise ValidationError("capacity must be positive", {"capacity": capacity})
        if greatest_sample_rate_index is None or sample_rate_index_to_sample_rate is None:
            raise ValidationError("rate index functions are required")
        if sample_rate_index_to_sample_rate(0) != 1.0:
            raise ValidationError("sample rate at index 0 must be exactly 1")

        self._buffer: List[Optional[T]] = [None] * capacity
        self._greatest_sample_rate_index = greatest_sample_rate_index
        self._sample_rate_index_to_sample_rate = sample_rate_index_to_sample_rate
        self._random = random or _random.Random()
        self._counter = 0
        self._buffer_separator_index = 0
        self._buffer_sample_rate_index = 0
        self.check_consistency()

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    @property
    def sample_rate_index(self) -> int:
        return self._buffer_sample_rate_index

    def _advance_sample_rate_index(self) -> None:
        self._buffer_separator_index = 0
        self._buffer_sample_rate_index += 1
        self._counter = len(self._buffer)
        logger.debug(f"Reservoir coarsened to sample rate index {self._buffer_sample_rate_index}")

    def add(self, item: T) -> None:
        if item is None:
            raise ValidationError("reservoir items must not be None")
        buffer = self._buffer
        capacity = len(buffer)

        if self._buffer_sample_rate_index == 0:
            # buffer is not yet full
            buffer[self._buffer_separator_index] = item
            self._buffer_separator_index += 1
            if self._buffer_separator_index == capacity:
                self._advance_sample_rate_index()
        else:
            while self._greatest_sample_rate_index(item) >= self._buffer_sample_rate_index - 1:
                self._counter += 1
                idx_to_drop = self._random.randrange(
                    self._buffer_separator_index, self._buffer_separator_index + self._counter
                )
                if idx_to_drop < capacity:
                    buffer[idx_to_drop], item = item, buffer[idx_to_drop]

                # promote items that qualify for the finer region
                while (
                    self._buffer_separator_index < capacity
                    and self._greatest_sample_rate_index(item) >= self._buffer_sample_rate_index
                ):
                    idx = self._random.randrange(self._buffer_separator_index, capacity)
                    tmp = buffer[idx]
                    buffer[idx] = buffer[self._buffer_separator_index]
                    buffer[self._buffer_separator_index] = item
                    item = tmp
                    self._buffer_separator_index += 1

                if self._buffer_separator_index == capacity:
                    self._advance_sample_rate_index()
                else:
                    break

        if runtime_config.get_debug():
            self.check_consistency()

    def check_consistency(self) -> None:
        """
        Verify the region invariant.

        Raises:
            InvariantViolationError: if any slot violates it
        """
        buffer = self._buffer
        separator = self._buffer_separator_index
        rate_index = self._buffer_sample_rate_index

        if separator >= len(buffer):
            raise InvariantViolationError(
                "buffer separator out of range", {"separator": separator}
            )
        for i in range(separator):
            if buffer[i] is None or self._greatest_sample_rate_index(buffer[i]) < rate_index:
                raise InvariantViolationError(
                    "item not eligible for current rate", {"slot": i, "rate_index": rate_index}
                )
        if rate_index > 0:
            for i in range(separator, len(buffer)):
                if buffer[i] is None or self._greatest_sample_rate_index(buffer[i]) < rate_index - 1:
                    raise InvariantViolationError(
                        "item not eligible for previous rate",
                        {"slot": i, "rate_index": rate_index - 1},
                    )
        else:
            for i in range(separator, len(buffer)):
                if buffer[i] is not None:
                    raise InvariantViolationError("slot beyond fill level is not empty", {"slot": i})

    def get_samples(self) -> List[Sample[T]]:
        rate_index = self._buffer_sample_rate_index
        samples = [
            Sample(self._buffer[i], rate_index) for i in range(self._buffer_separator_index)
        ]
        if rate_index > 0:
            samples.extend(
                Sample(self._buffer[i], rate_index - 1)
                for i in range(self._buffer_separator_index, len(self._buffer))
            )
        return samples

    def get_extrapolation_factor(self, sample: Sample[T]) -> float:
        """Reciprocal of the sampling rate the sample survived with."""
        return 1.0 / self._sample_rate_index_to_sample_rate(sample.sample_rate_index)
