"""Tests for the bounded reservoir sampler."""

import random

import pytest

from consistent_sampling import runtime_config
from consistent_sampling.errors import InvariantViolationError, ValidationError
from consistent_sampling.sampling import ReservoirSampler, Sample


def leading_zeros(value):
    """Number of leading zeros of a 64-bit value, i.e. the coarsest power-of-two rate index."""
    return 64 - value.bit_length()


def power_of_two_rate(index):
    return 1.0 / (1 << index)


@pytest.fixture
def debug_mode():
    runtime_config.set_debug(True)
    yield
    runtime_config.reset()


def test_invalid_arguments():
    with pytest.raises(ValidationError):
        ReservoirSampler(0, leading_zeros, power_of_two_rate)
    with pytest.raises(ValidationError):
        ReservoirSampler(10, leading_zeros, lambda i: 0.5)
    with pytest.raises(ValidationError):
        ReservoirSampler(10, None, power_of_two_rate)


def test_none_items_are_rejected():
    sampler = ReservoirSampler(3, leading_zeros, power_of_two_rate)
    with pytest.raises(ValidationError):
        sampler.add(None)


def test_fills_before_coarsening():
    sampler = ReservoirSampler(5, leading_zeros, power_of_two_rate, random=random.Random(0))
    for value in (1, 2, 3, 4):
        sampler.add(value)
    samples = sampler.get_samples()
    assert [s.item for s in samples] == [1, 2, 3, 4]
    assert all(s.sample_rate_index == 0 for s in samples)
    assert sampler.sample_rate_index == 0

    sampler.add(5)
    assert sampler.sample_rate_index == 1
    assert sorted(s.item for s in sampler.get_samples()) == [1, 2, 3, 4, 5]
    assert all(s.sample_rate_index == 0 for s in sampler.get_samples())


def test_consistency_after_every_add(debug_mode):
    rng = random.Random(234)
    sampler = ReservoirSampler(20, leading_zeros, power_of_two_rate, random=random.Random(0))
    sampler.check_consistency()
    for _ in range(1000):
        sampler.add(rng.getrandbits(64))
        sampler.check_consistency()
        assert len(sampler.get_samples()) <= sampler.capacity
    assert len(sampler.get_samples()) == sampler.capacity


def test_samples_are_eligible_for_their_rate():
    rng = random.Random(99)
    sampler = ReservoirSampler(10, leading_zeros, power_of_two_rate, random=random.Random(5))
    for _ in range(5000):
        sampler.add(rng.getrandbits(64))
    for sample in sampler.get_samples():
        assert leading_zeros(sample.item) >= sample.sample_rate_index
    assert sampler.sample_rate_index > 1


def test_check_consistency_detects_corruption():
    sampler = ReservoirSampler(3, leading_zeros, power_of_two_rate, random=random.Random(0))
    for value in (1, 2, 3):
        sampler.add(value)
    # 1 << 63 has no leading zeros, so it is not eligible for rate index 1
    sampler._buffer[0] = 1 << 63
    sampler._buffer_separator_index = 1
    with pytest.raises(InvariantViolationError):
        sampler.check_consistency()


def test_extrapolation_factor():
    sampler = ReservoirSampler(3, leading_zeros, power_of_two_rate)
    assert sampler.get_extrapolation_factor(Sample("x", 0)) == 1.0
    assert sampler.get_extrapolation_factor(Sample("x", 3)) == 8.0


def test_balanced_sampling():
    """The extrapolated number of items is unbiased."""
    rng = random.Random(0x88E23B990958CDCD)
    capacity = 10
    number_of_items = 100
    trials = 4000

    total = 0.0
    inclusions = [0] * number_of_items
    for _ in range(trials):
        sampler = ReservoirSampler(
            capacity, lambda item: item[1], power_of_two_rate, random=rng
        )
        for k in range(number_of_items):
            sampler.add((k, leading_zeros(rng.getrandbits(64))))
        for sample in sampler.get_samples():
            total += sampler.get_extrapolation_factor(sample)
            inclusions[sample.item[0]] += 1

    assert total / trials == pytest.approx(number_of_items, rel=0.06)
    assert sum(inclusions) == trials * capacity
