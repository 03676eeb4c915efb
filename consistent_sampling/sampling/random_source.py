"""Seedable, splittable and thread-local sources of random bits."""

from __future__ import annotations

import random
import threading
from typing import Optional


class RandomBitSource:
    """
    Thread-local random bit generator.

    Each thread draws from its own ``random.Random`` whose seed is taken from a
    master generator, so decisions never contend on shared state. With a fixed
    seed, single-threaded runs are bit-reproducible.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._master = random.Random(seed)
        self._lock = threading.Lock()
        self._local = threading.local()

    def _next_seed(self) -> int:
        with self._lock:
            return self._master.getrandbits(64)

    def _generator(self) -> random.Random:
        generator = getattr(self._local, "generator", None)
        if generator is None:
            generator = random.Random(self._next_seed())
            self._local.generator = generator
        return generator

    def split(self) -> "RandomBitSource":
        """Return an independent source seeded from this one."""
        return RandomBitSource(self._next_seed())

    def next_bit(self) -> bool:
        return self._generator().getrandbits(1) == 1

    def __call__(self) -> bool:
        return self.next_bit()


_default_source = RandomBitSource()


def get_default_random_bit_source() -> RandomBitSource:
    return _default_source
