"""
Uniform Random Streams
======================

`RandomStream` is the capability shared by pseudorandom generators and
point set iterators: a stateful, resettable source of uniforms in [0, 1).
Simulation code written against it runs unchanged under Monte Carlo
(`NumpyRandomStream`) or quasi-Monte Carlo (`PointSetIterator`).

A stream is split into substreams. For a point set iterator a substream is
one point and successive draws are its coordinates.
"""

from abc import ABC, abstractmethod

import numpy as np


class RandomStream(ABC):
    """
    Abstract source of uniform random numbers.

    Subclasses implement `next_double` and the three reset operations.
    """

    @abstractmethod
    def next_double(self) -> float:
        """Return the next uniform in [0, 1) and advance the stream."""

    def next_array_of_double(self, n: int) -> np.ndarray:
        """Return the next `n` uniforms as an array of shape (n,)."""
        out = np.empty(n, dtype=np.float64)
        for idx in range(n):
            out[idx] = self.next_double()
        return out

    def next_int(self, i: int, j: int) -> int:
        """Return an integer uniformly distributed over {i, ..., j}."""
        return i + int(self.next_double() * (j - i + 1.0))

    @abstractmethod
    def reset_start_stream(self):
        """Rewind to the very beginning of the stream."""

    @abstractmethod
    def reset_start_substream(self):
        """Rewind to the beginning of the current substream."""

    @abstractmethod
    def reset_next_substream(self):
        """Move to the beginning of the next substream."""


class NumpyRandomStream(RandomStream):
    """
    Pseudorandom stream backed by `numpy.random.Generator`.

    Each substream is an independent generator spawned from the same
    `numpy.random.SeedSequence`, so resets are exact.

    Parameters
    ----------
    seed : {None, int, array_like of int}, optional
        Entropy of the seed sequence. None draws fresh OS entropy once.

    Examples
    --------
    >>> stream = NumpyRandomStream(seed=42)
    >>> u = stream.next_double()
    >>> stream.reset_start_stream()
    >>> stream.next_double() == u
    True
    """

    def __init__(self, seed=None):
        self._seed_seq = np.random.SeedSequence(seed)
        self.seed = self._seed_seq.entropy
        self._substream = 0
        self._rng = self._make_generator(0)

    def _make_generator(self, substream: int) -> np.random.Generator:
        seq = np.random.SeedSequence(self.seed, spawn_key=(substream,))
        return np.random.Generator(np.random.PCG64(seq))

    def next_double(self) -> float:
        return float(self._rng.random())

    def next_array_of_double(self, n: int) -> np.ndarray:
        return self._rng.random(n)

    def next_int(self, i: int, j: int) -> int:
        return int(self._rng.integers(i, j, endpoint=True))

    def reset_start_stream(self):
        self._substream = 0
        self._rng = self._make_generator(0)

    def reset_start_substream(self):
        self._rng = self._make_generator(self._substream)

    def reset_next_substream(self):
        self._substream += 1
        self._rng = self._make_generator(self._substream)

    def __repr__(self) -> str:
        return f"NumpyRandomStream(seed={self.seed}, substream={self._substream})"
