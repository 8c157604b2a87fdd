"""
Halton Sequence
===============

Coordinate j of point i is the radical inverse of i in base b_j, the j-th
prime by default:

    x_i = (phi_2(i), phi_3(i), phi_5(i), ...).

Each coordinate is a van der Corput sequence in its own base; digit
randomizations (random digital shifts) are carried out coordinate by
coordinate in that base.

Reference:
    Halton, J.H. (1960). On the efficiency of certain quasi-random sequences
    of points in evaluating multi-dimensional integrals.
"""

import math
from typing import Optional, Sequence

from .exceptions import InvalidConstruction
from .point_set import PointSet, PointSetIterator
from .radical_inverse import RadicalInverseCounter, to_radical_inverse
from .utils import default_precision, first_primes


class HaltonSequence(PointSet):
    """
    Halton sequence in `dimension` dimensions.

    Parameters
    ----------
    dimension : int
        Number of coordinates.
    bases : sequence of int, optional
        One base per coordinate. If None, the first `dimension` primes.

    Attributes
    ----------
    bases : list of int
        Base of each coordinate.

    Examples
    --------
    >>> seq = HaltonSequence(2)
    >>> seq.get_point(1)
    array([0.5       , 0.33333333])
    """

    def __init__(self, dimension: int, bases: Optional[Sequence[int]] = None):
        if dimension < 1:
            raise InvalidConstruction(f"Dimension must be >= 1, got {dimension}")
        if bases is None:
            bases = first_primes(dimension)
        bases = [int(b) for b in bases]
        if len(bases) != dimension:
            raise InvalidConstruction(
                f"bases must have length dimension={dimension}, got {len(bases)}"
            )
        if any(b < 2 for b in bases):
            raise InvalidConstruction(f"All bases must be >= 2, got {bases}")
        self.bases = bases
        super().__init__(math.inf, dimension)

    def coordinate_base(self, j: int) -> int:
        return self.bases[j]

    def coordinate_precision(self, j: int) -> int:
        return default_precision(self.bases[j])

    def _raw_coordinate(self, i: int, j: int) -> float:
        return to_radical_inverse(i, self.bases[j])

    def iterator(self) -> "HaltonIterator":
        return HaltonIterator(self)

    def info(self) -> dict:
        info = super().info()
        info["bases"] = list(self.bases)
        return info

    def __repr__(self) -> str:
        return f"HaltonSequence(dim={self.dimension}, bases={self.bases})"


class HaltonIterator(PointSetIterator):
    """
    Iterator over a Halton sequence.

    Each coordinate keeps a :class:`RadicalInverseCounter` on the last point
    index it visited. Advancing by one point propagates a carry through its
    digits instead of expanding the index again; values are identical to
    `get_coordinate`.
    """

    def __init__(self, point_set: HaltonSequence):
        super().__init__(point_set)
        self._counters = {}

    def _coordinate(self, i: int, j: int) -> float:
        ps = self.point_set
        counter = self._counters.get(j)
        if counter is not None and counter.index == i - 1:
            counter.increment()
        elif counter is None or counter.index != i:
            counter = self._counters[j] = RadicalInverseCounter(i, ps.bases[j])
        return ps._randomizations.apply(j, counter.value)
