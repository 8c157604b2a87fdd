"""
Highly Uniform Point Sets for Quasi-Monte Carlo
===============================================

This package provides highly uniform point sets and low-discrepancy
sequences over the unit hypercube, traversed through iterators that can
stand in for a uniform random number stream.

Main classes:
- DigitalNet, DigitalSequence: digital constructions from generator matrices
- DigitalNetBase2, DigitalSequenceBase2: base-2 versions with XOR/Gray-code iteration
- CycleBasedPointSet, KorobovCyclePointSet: point sets from the cycles of a recurrence
- HaltonSequence: radical inverses in prime bases
- RandomDigitalShift, RandomShift, LeftMatrixScramble: randomizations

Reference:
    L'Ecuyer, P. and Lemieux, C. (2002). Recent advances in randomized
    quasi-Monte Carlo methods.

License: MIT
"""

from .exceptions import (
    HUPSError,
    InvalidConstruction,
    OutOfRange,
    UnsupportedRandomization,
)
from .radical_inverse import (
    to_radical_inverse,
    next_radical_inverse,
    RadicalInverseCounter,
    to_digits,
    from_digits,
    digits_to_value,
    value_to_digits,
)
from .generator_matrix import GeneratorMatrix
from .streams import RandomStream, NumpyRandomStream
from .point_set import PointSet, PointSetIterator
from .randomization import (
    Randomization,
    RandomizationPipeline,
    RandomDigitalShift,
    RandomShift,
    LeftMatrixScramble,
)
from .digital_net import (
    DigitalNet,
    DigitalSequence,
    DigitalNetBase2,
    DigitalSequenceBase2,
    VanDerCorputSequence,
    HammersleyNet,
)
from .cycle_based import (
    CycleBasedPointSet,
    CycleBasedPointSetBase2,
    KorobovCyclePointSet,
)
from .halton import HaltonSequence
from .utils import generate_primes

__version__ = "1.0.0"
__all__ = [
    "HUPSError",
    "InvalidConstruction",
    "OutOfRange",
    "UnsupportedRandomization",
    "to_radical_inverse",
    "next_radical_inverse",
    "RadicalInverseCounter",
    "to_digits",
    "from_digits",
    "digits_to_value",
    "value_to_digits",
    "GeneratorMatrix",
    "RandomStream",
    "NumpyRandomStream",
    "PointSet",
    "PointSetIterator",
    "Randomization",
    "RandomizationPipeline",
    "RandomDigitalShift",
    "RandomShift",
    "LeftMatrixScramble",
    "DigitalNet",
    "DigitalSequence",
    "DigitalNetBase2",
    "DigitalSequenceBase2",
    "VanDerCorputSequence",
    "HammersleyNet",
    "CycleBasedPointSet",
    "CycleBasedPointSetBase2",
    "KorobovCyclePointSet",
    "HaltonSequence",
    "generate_primes",
]
