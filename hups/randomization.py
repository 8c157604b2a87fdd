"""
Randomization of Point Sets
===========================

A point set owns a `RandomizationPipeline`: an ordered list of
randomizations applied to every coordinate it returns, in push order.
Removing them restores the deterministic point set exactly, since neither
generator matrices nor stored cycles are ever modified.

Two families of randomizations exist:

    - digit level: an affine map y -> A y + c (mod b) on the r output digits
      of a coordinate (random digital shift, left matrix scramble);
    - value level: a map on the real coordinate (random shift modulo 1).

A run of digit-level randomizations at the head of the pipeline is composed
into a single affine map per coordinate. Digital nets fold it into their
generator matrices, other point sets apply it to the digit expansion of
their values.

Randomness is drawn from a `RandomStream` lazily and in coordinate order:
coordinate j always receives the j-th draw, whatever the order in which
coordinates are requested, so infinite-dimensional point sets can be
randomized.

Notes
-----
`push`, `pop`, `clear` and `randomize` are writes. They must not run
concurrently with iteration over the owning point set.

References
----------
[1] Cranley, R. and Patterson, T.N.L. (1976). Randomization of number
    theoretic methods for multiple integration.
[2] Matousek, J. (1998). On the L2-discrepancy for anchored boxes.
[3] L'Ecuyer, P. and Lemieux, C. (2002). Recent advances in randomized
    quasi-Monte Carlo methods.
"""

import logging
import numpy as np
from abc import ABC
from typing import List, Optional, Tuple

from .exceptions import UnsupportedRandomization
from .radical_inverse import digits_to_value, value_to_digits
from .streams import NumpyRandomStream, RandomStream
from .utils import check_random_state, units_mod

logger = logging.getLogger(__name__)

Affine = Tuple[Optional[np.ndarray], Optional[np.ndarray]]


class Randomization(ABC):
    """
    Base class of point set randomizations.

    Parameters
    ----------
    stream : RandomStream, optional
        Source of randomness. If None, a `NumpyRandomStream` seeded with
        `seed` is created.
    seed : {None, int}, optional
        Seed of the default stream.

    Attributes
    ----------
    digit_level : bool
        True for randomizations acting on the digit expansion.
    version : int
        Incremented each time fresh randomness is drawn.
    """

    digit_level = False

    def __init__(self, stream: Optional[RandomStream] = None, seed=None):
        self.stream = stream if stream is not None else NumpyRandomStream(seed)
        self.version = 0
        self._draws = []

    def _draw(self) -> float:
        """Draw the randomness of the next coordinate from the stream."""
        return self.stream.next_double()

    def draw(self, j: int):
        """Randomness attached to coordinate j, drawn on first use."""
        while len(self._draws) <= j:
            self._draws.append(self._draw())
        return self._draws[j]

    def randomize(self, stream: Optional[RandomStream] = None) -> "Randomization":
        """
        Discard the current randomness; fresh values are drawn on next use.
        """
        if stream is not None:
            self.stream = stream
        self._draws = []
        self.version += 1
        return self

    def check(self, point_set) -> None:
        """Raise UnsupportedRandomization if `point_set` cannot take it."""

    def affine(self, j: int, b: int, r: int) -> Affine:
        """Affine map (A, c) on the r base-b digits of coordinate j."""
        raise NotImplementedError

    def transform_value(self, j: int, u: float) -> float:
        """Map on the real value of coordinate j."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stream={self.stream!r})"


class DigitRandomization(Randomization):
    """Randomization acting on the base-b digits of each coordinate."""

    digit_level = True

    def check(self, point_set) -> None:
        if point_set.coordinate_base(0) is None:
            raise UnsupportedRandomization(
                f"{type(self).__name__} needs a point set with a digit "
                f"structure, {type(point_set).__name__} has none"
            )


class RandomDigitalShift(DigitRandomization):
    """
    Random digital shift in base b.

    One uniform u_j is drawn per coordinate and expanded into r base-b
    digits d_1, ..., d_r; every output digit of coordinate j gets the
    matching d_l added modulo b. In base 2 this is a bitwise exclusive-or,
    so pushing the same shift twice restores the original points.

    The equidistribution properties of a digital net are preserved.
    """

    def shift_digits(self, j: int, b: int, r: int) -> np.ndarray:
        return value_to_digits(self.draw(j), b, r)

    def affine(self, j: int, b: int, r: int) -> Affine:
        return None, self.shift_digits(j, b, r)


class LeftMatrixScramble(DigitRandomization):
    """
    Left matrix scramble of a digital net.

    Each generator matrix C_j is replaced by L_j C_j, where L_j is a random
    r x r lower-triangular matrix over Z_b with units on the diagonal and
    uniform entries below it. L_j is nonsingular, so the net structure is
    preserved.

    Only point sets built from generator matrices support it.

    Parameters
    ----------
    stream : RandomStream, optional
        Source of randomness.
    seed : {None, int}, optional
        Seed of the default stream.
    striped : bool, optional
        If True, draw a "striped" matrix instead: every entry on or below
        the diagonal of a column equals the diagonal entry (base 2 only
        meaningful, default: False).
    """

    def __init__(self, stream: Optional[RandomStream] = None, seed=None,
                 striped: bool = False):
        super().__init__(stream=stream, seed=seed)
        self.striped = striped

    def _draw(self) -> int:
        # One integer seed per coordinate; the matrix itself depends on b and r.
        return self.stream.next_int(0, 2**31 - 1)

    def check(self, point_set) -> None:
        if not getattr(point_set, "digital", False):
            raise UnsupportedRandomization(
                f"Left matrix scrambling requires a digital net, got "
                f"{type(point_set).__name__}"
            )

    def scramble_matrix(self, j: int, b: int, r: int) -> np.ndarray:
        rng = check_random_state(self.draw(j))
        units = np.asarray(units_mod(b), dtype=np.int64)
        L = np.zeros((r, r), dtype=np.int64)
        diag = units[rng.integers(0, len(units), size=r)]
        if self.striped:
            for c in range(r):
                L[c:, c] = diag[c]
        else:
            L[np.tril_indices(r, -1)] = rng.integers(0, b, size=r * (r - 1) // 2)
            L[np.arange(r), np.arange(r)] = diag
        return L

    def affine(self, j: int, b: int, r: int) -> Affine:
        return self.scramble_matrix(j, b, r), None

    def __repr__(self) -> str:
        return f"LeftMatrixScramble(stream={self.stream!r}, striped={self.striped})"


class RandomShift(Randomization):
    """
    Random shift modulo 1 (Cranley-Patterson rotation).

    One uniform s_j is drawn per coordinate and every coordinate value u
    becomes u + s_j modulo 1. Works for any point set.
    """

    def transform_value(self, j: int, u: float) -> float:
        v = u + self.draw(j)
        if v >= 1.0:
            v -= 1.0
        return v


class RandomizationPipeline:
    """
    Ordered list of randomizations owned by a point set.

    Parameters
    ----------
    owner : PointSet
        The point set the randomizations are checked against.

    Examples
    --------
    >>> pipeline = point_set.randomizations
    >>> pipeline.push(RandomDigitalShift(seed=1))
    >>> pipeline.clear()
    """

    def __init__(self, owner):
        self.owner = owner
        self._items: List[Randomization] = []
        self._compiled = {}
        # Bumped on every write.
        self._generation = 0

    def _modified(self) -> None:
        self._generation += 1
        self._compiled = {}

    def push(self, randomization: Randomization) -> None:
        """
        Append a randomization, applied after those already pushed.

        Raises
        ------
        UnsupportedRandomization
            If the owner cannot support it.
        """
        randomization.check(self.owner)
        self._items.append(randomization)
        self._modified()
        logger.debug("Pushed %r onto %s", randomization, type(self.owner).__name__)

    def pop(self) -> Randomization:
        """Remove and return the most recently pushed randomization."""
        randomization = self._items.pop()
        self._modified()
        return randomization

    def clear(self) -> None:
        """Remove all randomizations, restoring the deterministic point set."""
        self._items = []
        self._modified()
        logger.debug("Cleared randomizations of %s", type(self.owner).__name__)

    def randomize(self) -> None:
        """Draw fresh randomness for every randomization in the pipeline."""
        for randomization in self._items:
            randomization.randomize()
        self._modified()

    @property
    def token(self) -> tuple:
        """Identifies the current randomization state; changes on any write."""
        return (self._generation,) + tuple(rand.version for rand in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __bool__(self) -> bool:
        return bool(self._items)

    def compile(self, j: int) -> Tuple[Optional[np.ndarray], Optional[np.ndarray], list]:
        """
        Compose the leading digit-level randomizations of coordinate j.

        Returns
        -------
        A : np.ndarray or None
            Composed r x r digit matrix (None for the identity).
        c : np.ndarray or None
            Composed digit shift (None for zero).
        tail : list
            Randomizations that follow the first value-level one.
        """
        token = self.token
        cached = self._compiled.get(j)
        if cached is not None and cached[0] == token:
            return cached[1]

        A = None
        c = None
        items = list(self._items)
        pos = 0
        if items and items[0].digit_level:
            b = self.owner.coordinate_base(j)
            r = self.owner.coordinate_precision(j)
        while pos < len(items) and items[pos].digit_level:
            A_new, c_new = items[pos].affine(j, b, r)
            if A_new is not None:
                A = A_new if A is None else (A_new @ A) % b
                if c is not None:
                    c = (A_new @ c) % b
            if c_new is not None:
                c = c_new if c is None else (c + c_new) % b
            pos += 1

        result = (A, c, items[pos:])
        self._compiled[j] = (token, result)
        return result

    def apply_tail(self, j: int, u: float, tail: list) -> float:
        """Apply the randomizations of `tail` (from `compile`) to value u."""
        for randomization in tail:
            if randomization.digit_level:
                b = self.owner.coordinate_base(j)
                r = self.owner.coordinate_precision(j)
                y = value_to_digits(u, b, r)
                A, c = randomization.affine(j, b, r)
                if A is not None:
                    y = (A @ y) % b
                if c is not None:
                    y = (y + c) % b
                u = digits_to_value(y, b)
            else:
                u = randomization.transform_value(j, u)
        return u

    def apply_digits(self, j: int, digits: np.ndarray) -> float:
        """
        Randomize the output digits of coordinate j and return its value.
        """
        b = self.owner.coordinate_base(j)
        A, c, tail = self.compile(j)
        y = digits
        if A is not None:
            y = (A @ y) % b
        if c is not None:
            y = (y + c) % b
        return self.apply_tail(j, digits_to_value(y, b), tail)

    def apply(self, j: int, u: float) -> float:
        """
        Randomize the value u of coordinate j.
        """
        if not self._items:
            return u
        A, c, tail = self.compile(j)
        if A is not None or c is not None:
            b = self.owner.coordinate_base(j)
            y = value_to_digits(u, b, self.owner.coordinate_precision(j))
            return self.apply_digits(j, y)
        return self.apply_tail(j, u, tail)

    def apply_point(self, point) -> np.ndarray:
        """Randomize the coordinates 0, ..., len(point)-1 of one point."""
        return np.array([self.apply(j, float(u)) for j, u in enumerate(point)])

    def __repr__(self) -> str:
        return f"RandomizationPipeline({list(self._items)!r})"
