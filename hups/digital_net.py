"""
Digital Nets and Digital Sequences
==================================

A digital net in base b with n = b^k points in s dimensions is defined by
s generator matrices C_0, ..., C_{s-1} over Z_b. Coordinate j of point i is

    u_{i,j} = sum_{l=0}^{r-1} y_l b^-(l+1),   y = C_j a(i)  (mod b),

where a(i) = (a_0, ..., a_{k-1}) are the base-b digits of i, least
significant first. The result is truncated to r output digits; the error is
below b^-r.

A digital sequence has infinitely many points: its matrices grow new
columns when an index needs more digits. Issued columns never change, so
the first b^k points of the sequence do not depend on how far it has been
extended.

In base 2 each column is packed into an integer and coordinates are built
by exclusive-or. Iterators then update the current outputs incrementally:
going from index p to index q costs one XOR per bit set in p XOR q, one XOR
per advance in Gray-code order.

References
----------
[1] Niederreiter, H. (1992). Random Number Generation and Quasi-Monte Carlo
    Methods. SIAM.
[2] Antonov, I.A. and Saleev, V.M. (1979). An economic method of computing
    LP_tau-sequences.
[3] Dick, J. and Pillichshammer, F. (2010). Digital Nets and Sequences.
"""

import logging
import math
import numpy as np
from typing import Callable, List, Optional, Sequence

from .exceptions import InvalidConstruction, OutOfRange
from .generator_matrix import GeneratorMatrix
from .point_set import PointSet, PointSetIterator
from .radical_inverse import digits_to_value, to_digits
from .utils import DEFAULT_PRECISION_BASE2, default_precision, num_digits

logger = logging.getLogger(__name__)

ITERATION_ORDERS = ("natural", "gray")


class DigitalNet(PointSet):
    """
    Digital net in base b.

    Parameters
    ----------
    base : int
        Base b >= 2.
    matrices : sequence
        One generator matrix per dimension, either `GeneratorMatrix`
        instances or integer arrays of shape (r, k).
    k : int, optional
        Number of index digits; the net has b^k points. Defaults to the
        number of columns of the matrices, which are grown when k is larger.
    precision : int, optional
        Output digits r, used when `matrices` holds arrays.
    check_rank : bool, optional
        If True, reject matrices whose leading k x k block is singular over
        Z_b (default: False).

    Attributes
    ----------
    base : int
        Base b.
    k : int
        Number of index digits.
    precision : int
        Number of output digits r.

    Raises
    ------
    InvalidConstruction
        For an empty list of matrices, mixed bases or precisions, or a
        singular matrix when `check_rank` is set.

    Examples
    --------
    >>> net = DigitalNet(2, [GeneratorMatrix.identity(3, 3, 2)])
    >>> [float(net.get_coordinate(i, 0)) for i in range(4)]
    [0.0, 0.5, 0.25, 0.75]
    """

    digital = True

    def __init__(
        self,
        base: int,
        matrices: Sequence,
        k: Optional[int] = None,
        precision: Optional[int] = None,
        check_rank: bool = False,
    ):
        if len(matrices) == 0:
            raise InvalidConstruction("A digital net needs at least one generator matrix")

        mats = [
            m if isinstance(m, GeneratorMatrix) else GeneratorMatrix(m, base, precision)
            for m in matrices
        ]
        if any(m.base != base for m in mats):
            raise InvalidConstruction(f"All generator matrices must be in base {base}")
        r = mats[0].num_rows
        if any(m.num_rows != r for m in mats):
            raise InvalidConstruction("All generator matrices must have the same precision")

        if k is None:
            k = min(m.num_columns for m in mats)
        if k < 0:
            raise InvalidConstruction(f"Number of index digits must be >= 0, got {k}")
        if k > r:
            raise InvalidConstruction(f"Precision r={r} must be >= k={k}")
        for m in mats:
            if m.num_columns < k:
                m.grow_columns(k)

        self.base = int(base)
        self.k = k
        self.precision = r
        self._matrices = mats

        if check_rank:
            for j, m in enumerate(mats):
                if not self._leading_block_nonsingular(m):
                    raise InvalidConstruction(
                        f"Generator matrix of coordinate {j} is singular over Z_{base}"
                    )

        super().__init__(self._size(), len(mats))

    def _size(self):
        return self.base**self.k

    def _leading_block_nonsingular(self, m: GeneratorMatrix) -> bool:
        block = GeneratorMatrix(m.columns[:self.k, :self.k], self.base)
        return block.is_nonsingular()

    @property
    def matrices(self) -> List[GeneratorMatrix]:
        """The deterministic generator matrices, never modified by randomizations."""
        return list(self._matrices)

    def coordinate_base(self, j: int) -> int:
        return self.base

    def coordinate_precision(self, j: int) -> int:
        return self.precision

    def _prepare_index(self, i: int) -> None:
        """Hook run before digits of index i are needed."""

    def index_digits(self, i: int) -> np.ndarray:
        """Base-b digits of point index i, least significant first."""
        self._prepare_index(i)
        return to_digits(i, self.base, self.k)

    def output_digits(self, i: int, j: int) -> np.ndarray:
        """Deterministic output digits y = C_j a(i) of coordinate j of point i."""
        return self._matrices[j].apply(self.index_digits(i))

    def _raw_coordinate(self, i: int, j: int) -> float:
        return digits_to_value(self.output_digits(i, j), self.base)

    def _digits_coordinate(self, digits: np.ndarray, j: int) -> float:
        y = self._matrices[j].apply(digits)
        if not self._randomizations:
            return digits_to_value(y, self.base)
        return self._randomizations.apply_digits(j, y)

    def _compute_coordinate(self, i: int, j: int) -> float:
        return self._digits_coordinate(self.index_digits(i), j)

    def iterator(self) -> "DigitalNetIterator":
        return DigitalNetIterator(self)

    def info(self) -> dict:
        info = super().info()
        info.update({
            "base": self.base,
            "k": self.k,
            "precision": self.precision,
        })
        return info

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(base={self.base}, k={self.k}, "
                f"r={self.precision}, dim={self.dimension})")


class DigitalSequence(DigitalNet):
    """
    Digital sequence in base b: a digital net with infinitely many points.

    Parameters
    ----------
    base : int
        Base b >= 2.
    column_sources : sequence of callables
        One per dimension; ``column_sources[j](c)`` returns column c of C_j
        as an array of length r.
    precision : int, optional
        Output digits r. Also bounds the number of columns, hence the
        sequence can index b^r points. Defaults to the largest r for which
        r-digit fractions are exact doubles (31 in base 2).
    k : int, optional
        Number of columns built up front (default: 0). Growth happens on
        demand otherwise.

    Notes
    -----
    Growth modifies the matrices shared by every iterator. When iterating
    from several threads, call `extend` beforehand.
    """

    def __init__(
        self,
        base: int,
        column_sources: Sequence[Callable[[int], np.ndarray]],
        precision: Optional[int] = None,
        k: int = 0,
        check_rank: bool = False,
    ):
        if precision is None:
            precision = default_precision(base)
        matrices = [
            GeneratorMatrix(np.zeros((precision, 0), dtype=np.int64), base,
                            column_source=source)
            for source in column_sources
        ]
        super().__init__(base, matrices, k=k, check_rank=check_rank)

    def _size(self):
        return math.inf

    def extend(self, k: int) -> None:
        """
        Grow every generator matrix to k columns, indexing b^k points.

        Raises
        ------
        OutOfRange
            If k exceeds the precision r.
        """
        if k <= self.k:
            return
        if k > self.precision:
            raise OutOfRange(
                f"Sequence cannot index more than {self.base}^{self.precision} points"
            )
        for m in self._matrices:
            m.grow_columns(k)
        logger.debug("Extended %s to %d columns", type(self).__name__, k)
        self.k = k

    def _prepare_index(self, i: int) -> None:
        if i >= self.base**self.k:
            self.extend(num_digits(i + 1, self.base))


class DigitalNetIterator(PointSetIterator):
    """
    Iterator over a digital net; the digits of the current index are
    computed once per point.
    """

    def __init__(self, point_set: DigitalNet):
        super().__init__(point_set)
        self._digits_index = None
        self._digits = None

    def _coordinate(self, i: int, j: int) -> float:
        if self._digits_index != i:
            self._digits = self.point_set.index_digits(i)
            self._digits_index = i
        return self.point_set._digits_coordinate(self._digits, j)


class Base2Engine:
    """
    Integer arithmetic for digital constructions in base 2.

    Mixed into `DigitalNet` subclasses. Randomizations at the head of the
    pipeline are folded into effective integer columns and an integer shift
    per coordinate, rebuilt whenever the pipeline or the number of columns
    changes.
    """

    _engine_cache = None

    def _engine(self, j: int):
        """Return (token, columns, shift, tail) for coordinate j."""
        token = (self._randomizations.token, self.k)
        cache = self._engine_cache
        if cache is None:
            cache = self._engine_cache = {}
        cached = cache.get(j)
        if cached is not None and cached[0] == token:
            return cached

        matrix = self._matrices[j]
        shift = 0
        tail = []
        if self._randomizations:
            A, c, tail = self._randomizations.compile(j)
            if A is not None:
                matrix = matrix.left_multiply(A)
            if c is not None:
                r = self.precision
                shift = sum(1 << (r - 1 - l) for l in range(r) if c[l])
        columns = matrix.as_int_columns()[:self.k]

        entry = (token, columns, shift, tail)
        cache[j] = entry
        return entry

    def output_int(self, i: int, j: int) -> int:
        """Randomized output of coordinate j of point i as an r-bit integer."""
        self._prepare_index(i)
        _, columns, y, _ = self._engine(j)
        c = 0
        while i:
            if i & 1:
                y ^= columns[c]
            i >>= 1
            c += 1
        return y

    def _int_to_value(self, j: int, y: int, tail: list) -> float:
        # Exact for r <= 53; lower bits are truncated silently above.
        u = y / (1 << self.precision)
        if tail:
            u = self._randomizations.apply_tail(j, u, tail)
        return u

    def _compute_coordinate(self, i: int, j: int) -> float:
        y = self.output_int(i, j)
        return self._int_to_value(j, y, self._engine(j)[3])

    def iterator(self, order: str = "natural") -> "DigitalNetBase2Iterator":
        """
        Return a new iterator.

        Parameters
        ----------
        order : str, optional
            "natural" visits points 0, 1, 2, ... (default); "gray" visits
            them in Gray-code order g(i) = i XOR (i >> 1), one XOR per
            coordinate per advance.
        """
        return DigitalNetBase2Iterator(self, order=order)


class DigitalNetBase2(Base2Engine, DigitalNet):
    """
    Digital net in base 2 with integer-packed generator columns.

    Parameters
    ----------
    matrices : sequence
        Generator matrices in base 2 (`GeneratorMatrix` or 0/1 arrays of
        shape (r, k)).
    k : int, optional
        Number of index digits; the net has 2^k points.
    precision : int, optional
        Output bits r when `matrices` holds arrays.
    check_rank : bool, optional
        Reject singular leading blocks (default: False).

    Examples
    --------
    >>> net = DigitalNetBase2([GeneratorMatrix.identity(3, 3, 2)])
    >>> it = net.iterator(order="gray")
    """

    def __init__(self, matrices: Sequence, k: Optional[int] = None,
                 precision: Optional[int] = None, check_rank: bool = False):
        super().__init__(2, matrices, k=k, precision=precision, check_rank=check_rank)


class DigitalSequenceBase2(Base2Engine, DigitalSequence):
    """
    Digital sequence in base 2 with integer-packed generator columns.

    Parameters
    ----------
    column_sources : sequence of callables
        ``column_sources[j](c)`` returns column c of C_j as a 0/1 array of
        length r.
    precision : int, optional
        Output bits r (default: 31).
    k : int, optional
        Number of columns built up front (default: 0).
    """

    def __init__(self, column_sources, precision: int = DEFAULT_PRECISION_BASE2,
                 k: int = 0, check_rank: bool = False):
        super().__init__(2, column_sources, precision=precision, k=k,
                         check_rank=check_rank)


class DigitalNetBase2Iterator(PointSetIterator):
    """
    Iterator over a base-2 digital net with incremental XOR updates.

    For every coordinate the iterator remembers the last point index it
    computed and its output integer. Moving from index p to index q XORs
    the columns of the bits of p XOR q into it, which is bit-identical to
    recomputing the product from scratch.

    Parameters
    ----------
    point_set : DigitalNetBase2 or DigitalSequenceBase2
        The point set to traverse.
    order : str, optional
        "natural" or "gray" (default: "natural").
    """

    def __init__(self, point_set, order: str = "natural"):
        if order not in ITERATION_ORDERS:
            raise ValueError(
                f"Invalid order '{order}'. Must be one of {ITERATION_ORDERS}"
            )
        super().__init__(point_set)
        self.order = order
        self._state = {}

    def point_index(self, pos: int) -> int:
        """Index of the point visited at position `pos`."""
        if self.order == "gray":
            return pos ^ (pos >> 1)
        return pos

    @property
    def cur_index(self) -> int:
        """Index in the point set of the point under the cursor."""
        return self.point_index(self._cur_point)

    def _coordinate(self, pos: int, j: int) -> float:
        ps = self.point_set
        i = self.point_index(pos)
        ps._prepare_index(i)
        token, columns, shift, tail = ps._engine(j)

        state = self._state.get(j)
        if state is not None and state[0] == token:
            prev, y = state[1], state[2]
            diff = prev ^ i
            c = 0
            while diff:
                if diff & 1:
                    y ^= columns[c]
                diff >>= 1
                c += 1
        else:
            y = ps.output_int(i, j)
        self._state[j] = (token, i, y)
        return ps._int_to_value(j, y, tail)

    def __repr__(self) -> str:
        return (f"DigitalNetBase2Iterator(order='{self.order}', point={self._cur_point}, "
                f"coord={self._cur_coord})")


def _identity_source(r: int) -> Callable[[int], np.ndarray]:
    def source(c: int) -> np.ndarray:
        col = np.zeros(r, dtype=np.int64)
        col[c] = 1
        return col
    return source


class VanDerCorputSequence(DigitalSequence):
    """
    One-dimensional van der Corput sequence in base b.

    The identity generator matrix maps point i to its radical inverse:
    0, 1/2, 1/4, 3/4, 1/8, ... in base 2.

    Parameters
    ----------
    base : int, optional
        Base b (default: 2).
    precision : int, optional
        Output digits r.
    """

    def __init__(self, base: int = 2, precision: Optional[int] = None):
        if precision is None:
            precision = default_precision(base)
        super().__init__(base, [_identity_source(precision)], precision=precision)


class HammersleyNet(DigitalNet):
    """
    Two-dimensional Hammersley net in base b with b^k points.

    Coordinate 0 is i / b^k (reflected identity matrix), coordinate 1 is the
    radical inverse of i (identity matrix). The result is a (0, k, 2)-net.

    Parameters
    ----------
    k : int
        Number of index digits.
    base : int, optional
        Base b (default: 2).
    """

    def __init__(self, k: int, base: int = 2):
        matrices = [
            GeneratorMatrix.reflected_identity(k, k, base),
            GeneratorMatrix.identity(k, k, base, growable=False),
        ]
        super().__init__(base, matrices, k=k, check_rank=True)
