"""
Generator Matrices over Z_b
===========================

A digital construction in base b maps the digits a_0, a_1, ..., a_{k-1}
of a point index (least significant first) to output digits

    y = C a  (mod b),

and the coordinate is y_0/b + y_1/b^2 + ... + y_{r-1}/b^r. Row l of the
generator matrix C produces the output digit of weight b^-(l+1) and column c
multiplies the input digit of weight b^c.

Matrices are append-only: columns can be added to index more points, but a
column is never modified once issued, so the first b^k points keep their
values whenever k grows.
"""

import logging
import numpy as np
from math import gcd
from typing import Callable, Optional

from .exceptions import InvalidConstruction, OutOfRange

logger = logging.getLogger(__name__)

ColumnSource = Callable[[int], np.ndarray]


def _unit_column(row: int, r: int) -> np.ndarray:
    col = np.zeros(r, dtype=np.int64)
    col[row] = 1
    return col


def determinant_mod(block: np.ndarray, b: int) -> int:
    """
    Determinant of an integer square matrix, reduced modulo b.

    Uses fraction-free Bareiss elimination on Python integers, so the result
    is exact for any modulus, prime or not.
    """
    m = [[int(x) for x in row] for row in block]
    n = len(m)
    if n == 0:
        return 1 % b
    sign = 1
    prev = 1
    for k in range(n - 1):
        if m[k][k] == 0:
            swap = next((i for i in range(k + 1, n) if m[i][k] != 0), None)
            if swap is None:
                return 0
            m[k], m[swap] = m[swap], m[k]
            sign = -sign
        for i in range(k + 1, n):
            for j in range(k + 1, n):
                m[i][j] = (m[i][j] * m[k][k] - m[i][k] * m[k][j]) // prev
        prev = m[k][k]
    return (sign * m[n - 1][n - 1]) % b


class GeneratorMatrix:
    """
    Generator matrix of one coordinate of a digital net or sequence.

    Parameters
    ----------
    columns : array_like
        Integer matrix of shape (r, k) with entries in {0, ..., b-1}.
    base : int
        Base b >= 2.
    precision : int, optional
        Number of output digits r. Defaults to the number of rows of
        `columns`; when larger, rows are padded with zeros.
    column_source : callable, optional
        ``column_source(c)`` returns column c as an array of length r. It
        is called by :meth:`grow_columns` only for columns not yet stored.

    Raises
    ------
    InvalidConstruction
        If b < 2, if an entry lies outside Z_b, or if r < k.

    Examples
    --------
    >>> C = GeneratorMatrix.identity(3, 3, 2)
    >>> C.apply([1, 1, 0])
    array([1, 1, 0])
    """

    def __init__(
        self,
        columns,
        base: int,
        precision: Optional[int] = None,
        column_source: Optional[ColumnSource] = None,
    ):
        if int(base) != base or base < 2:
            raise InvalidConstruction(f"Base must be an integer >= 2, got {base}")
        self.base = int(base)

        cols = np.asarray(columns, dtype=np.int64)
        if cols.ndim != 2:
            raise InvalidConstruction(
                f"Generator matrix must be 2-dimensional, got shape {cols.shape}"
            )
        r = cols.shape[0] if precision is None else int(precision)
        if r < cols.shape[0]:
            raise InvalidConstruction(
                f"Precision r={r} is smaller than the {cols.shape[0]} rows given"
            )
        if r < cols.shape[1]:
            raise InvalidConstruction(
                f"Precision r={r} must be >= number of columns k={cols.shape[1]}"
            )
        if r > cols.shape[0]:
            pad = np.zeros((r - cols.shape[0], cols.shape[1]), dtype=np.int64)
            cols = np.vstack([cols, pad])
        self._check_entries(cols)

        self._columns = cols
        self._columns.setflags(write=False)
        self.column_source = column_source

    def _check_entries(self, cols: np.ndarray) -> None:
        if cols.size and (cols.min() < 0 or cols.max() >= self.base):
            raise InvalidConstruction(f"Generator matrix entries must lie in Z_{self.base}")

    @property
    def num_rows(self) -> int:
        """Output precision r."""
        return self._columns.shape[0]

    @property
    def num_columns(self) -> int:
        """Number k of input digits currently supported."""
        return self._columns.shape[1]

    @property
    def columns(self) -> np.ndarray:
        """Read-only (r, k) view of the matrix."""
        return self._columns

    def column(self, c: int) -> np.ndarray:
        return self._columns[:, c]

    def apply(self, digits) -> np.ndarray:
        """
        Multiply an input digit vector by the matrix over Z_b.

        Parameters
        ----------
        digits : array_like
            Input digits a_0, ..., a_{m-1}, least significant first, with
            m <= k. Missing high digits are taken as zero.

        Returns
        -------
        np.ndarray
            Output digits y_0, ..., y_{r-1}.
        """
        a = np.asarray(digits, dtype=np.int64)
        m = a.shape[0]
        if m > self.num_columns:
            raise OutOfRange(
                f"Digit vector of length {m} exceeds the {self.num_columns} "
                "columns of the generator matrix"
            )
        return (self._columns[:, :m] @ a) % self.base

    def grow_columns(self, new_count: int) -> None:
        """
        Append columns until the matrix has `new_count` of them.

        Existing columns are left untouched. Shrinking is a no-op.

        Raises
        ------
        InvalidConstruction
            If the matrix has no column source.
        OutOfRange
            If `new_count` exceeds the output precision r.
        """
        k = self.num_columns
        if new_count <= k:
            return
        if self.column_source is None:
            raise InvalidConstruction(
                "Generator matrix has a fixed number of columns and cannot grow"
            )
        if new_count > self.num_rows:
            raise OutOfRange(
                f"Cannot grow to {new_count} columns with precision r={self.num_rows}"
            )

        new_cols = np.empty((self.num_rows, new_count - k), dtype=np.int64)
        for c in range(k, new_count):
            col = np.asarray(self.column_source(c), dtype=np.int64)
            if col.shape != (self.num_rows,):
                raise InvalidConstruction(
                    f"Column source returned shape {col.shape}, expected ({self.num_rows},)"
                )
            new_cols[:, c - k] = col
        self._check_entries(new_cols)

        logger.debug("Growing generator matrix from %d to %d columns", k, new_count)
        cols = np.hstack([self._columns, new_cols])
        cols.setflags(write=False)
        self._columns = cols

    def is_nonsingular(self) -> bool:
        """
        True if the leading k x k block is invertible over Z_b.

        This holds exactly when its determinant is a unit modulo b, and
        guarantees that the b^k truncated outputs are a permutation of
        {0, 1/b^k, ..., (b^k - 1)/b^k}.
        """
        k = self.num_columns
        det = determinant_mod(self._columns[:k, :k], self.base)
        return gcd(det, self.base) == 1

    def left_multiply(self, L: np.ndarray) -> "GeneratorMatrix":
        """
        Return the matrix L C (mod b) as a new generator matrix.

        Columns grown later through the column source are transformed the
        same way. `self` is not modified.
        """
        L = np.asarray(L, dtype=np.int64)
        if L.shape != (self.num_rows, self.num_rows):
            raise InvalidConstruction(
                f"Left factor must have shape ({self.num_rows}, {self.num_rows}), got {L.shape}"
            )
        source = None
        if self.column_source is not None:
            inner = self.column_source
            b = self.base

            def source(c: int) -> np.ndarray:
                return (L @ np.asarray(inner(c), dtype=np.int64)) % b

        return GeneratorMatrix((L @ self._columns) % self.base, self.base,
                               column_source=source)

    def as_int_columns(self) -> list:
        """
        Pack each column into an integer, base 2 only.

        Row l is stored in bit r-1-l, so that an output integer Y stands for
        the fraction Y / 2^r.
        """
        if self.base != 2:
            raise InvalidConstruction("Integer packing requires base 2")
        r = self.num_rows
        weights = [1 << (r - 1 - l) for l in range(r)]
        return [
            sum(w for w, bit in zip(weights, self._columns[:, c]) if bit)
            for c in range(self.num_columns)
        ]

    @classmethod
    def identity(cls, k: int, r: Optional[int] = None, b: int = 2,
                 growable: bool = True) -> "GeneratorMatrix":
        """
        Identity generator matrix: output digit l equals input digit l.

        The resulting coordinate is the radical inverse of the index, that is
        the van der Corput sequence in base b. With `growable` the matrix can
        be extended up to r columns.
        """
        r = k if r is None else r
        if k < 0:
            raise InvalidConstruction(f"Number of columns must be >= 0, got {k}")
        if r < k:
            raise InvalidConstruction(f"Precision r={r} must be >= k={k}")
        cols = np.zeros((r, k), dtype=np.int64)
        cols[np.arange(k), np.arange(k)] = 1
        source = (lambda c: _unit_column(c, r)) if growable else None
        return cls(cols, b, column_source=source)

    @classmethod
    def reflected_identity(cls, k: int, r: Optional[int] = None,
                           b: int = 2) -> "GeneratorMatrix":
        """
        Anti-diagonal generator matrix: output digit l equals input digit k-1-l.

        Point i gets the value i / b^k, the points come out in natural
        ascending order. The matrix depends on k and cannot grow.
        """
        r = k if r is None else r
        if k < 0:
            raise InvalidConstruction(f"Number of columns must be >= 0, got {k}")
        if r < k:
            raise InvalidConstruction(f"Precision r={r} must be >= k={k}")
        cols = np.zeros((r, k), dtype=np.int64)
        cols[np.arange(k), np.arange(k)[::-1]] = 1
        return cls(cols, b)

    def __eq__(self, other) -> bool:
        if not isinstance(other, GeneratorMatrix):
            return NotImplemented
        return self.base == other.base and np.array_equal(self._columns, other._columns)

    __hash__ = None

    def __repr__(self) -> str:
        return (f"GeneratorMatrix(base={self.base}, r={self.num_rows}, "
                f"k={self.num_columns}, growable={self.column_source is not None})")
