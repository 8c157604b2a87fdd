"""
Radical Inverse and Digit Expansions
====================================

Conversions between a non-negative integer, its base-b digit vector and the
fraction obtained by mirroring those digits around the radix point:

    i = a_0 + a_1 b + a_2 b^2 + ...   ->   phi_b(i) = a_0/b + a_1/b^2 + ...

The engines of this package use the least-significant-digit-first ordering
("lsd") for index digits. Both conversions take the ordering as an explicit
argument so other conventions can be selected per construction.

References
----------
[1] van der Corput, J.G. (1935). Verteilungsfunktionen.
[2] Niederreiter, H. (1992). Random Number Generation and Quasi-Monte Carlo
    Methods. SIAM.
"""

import numpy as np
from typing import Optional, Sequence

from .exceptions import InvalidConstruction, OutOfRange

DIGIT_ORDERS = ("lsd", "msd")


def _check_base(b: int) -> None:
    if int(b) != b or b < 2:
        raise InvalidConstruction(f"Base must be an integer >= 2, got {b}")


def _check_order(order: str) -> None:
    if order not in DIGIT_ORDERS:
        raise InvalidConstruction(
            f"Invalid digit order '{order}'. Must be one of {DIGIT_ORDERS}"
        )


def to_radical_inverse(i: int, b: int, precision: Optional[int] = None) -> float:
    """
    Compute the radical inverse of `i` in base `b`.

    Parameters
    ----------
    i : int
        Non-negative index.
    b : int
        Base, b >= 2.
    precision : int, optional
        Maximum number of digits of `i` taken into account. If None, all
        digits are used.

    Returns
    -------
    float
        phi_b(i) in [0, 1).

    Examples
    --------
    >>> [to_radical_inverse(i, 2) for i in range(4)]
    [0.0, 0.5, 0.25, 0.75]
    """
    _check_base(b)
    if i < 0:
        raise OutOfRange(f"Index must be non-negative, got {i}")

    i = int(i)
    # Accumulate the numerator exactly, divide once at the end.
    numerator = 0
    denominator = 1
    ndigits = 0
    while i > 0 and (precision is None or ndigits < precision):
        i, a = divmod(i, b)
        numerator = numerator * b + a
        denominator *= b
        ndigits += 1
    return numerator / denominator


def next_radical_inverse(x: float, b: int, eps: float = 1e-10) -> float:
    """
    Return phi_b(i + 1) from x = phi_b(i) without re-expanding i.

    Adds 1/b to x, propagating the carry towards smaller digit weights.

    Parameters
    ----------
    x : float
        phi_b(i), possibly carrying rounding error from earlier updates.
    b : int
        Base.
    eps : float, optional
        Tolerance of the carry decisions. The carry lands on the right
        digit as long as the error of `x` is below `eps` and `eps` is below
        half the smallest digit weight b^-m of i. The default covers about
        5e9 points.

    Notes
    -----
    Each update adds a rounding error of one unit in the last place. Use
    :class:`RadicalInverseCounter` for values identical to
    :func:`to_radical_inverse`.
    """
    _check_base(b)
    inv_b = 1.0 / b
    r = 1.0 - x - eps
    if inv_b < r:
        return x + inv_b
    # Digits equal to b-1 roll over to 0; the first smaller one increments.
    h = inv_b
    hh = h
    while h >= r:
        hh = h
        h *= inv_b
    return x + hh + h - 1.0


class RadicalInverseCounter:
    """
    Counter i with its exact radical inverse in base b.

    The digits of i are kept least significant first, together with the
    integer numerator of phi_b(i) = numerator / b^m, m the number of digits.
    `increment` propagates the carry through the digits, so `value` always
    equals ``to_radical_inverse(index, b)``.

    Examples
    --------
    >>> counter = RadicalInverseCounter(3, 2)
    >>> counter.increment()
    >>> counter.value
    0.125
    """

    def __init__(self, i: int, b: int):
        _check_base(b)
        if i < 0:
            raise OutOfRange(f"Index must be non-negative, got {i}")
        self.base = int(b)
        self.index = int(i)
        self.digits = []
        while i > 0:
            i, a = divmod(i, b)
            self.digits.append(int(a))
        # digit l has weight b^(m-1-l) in the numerator
        self.numerator = from_digits(self.digits, b, order="msd")

    @property
    def value(self) -> float:
        return self.numerator / self.base**len(self.digits)

    def increment(self) -> None:
        """Move to i + 1."""
        b = self.base
        m = len(self.digits)
        pos = 0
        while pos < m and self.digits[pos] == b - 1:
            self.digits[pos] = 0
            self.numerator -= (b - 1) * b**(m - 1 - pos)
            pos += 1
        if pos == m:
            self.digits.append(1)
            self.numerator = 1
        else:
            self.digits[pos] += 1
            self.numerator += b**(m - 1 - pos)
        self.index += 1

    def __repr__(self) -> str:
        return f"RadicalInverseCounter(index={self.index}, base={self.base})"


def to_digits(i: int, b: int, k: int, order: str = "lsd") -> np.ndarray:
    """
    Expand `i` into `k` base-b digits.

    Parameters
    ----------
    i : int
        Non-negative integer with i < b^k.
    b : int
        Base.
    k : int
        Length of the digit vector.
    order : str, optional
        "lsd" puts the digit of weight b^0 first (default), "msd" puts it
        last.

    Returns
    -------
    np.ndarray
        Integer digit vector of shape (k,).

    Raises
    ------
    OutOfRange
        If i < 0 or i >= b^k. Indices are never wrapped.
    """
    _check_base(b)
    _check_order(order)
    if k < 0:
        raise InvalidConstruction(f"Number of digits must be >= 0, got {k}")
    i = int(i)
    if i < 0 or i >= b**k:
        raise OutOfRange(f"Index {i} cannot be written with {k} digits in base {b}")

    digits = np.zeros(k, dtype=np.int64)
    for pos in range(k):
        i, digits[pos] = divmod(i, b)
    if order == "msd":
        digits = digits[::-1].copy()
    return digits


def from_digits(digits: Sequence[int], b: int, order: str = "lsd") -> int:
    """
    Inverse of :func:`to_digits`.

    Raises
    ------
    InvalidConstruction
        If a digit lies outside {0, ..., b-1}.
    """
    _check_base(b)
    _check_order(order)
    digits = [int(a) for a in digits]
    if order == "lsd":
        digits = digits[::-1]
    i = 0
    for a in digits:
        if not 0 <= a < b:
            raise InvalidConstruction(f"Digit {a} is not in Z_{b}")
        i = i * b + a
    return i


def digits_to_value(digits: Sequence[int], b: int) -> float:
    """
    Map output digits u_0, u_1, ... to sum_l u_l b^-(l+1).

    The first digit carries the weight 1/b.
    """
    # Horner from the least significant output digit keeps the result exact
    # for as long as b^len(digits) fits in the float mantissa.
    value = 0.0
    for u in reversed(digits):
        value = (value + int(u)) / b
    return value


def value_to_digits(u: float, b: int, r: int) -> np.ndarray:
    """
    Truncated base-b expansion of u in [0, 1), most significant digit first.

    Digits below the float resolution come out as zeros.
    """
    _check_base(b)
    digits = np.zeros(r, dtype=np.int64)
    for pos in range(r):
        u *= b
        a = int(u)
        # Guard against u * b rounding up to exactly b.
        if a >= b:
            a = b - 1
        digits[pos] = a
        u -= a
    return digits
