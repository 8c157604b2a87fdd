"""
Utility functions shared by the point set constructions.
"""

import math
import numbers
import numpy as np
from math import gcd
from functools import reduce
from typing import List, Optional

# Output precision of base-2 constructions: 31 bits, as for 32-bit signed
# integer direction numbers.
DEFAULT_PRECISION_BASE2 = 31

# Number of bits of a double mantissa.
MANTISSA_BITS = 53


def generate_primes(n_max: int, n_min: int = 2) -> List[int]:
    """
    Generate all prime numbers in the range [n_min, n_max] using Sieve of Eratosthenes.

    Parameters
    ----------
    n_max : int
        Upper bound for prime search.
    n_min : int, optional
        Lower bound for prime search (default: 2).

    Returns
    -------
    List[int]
        List of prime numbers in [n_min, n_max].

    Examples
    --------
    >>> generate_primes(20)
    [2, 3, 5, 7, 11, 13, 17, 19]
    >>> generate_primes(20, 10)
    [11, 13, 17, 19]
    """
    if n_max < 2:
        return []

    sieve = [True] * (n_max + 1)
    sieve[0] = sieve[1] = False

    for i in range(2, int(n_max**0.5) + 1):
        if sieve[i]:
            for j in range(i*i, n_max + 1, i):
                sieve[j] = False

    return [i for i in range(max(2, n_min), n_max + 1) if sieve[i]]


def first_primes(count: int) -> List[int]:
    """
    Return the `count` smallest primes.

    The sieve bound is doubled until enough primes are found.
    """
    n_max = 16
    primes = generate_primes(n_max)
    while len(primes) < count:
        n_max *= 2
        primes = generate_primes(n_max)
    return primes[:count]


def multi_gcd(numbers: List[int]) -> int:
    """
    Compute the greatest common divisor of a list of integers.

    Parameters
    ----------
    numbers : List[int]
        List of integers.

    Returns
    -------
    int
        GCD of all numbers in the list.
    """
    return reduce(gcd, numbers)


def units_mod(b: int) -> List[int]:
    """Elements of Z_b with a multiplicative inverse."""
    return [u for u in range(1, b) if gcd(u, b) == 1]


def default_precision(b: int) -> int:
    """
    Number of base-b output digits used when none is given.

    The largest r with b^r <= 2^53, so that every r-digit fraction is an
    exact double. Base 2 uses DEFAULT_PRECISION_BASE2.
    """
    if b == 2:
        return DEFAULT_PRECISION_BASE2
    r = int(MANTISSA_BITS * math.log(2) / math.log(b))
    while b**r > 2**MANTISSA_BITS:
        r -= 1
    return max(r, 1)


def num_digits(n: int, b: int) -> int:
    """Smallest k with b^k >= n."""
    k = 0
    power = 1
    while power < n:
        power *= b
        k += 1
    return k


def check_random_state(seed=None):
    """
    Turn `seed` into a `numpy.random.Generator` instance.

    Parameters
    ----------
    seed : {None, int, `numpy.random.Generator`}, optional
        If `seed` is None or an int, a new ``Generator`` is created with
        `seed`. A ``Generator`` instance is returned unchanged.

    Returns
    -------
    numpy.random.Generator
    """
    if seed is None or isinstance(seed, (numbers.Integral, np.integer)):
        return np.random.default_rng(seed)
    elif isinstance(seed, np.random.Generator):
        return seed
    else:
        raise ValueError(
            "%r cannot be used to seed a numpy.random.Generator"
            " instance" % seed
        )


def compute_separation_radius(points: np.ndarray, toroidal: bool = False) -> float:
    """
    Compute the separation radius (half of the minimum pairwise distance).

    The separation radius is defined as:
        q(P) = (1/2) * min_{i != j} ||x_i - x_j||

    For point sets on [0,1]^d with periodic boundary conditions (toroidal),
    we use the toroidal distance.

    Parameters
    ----------
    points : np.ndarray
        Point set of shape (n, d).
    toroidal : bool, optional
        If True, use toroidal (periodic) distance on [0,1]^d (default: False).

    Returns
    -------
    float
        Separation radius of the point set.

    Notes
    -----
    Time complexity: O(n^2 * d), memory O(n * d).
    """
    n = points.shape[0]
    if n < 2:
        return np.inf

    min_dist_sq = np.inf
    for i in range(n - 1):
        diff = np.abs(points[i + 1:] - points[i])
        if toroidal:
            # Toroidal distance: min(|x|, 1-|x|) for each coordinate
            diff = np.minimum(diff, 1.0 - diff)
        dist_sq = np.min(np.sum(diff**2, axis=1))
        if dist_sq < min_dist_sq:
            min_dist_sq = dist_sq

    return 0.5 * np.sqrt(min_dist_sq)


def compute_separation_radius_fast(points: np.ndarray, toroidal: bool = False) -> float:
    """
    Compute separation radius using vectorized operations.

    More memory-intensive; falls back to :func:`compute_separation_radius`
    for n > 5000.
    """
    n = points.shape[0]
    if n < 2:
        return np.inf

    if n > 5000:
        return compute_separation_radius(points, toroidal)

    diff = points[:, np.newaxis, :] - points[np.newaxis, :, :]

    if toroidal:
        diff = np.abs(diff)
        diff = np.minimum(diff, 1.0 - diff)

    dist_sq = np.sum(diff**2, axis=2)
    np.fill_diagonal(dist_sq, np.inf)

    return 0.5 * np.sqrt(np.min(dist_sq))


def is_finite(size) -> bool:
    """True for an integer size, False for math.inf."""
    return size != math.inf


def format_size(size) -> str:
    return "inf" if not is_finite(size) else str(size)


def require_finite(size, what: str, given: Optional[int] = None) -> int:
    """
    Resolve a block size: `given` if provided, else the finite `size`.
    """
    if given is not None:
        return int(given)
    if not is_finite(size):
        raise ValueError(f"{what} is infinite; pass it explicitly")
    return int(size)
