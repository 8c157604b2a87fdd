"""
Cycle-Based Point Sets
======================

A deterministic recurrence s_{j+1} = f(s_j) over a finite state space S,
with an output function g: S -> [0, 1), defines the point set

    P = { (g(s_0), g(s_1), g(s_2), ...) : s_0 in S },

one infinite-dimensional point per initial state. When f is a permutation
of S its orbits are cycles that partition S; each point replays the cycle
of its initial state periodically, so the whole set is described by the
list of cycles.

Korobov lattice rules are the classical example: with f(x) = a x mod N and
g(x) = x / N, the point started at state k is

    ({k/N}, {k a/N}, {k a^2/N}, ...),

the k-th point of the Korobov lattice with generating vector
(1, a, a^2, ...) mod N.

References
----------
[1] L'Ecuyer, P. and Lemieux, C. (2000). Variance reduction via lattice
    rules. Management Science, 46(9).
[2] Korobov, N.M. (1959). The approximate computation of multiple integrals.
"""

import bisect
import logging
import math
import numpy as np
from typing import Callable, Hashable, Iterable, List, Optional, Tuple

from .exceptions import InvalidConstruction
from .point_set import PointSet, PointSetIterator
from .utils import multi_gcd

logger = logging.getLogger(__name__)

STORAGE_MODES = ("outputs", "states")


class CycleBasedPointSet(PointSet):
    """
    Point set built from the cycles of a permutation of a finite state space.

    Point i is the i-th state in cycle order (cycles in discovery order,
    each starting from its smallest-position state); coordinate j of that
    point is the output of its j-th successor, wrapping modulo the cycle
    length.

    Parameters
    ----------
    states : iterable
        The finite state space, hashable states.
    transition : callable
        Transition function f; must map the state space onto itself
        bijectively.
    output : callable, optional
        Output function g with values in [0, 1). Defaults to ``float``.
    store : str, optional
        "outputs" precomputes g over every cycle (default); "states" keeps
        the states and applies g on demand.
    dimension : int or float, optional
        Number of coordinates per point (default: math.inf).
    verbose : bool, optional
        If True, print progress information (default: False).

    Raises
    ------
    InvalidConstruction
        If the state space is empty or `transition` is not a permutation of
        it (leaves the space, or merges two orbits).

    Examples
    --------
    >>> ps = CycleBasedPointSet(range(7), lambda x: 3 * x % 7, lambda x: x / 7)
    >>> ps.cycle_lengths
    [1, 6]
    """

    def __init__(
        self,
        states: Iterable[Hashable],
        transition: Callable,
        output: Optional[Callable] = None,
        store: str = "outputs",
        dimension=math.inf,
        verbose: bool = False,
    ):
        if store not in STORAGE_MODES:
            raise ValueError(
                f"Invalid storage mode '{store}'. Must be one of {STORAGE_MODES}"
            )
        self.store = store
        self.transition = transition
        self.output = output if output is not None else float
        self.verbose = verbose

        states = list(states)
        if not states:
            raise InvalidConstruction("The state space is empty")

        self._cycles, self._location = self._find_cycles(states)
        lengths = [len(cycle) for cycle in self._cycles]
        self._starts = [0]
        for length in lengths[:-1]:
            self._starts.append(self._starts[-1] + length)
        self._lengths = lengths

        if store == "outputs":
            self._values = [
                np.array([self.output(s) for s in cycle], dtype=np.float64)
                for cycle in self._cycles
            ]
        else:
            self._values = None

        super().__init__(len(states), dimension)

    def _find_cycles(self, states: List[Hashable]):
        """
        Partition the state space into the cycles of the transition.

        Every state is appended to exactly one cycle, so the loop performs
        |S| transitions in total.

        Returns
        -------
        cycles : list of list
            The cycles, in discovery order.
        location : dict
            Maps each state to (cycle index, position in cycle).
        """
        space = set(states)
        if len(space) != len(states):
            raise InvalidConstruction("The state space contains duplicated states")

        cycles = []
        location = {}
        for s0 in states:
            if s0 in location:
                continue
            cycle = [s0]
            location[s0] = (len(cycles), 0)
            s = self.transition(s0)
            while s != s0:
                if s not in space:
                    raise InvalidConstruction(
                        f"Transition maps state {cycle[-1]!r} outside the state space"
                    )
                if s in location:
                    raise InvalidConstruction(
                        f"Transition is not a permutation: state {s!r} is reached twice"
                    )
                location[s] = (len(cycles), len(cycle))
                cycle.append(s)
                s = self.transition(s)
            cycles.append(cycle)

            if self.verbose:
                print(f"  Cycle {len(cycles) - 1}: length {len(cycle)}, "
                      f"{len(location)}/{len(states)} states visited")

        logger.debug("Found %d cycles over %d states", len(cycles), len(states))
        if self.verbose:
            print(f"Found {len(cycles)} cycles over {len(states)} states")
        return cycles, location

    @property
    def num_cycles(self) -> int:
        return len(self._cycles)

    @property
    def cycle_lengths(self) -> List[int]:
        return list(self._lengths)

    @property
    def cycles(self) -> List[tuple]:
        """The cycles, as tuples of states."""
        return [tuple(cycle) for cycle in self._cycles]

    def cycle_of(self, state) -> Tuple[int, int]:
        """Return (cycle index, position in cycle) of `state`."""
        try:
            return self._location[state]
        except KeyError:
            raise InvalidConstruction(f"State {state!r} is not in the state space") from None

    def locate(self, i: int) -> Tuple[int, int]:
        """Return (cycle index, position in cycle) of the initial state of point i."""
        c = bisect.bisect_right(self._starts, i) - 1
        return c, i - self._starts[c]

    def state_of_point(self, i: int):
        c, pos = self.locate(i)
        return self._cycles[c][pos]

    def _cycle_value(self, c: int, pos: int) -> float:
        if self._values is not None:
            return float(self._values[c][pos])
        return self.output(self._cycles[c][pos])

    def _cycle_coordinate(self, c: int, pos: int, j: int) -> float:
        value = self._cycle_value(c, (pos + j) % self._lengths[c])
        return self._randomizations.apply(j, value)

    def _raw_coordinate(self, i: int, j: int) -> float:
        c, pos = self.locate(i)
        return self._cycle_value(c, (pos + j) % self._lengths[c])

    def _compute_coordinate(self, i: int, j: int) -> float:
        c, pos = self.locate(i)
        return self._cycle_coordinate(c, pos, j)

    def point_from_initial_state(self, s0) -> "CyclePoint":
        """
        Return the infinite point whose first coordinate comes from `s0`.

        Its period is the length of the cycle containing `s0`.
        """
        c, pos = self.cycle_of(s0)
        return CyclePoint(self, c, pos)

    def iterator(self) -> "CycleBasedPointSetIterator":
        return CycleBasedPointSetIterator(self)

    def info(self) -> dict:
        info = super().info()
        info.update({
            "store": self.store,
            "num_cycles": self.num_cycles,
            "cycle_lengths": self.cycle_lengths,
        })
        return info

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(n={self.num_points}, "
                f"cycles={self.num_cycles}, store='{self.store}')")


class CyclePoint:
    """
    Lazy infinite point replaying one cycle from a given state.

    Indexing gives coordinate j; iterating restarts from coordinate 0 each
    time. Randomizations of the point set apply.
    """

    def __init__(self, point_set: CycleBasedPointSet, cycle: int, position: int):
        self.point_set = point_set
        self.cycle = cycle
        self.position = position

    @property
    def period(self) -> int:
        return self.point_set.cycle_lengths[self.cycle]

    @property
    def initial_state(self):
        return self.point_set.cycles[self.cycle][self.position]

    def __getitem__(self, j: int) -> float:
        if j < 0:
            raise IndexError(f"Coordinate index must be non-negative, got {j}")
        return self.point_set._cycle_coordinate(self.cycle, self.position, j)

    def __iter__(self):
        j = 0
        while True:
            yield self[j]
            j += 1

    def take(self, d: int) -> np.ndarray:
        """First d coordinates."""
        return np.array([self[j] for j in range(d)])

    def __repr__(self) -> str:
        return f"CyclePoint(initial_state={self.initial_state!r}, period={self.period})"


class CycleBasedPointSetIterator(PointSetIterator):
    """Iterator locating the cycle of the current point once per point."""

    def __init__(self, point_set: CycleBasedPointSet):
        super().__init__(point_set)
        self._located = None
        self._where = None

    def _coordinate(self, i: int, j: int) -> float:
        if self._located != i:
            self._where = self.point_set.locate(i)
            self._located = i
        c, pos = self._where
        return self.point_set._cycle_coordinate(c, pos, j)


class CycleBasedPointSetBase2(CycleBasedPointSet):
    """
    Cycle-based point set over w-bit integer states.

    States are stored; the output of state s is s / 2^w. A random digital
    shift in base 2 is applied by exclusive-or on the stored state.

    Parameters
    ----------
    transition : callable
        Permutation of {0, ..., 2^w - 1}.
    resolution : int
        Number of bits w.
    states : iterable, optional
        State space, a subset of {0, ..., 2^w - 1} closed under
        `transition` (default: all of it).
    verbose : bool, optional
        If True, print progress information (default: False).
    """

    def __init__(self, transition: Callable[[int], int], resolution: int,
                 states: Optional[Iterable[int]] = None, verbose: bool = False):
        if resolution < 1:
            raise InvalidConstruction(f"Resolution must be >= 1 bit, got {resolution}")
        self.resolution = resolution
        self._scale = 1.0 / (1 << resolution)
        if states is None:
            states = range(1 << resolution)
        super().__init__(states, transition, output=self._state_value,
                         store="states", verbose=verbose)

    def _state_value(self, s: int) -> float:
        return s * self._scale

    def coordinate_base(self, j: int) -> int:
        return 2

    def coordinate_precision(self, j: int) -> int:
        return self.resolution

    def _cycle_coordinate(self, c: int, pos: int, j: int) -> float:
        s = self._cycles[c][(pos + j) % self._lengths[c]]
        if not self._randomizations:
            return s * self._scale
        A, shift, tail = self._randomizations.compile(j)
        if A is not None:
            return self._randomizations.apply(j, s * self._scale)
        if shift is not None:
            w = self.resolution
            s ^= sum(1 << (w - 1 - l) for l in range(w) if shift[l])
        return self._randomizations.apply_tail(j, s * self._scale, tail)


class KorobovCyclePointSet(CycleBasedPointSet):
    """
    Korobov lattice point set as a cycle-based point set.

    The recurrence x -> a x mod N over {0, ..., N-1} with output x / N
    yields, from initial state k, the point k (1, a, a^2, ...) / N mod 1.

    Parameters
    ----------
    N : int
        Number of points.
    a : int
        Multiplier, coprime with N so the recurrence is a permutation.
    dimension : int or float, optional
        Number of coordinates per point (default: math.inf).
    verbose : bool, optional
        If True, print progress information (default: False).

    Examples
    --------
    >>> ps = KorobovCyclePointSet(7, 3)
    >>> ps.cycles
    [(0,), (1, 3, 2, 6, 4, 5)]
    """

    def __init__(self, N: int, a: int, dimension=math.inf, verbose: bool = False):
        if N < 2:
            raise InvalidConstruction(f"Number of points must be >= 2, got {N}")
        if not 1 <= a < N or multi_gcd([N, a]) != 1:
            raise InvalidConstruction(
                f"Multiplier a={a} must lie in [1, N) and be coprime with N={N}"
            )
        self.N = N
        self.a = a
        super().__init__(range(N), self._next_state, output=self._state_value,
                         store="outputs", dimension=dimension, verbose=verbose)

    def _next_state(self, x: int) -> int:
        return self.a * x % self.N

    def _state_value(self, x: int) -> float:
        return x / self.N

    def generating_vector(self, d: int) -> np.ndarray:
        """
        Compute the generating vector (1, a, a^2, ..., a^{d-1}) mod N.

        Parameters
        ----------
        d : int
            Number of components.

        Returns
        -------
        np.ndarray
            Generating vector of shape (d,).
        """
        z = np.zeros(d, dtype=np.int64)
        power = 1
        for j in range(d):
            z[j] = power % self.N
            power = (power * self.a) % self.N
        return z

    def lattice_points(self, d: int) -> np.ndarray:
        """
        Korobov lattice points k z / N mod 1, k = 0, ..., N-1, in d dimensions.

        Row k equals the first d coordinates of the point started at state k.
        Randomizations are not applied.
        """
        z = self.generating_vector(d)
        k = np.arange(self.N)[:, np.newaxis]
        return (k * z % self.N) / self.N

    def info(self) -> dict:
        info = super().info()
        info.update({"N": self.N, "a": self.a})
        return info

    def __repr__(self) -> str:
        return (f"KorobovCyclePointSet(N={self.N}, a={self.a}, "
                f"cycles={self.num_cycles})")
