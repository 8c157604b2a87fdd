"""
Point Sets and Point Set Iterators
==================================

A point set is conceptually an n x t array of reals in [0, 1), where the
number of points n and the dimension t are either integers or infinite
(`math.inf`). Coordinates are computed on demand and never materialized
unless a finite block is requested explicitly.

Points are traversed with a `PointSetIterator`, a cursor over
(point index, coordinate index) that implements the `RandomStream`
capability: each call to `next_double` returns the next coordinate of the
current point, and moving to the next substream moves to the next point.
Code that consumes uniforms from a `RandomStream` therefore runs unchanged
on a point set.

Concurrency
-----------
A point set may be traversed by several iterators, from several threads,
as long as its randomization pipeline is not modified meanwhile. Iterators
never share cursor state.
"""

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional

from .exceptions import OutOfRange
from .randomization import Randomization, RandomizationPipeline
from .streams import RandomStream
from .utils import (
    compute_separation_radius_fast,
    format_size,
    is_finite,
    require_finite,
)


class PointSet(ABC):
    """
    Base class of all highly uniform point sets.

    Subclasses set `num_points` and `dimension` and implement
    `_raw_coordinate`, the deterministic value of coordinate j of point i.

    Attributes
    ----------
    num_points : int or float
        Number of points n, `math.inf` for a sequence.
    dimension : int or float
        Dimension t, `math.inf` when unbounded.
    digital : bool
        True for point sets defined by generator matrices.
    """

    digital = False

    def __init__(self, num_points, dimension):
        self.num_points = num_points
        self.dimension = dimension
        self._randomizations = RandomizationPipeline(self)

    @abstractmethod
    def _raw_coordinate(self, i: int, j: int) -> float:
        """Deterministic coordinate j of point i, without randomization."""

    def _compute_coordinate(self, i: int, j: int) -> float:
        return self._randomizations.apply(j, self._raw_coordinate(i, j))

    def _check_indices(self, i: int, j: int) -> None:
        if i < 0 or i >= self.num_points:
            raise OutOfRange(
                f"Point index {i} outside [0, {format_size(self.num_points)})"
            )
        if j < 0 or j >= self.dimension:
            raise OutOfRange(
                f"Coordinate index {j} outside [0, {format_size(self.dimension)})"
            )

    def get_coordinate(self, i: int, j: int) -> float:
        """
        Return coordinate j of point i, randomizations included.

        Raises
        ------
        OutOfRange
            If i or j lies outside the point set.
        """
        self._check_indices(i, j)
        return self._compute_coordinate(i, j)

    def get_point(self, i: int, d: Optional[int] = None) -> np.ndarray:
        """Return the first d coordinates of point i (all when d is None)."""
        d = require_finite(self.dimension, "dimension", d)
        return np.array([self.get_coordinate(i, j) for j in range(d)])

    def get_points(self, n: Optional[int] = None, d: Optional[int] = None) -> np.ndarray:
        """
        Materialize the first n points in their first d coordinates.

        Returns
        -------
        np.ndarray
            Array of shape (n, d) in [0, 1)^d.
        """
        n = require_finite(self.num_points, "number of points", n)
        d = require_finite(self.dimension, "dimension", d)
        out = np.zeros((n, d))
        it = self.iterator()
        for i in range(n):
            it.next_point(out[i])
        return out

    @property
    def points(self) -> np.ndarray:
        """
        The whole point set, for finite n and t.

        Returns
        -------
        np.ndarray
            Point set of shape (n, t) in [0, 1)^t.
        """
        return self.get_points()

    def iterator(self) -> "PointSetIterator":
        """Return a new iterator positioned on (0, 0)."""
        return PointSetIterator(self)

    def coordinate_base(self, j: int) -> Optional[int]:
        """Base of the digit expansion of coordinate j, None if it has none."""
        return None

    def coordinate_precision(self, j: int) -> Optional[int]:
        """Number of meaningful base-b digits of coordinate j."""
        return None

    @property
    def randomizations(self) -> RandomizationPipeline:
        """The randomization pipeline of this point set."""
        return self._randomizations

    def add_randomization(self, randomization: Randomization) -> "PointSet":
        """Push `randomization` onto the pipeline."""
        self._randomizations.push(randomization)
        return self

    def clear_randomizations(self) -> "PointSet":
        """Remove all randomizations."""
        self._randomizations.clear()
        return self

    def randomize(self, randomization: Optional[Randomization] = None) -> "PointSet":
        """
        Draw fresh randomness.

        With an argument, replaces the whole pipeline by `randomization`.
        Without, redraws every randomization already in the pipeline.
        """
        if randomization is not None:
            self._randomizations.clear()
            self._randomizations.push(randomization)
        else:
            self._randomizations.randomize()
        return self

    def separation_radius(self, n: Optional[int] = None, d: Optional[int] = None) -> float:
        """Compute the toroidal separation radius of the first n points."""
        return compute_separation_radius_fast(self.get_points(n, d), toroidal=True)

    def format_points(self, n: Optional[int] = None, d: Optional[int] = None) -> str:
        """Return the first n points in their first d coordinates as text."""
        pts = self.get_points(n, d)
        lines = [repr(self)]
        for i, row in enumerate(pts):
            lines.append(f"Point {i}: " + "  ".join(f"{u:.10f}" for u in row))
        return "\n".join(lines)

    def info(self) -> dict:
        """Return a dictionary with point set information."""
        return {
            "type": type(self).__name__,
            "num_points": self.num_points,
            "dimension": self.dimension,
            "randomizations": [type(r).__name__ for r in self._randomizations],
        }

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(n={format_size(self.num_points)}, "
                f"dim={format_size(self.dimension)})")


class PointSetIterator(RandomStream):
    """
    Cursor over the coordinates of the points of a point set.

    The cursor is the pair (point index, coordinate index), (0, 0) on
    creation. Substreams are points: `reset_next_substream` moves to the
    next point and `reset_start_substream` goes back to its first
    coordinate.

    Iterating in a for loop yields whole points and needs a finite
    dimension; it raises TypeError otherwise. Use ``next_point(d=...)`` on
    infinite-dimensional point sets.

    Parameters
    ----------
    point_set : PointSet
        The point set to traverse. Randomizations pushed on it apply to
        all of its iterators.

    Examples
    --------
    >>> it = point_set.iterator()
    >>> u = it.next_coordinate()      # coordinate 0 of point 0
    >>> p = it.next_point(d=3)        # coordinates 0..2 of point 0
    >>> it.cur_point_index
    1
    """

    def __init__(self, point_set: PointSet):
        self.point_set = point_set
        self._cur_point = 0
        self._cur_coord = 0

    @property
    def cur_point_index(self) -> int:
        return self._cur_point

    @property
    def cur_coord_index(self) -> int:
        return self._cur_coord

    def _coordinate(self, i: int, j: int) -> float:
        return self.point_set._compute_coordinate(i, j)

    def _check_cursor(self) -> None:
        if self._cur_point >= self.point_set.num_points:
            raise OutOfRange(
                f"Iterator is past the last of the "
                f"{format_size(self.point_set.num_points)} points"
            )
        if self._cur_coord >= self.point_set.dimension:
            raise OutOfRange(
                f"Iterator is past the last of the "
                f"{format_size(self.point_set.dimension)} coordinates"
            )

    def next_coordinate(self) -> float:
        """Return the coordinate under the cursor, then move to the next one."""
        self._check_cursor()
        u = self._coordinate(self._cur_point, self._cur_coord)
        self._cur_coord += 1
        return u

    def next_double(self) -> float:
        return self.next_coordinate()

    def next_coordinates(self, d: int) -> np.ndarray:
        """Return the next d coordinates of the current point."""
        out = np.empty(d)
        for idx in range(d):
            out[idx] = self.next_coordinate()
        return out

    next_array_of_double = next_coordinates

    def next_point(self, buffer: Optional[np.ndarray] = None, d: Optional[int] = None) -> np.ndarray:
        """
        Fill the coordinates 0, ..., d-1 of the current point, then move to
        coordinate 0 of the next point.

        Parameters
        ----------
        buffer : np.ndarray, optional
            Output array; its length gives d.
        d : int, optional
            Number of coordinates when no buffer is given. Defaults to the
            dimension of the point set.

        Returns
        -------
        np.ndarray
            The filled buffer.
        """
        if buffer is None:
            d = require_finite(self.point_set.dimension, "dimension", d)
            buffer = np.empty(d)
        self._cur_coord = 0
        for j in range(len(buffer)):
            buffer[j] = self.next_coordinate()
        self.reset_to_next_point()
        return buffer

    def reset_start_stream(self) -> None:
        """Return to (0, 0). Randomizations are left untouched."""
        self._cur_point = 0
        self._cur_coord = 0

    reset_to_start = reset_start_stream

    def reset_start_substream(self) -> None:
        self._cur_coord = 0

    reset_cur_coord_index = reset_start_substream

    def reset_next_substream(self) -> None:
        self._cur_point += 1
        self._cur_coord = 0

    reset_to_next_point = reset_next_substream

    def set_cursor(self, i: int, j: int = 0) -> None:
        """
        Move the cursor to coordinate j of point i.

        Raises
        ------
        OutOfRange
            If (i, j) lies outside the point set.
        """
        self.point_set._check_indices(i, j)
        self._cur_point = i
        self._cur_coord = j

    def set_cur_point_index(self, i: int) -> None:
        """Move to coordinate 0 of point i."""
        self.set_cursor(i, 0)

    def set_cur_coord_index(self, j: int) -> None:
        self.set_cursor(self._cur_point, j)

    def has_next_point(self) -> bool:
        return self._cur_point < self.point_set.num_points

    def has_next_coordinate(self) -> bool:
        return self._cur_coord < self.point_set.dimension

    def __iter__(self):
        if not is_finite(self.point_set.dimension):
            raise TypeError(
                "Cannot iterate over points of infinite dimension; "
                "use next_point(d=...) instead"
            )
        return self

    def __next__(self) -> np.ndarray:
        if not self.has_next_point():
            raise StopIteration
        return self.next_point()

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(point={self._cur_point}, "
                f"coord={self._cur_coord}, point_set={self.point_set!r})")
