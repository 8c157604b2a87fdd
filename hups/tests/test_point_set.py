import numpy as np
from numpy.testing import assert_equal, assert_allclose
from pytest import raises as assert_raises

from hups.exceptions import OutOfRange
from hups.cycle_based import KorobovCyclePointSet
from hups.digital_net import HammersleyNet, VanDerCorputSequence
from hups.randomization import RandomShift
from hups.streams import NumpyRandomStream, RandomStream


def mean_of_uniforms(stream, n):
    # consumes one uniform per substream, as a simulation would
    total = 0.0
    for _ in range(n):
        total += stream.next_double()
        stream.reset_next_substream()
    return total / n


class TestPointSetIterator:
    def setup_method(self):
        self.ps = HammersleyNet(3)

    def test_initial_cursor(self):
        it = self.ps.iterator()
        assert_equal(it.cur_point_index, 0)
        assert_equal(it.cur_coord_index, 0)

    def test_next_coordinate(self):
        it = self.ps.iterator()
        assert_equal(it.next_coordinate(), self.ps.get_coordinate(0, 0))
        assert_equal(it.cur_coord_index, 1)
        assert_equal(it.next_double(), self.ps.get_coordinate(0, 1))
        assert not it.has_next_coordinate()

    def test_next_point_moves_to_next_point(self):
        it = self.ps.iterator()
        it.next_coordinate()
        p = it.next_point()
        assert_equal(p, self.ps.get_point(0))
        assert_equal(it.cur_point_index, 1)
        assert_equal(it.cur_coord_index, 0)

    def test_next_point_buffer(self):
        it = self.ps.iterator()
        buf = np.empty(1)
        out = it.next_point(buf)
        assert out is buf
        assert_equal(buf[0], 0)
        assert_equal(it.next_point(d=1), [self.ps.get_coordinate(1, 0)])

    def test_next_coordinates(self):
        it = self.ps.iterator()
        it.set_cursor(5)
        assert_equal(it.next_coordinates(2), self.ps.get_point(5))
        it.reset_start_substream()
        assert_equal(it.next_array_of_double(2), self.ps.get_point(5))

    def test_past_last_coordinate(self):
        it = self.ps.iterator()
        it.next_coordinate()
        it.next_coordinate()
        with assert_raises(OutOfRange):
            it.next_coordinate()
        it.reset_start_substream()
        assert_equal(it.next_coordinate(), 0)

    def test_past_last_point(self):
        it = self.ps.iterator()
        it.set_cursor(7, 0)
        assert_equal(it.next_point(), self.ps.get_point(7))
        assert not it.has_next_point()
        with assert_raises(OutOfRange):
            it.next_coordinate()
        with assert_raises(OutOfRange):
            it.next_point()
        it.reset_start_stream()
        assert_equal(it.next_point(), self.ps.get_point(0))

    def test_set_cursor(self):
        it = self.ps.iterator()
        it.set_cursor(6, 1)
        assert_equal(it.next_coordinate(), self.ps.get_coordinate(6, 1))
        it.set_cur_point_index(2)
        assert_equal((it.cur_point_index, it.cur_coord_index), (2, 0))
        it.set_cur_coord_index(1)
        assert_equal(it.cur_coord_index, 1)
        for i, j in [(8, 0), (0, 2), (-1, 0)]:
            with assert_raises(OutOfRange):
                it.set_cursor(i, j)

    def test_iterators_are_independent(self):
        it1 = self.ps.iterator()
        it2 = self.ps.iterator()
        for _ in range(3):
            it1.next_point()
        assert_equal(it2.next_point(), self.ps.get_point(0))
        assert_equal(it1.cur_point_index, 3)
        assert_equal(it2.cur_point_index, 1)

    def test_reset_keeps_randomization(self):
        self.ps.add_randomization(RandomShift(seed=1))
        it = self.ps.iterator()
        first = it.next_point()
        it.reset_start_stream()
        assert_equal(it.next_point(), first)
        assert_equal(first, self.ps.get_point(0))

    def test_python_iteration(self):
        points = list(self.ps.iterator())
        assert_equal(len(points), 8)
        assert_equal(np.array(points), self.ps.points)

    def test_python_iteration_needs_finite_dimension(self):
        it = KorobovCyclePointSet(7, 3).iterator()
        with assert_raises(TypeError):
            iter(it)
        # explicit point lengths still work
        assert_equal(it.next_point(d=2), [0, 0])

    def test_substitutes_for_random_stream(self):
        it = VanDerCorputSequence(2, precision=20).iterator()
        assert isinstance(it, RandomStream)
        # the first 1024 points are a permutation of {m / 1024}
        assert_allclose(mean_of_uniforms(it, 1024), 1023 / 2048)

        stream = NumpyRandomStream(seed=1)
        assert_allclose(mean_of_uniforms(stream, 1024), 0.5, atol=0.05)

    def test_next_int(self):
        it = self.ps.iterator()
        it.set_cursor(3, 0)
        # coordinate 0 of point 3 is 3/8
        assert_equal(it.next_int(0, 7), 3)


class TestPointSet:
    def setup_method(self):
        self.ps = HammersleyNet(2)

    def test_points(self):
        assert_equal(self.ps.points, [[0, 0], [0.25, 0.5], [0.5, 0.25], [0.75, 0.75]])
        assert_equal(self.ps.get_points(2, 1), [[0], [0.25]])

    def test_get_point(self):
        assert_equal(self.ps.get_point(1), [0.25, 0.5])
        assert_equal(self.ps.get_point(1, d=1), [0.25])

    def test_separation_radius(self):
        assert_allclose(self.ps.separation_radius(), np.sqrt(2) / 8)

    def test_format_points(self):
        text = self.ps.format_points()
        assert "Point 0:" in text
        assert "Point 3:" in text

    def test_info(self):
        info = self.ps.info()
        assert_equal(info["num_points"], 4)
        assert_equal(info["dimension"], 2)
        assert_equal(info["randomizations"], [])
        self.ps.add_randomization(RandomShift(seed=0))
        assert_equal(self.ps.info()["randomizations"], ["RandomShift"])

    def test_repr(self):
        assert "HammersleyNet" in repr(self.ps)
        assert "point=0" in repr(self.ps.iterator())
