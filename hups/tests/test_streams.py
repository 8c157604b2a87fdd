import numpy as np
from numpy.testing import assert_equal
from pytest import raises as assert_raises

from hups.streams import NumpyRandomStream, RandomStream


class TestNumpyRandomStream:
    def setup_method(self):
        self.stream = NumpyRandomStream(seed=3)

    def test_abstract(self):
        with assert_raises(TypeError):
            RandomStream()

    def test_reset_start_stream(self):
        first = self.stream.next_array_of_double(5)
        assert_equal(first.shape, (5,))
        self.stream.reset_next_substream()
        self.stream.next_double()
        self.stream.reset_start_stream()
        assert_equal(self.stream.next_array_of_double(5), first)

    def test_substreams(self):
        first = self.stream.next_double()
        self.stream.reset_next_substream()
        second = self.stream.next_double()
        assert first != second
        self.stream.next_double()
        self.stream.reset_start_substream()
        assert_equal(self.stream.next_double(), second)

    def test_same_seed(self):
        other = NumpyRandomStream(seed=3)
        assert_equal(other.next_array_of_double(4), self.stream.next_array_of_double(4))

    def test_next_int_bounds(self):
        values = [self.stream.next_int(0, 3) for _ in range(200)]
        assert min(values) >= 0
        assert max(values) == 3

    def test_unit_interval(self):
        values = self.stream.next_array_of_double(1000)
        assert np.all((values >= 0) & (values < 1))
