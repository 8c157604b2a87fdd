import numpy as np
from numpy.testing import assert_equal
from pytest import raises as assert_raises

from hups.exceptions import UnsupportedRandomization
from hups.generator_matrix import GeneratorMatrix
from hups.digital_net import DigitalNet, DigitalNetBase2
from hups.cycle_based import CycleBasedPointSetBase2, KorobovCyclePointSet
from hups.halton import HaltonSequence
from hups.radical_inverse import digits_to_value, value_to_digits
from hups.randomization import (
    LeftMatrixScramble,
    RandomDigitalShift,
    RandomShift,
    RandomizationPipeline,
)
from hups.streams import NumpyRandomStream


def random_generator_matrix(rng, b, r, k):
    M = rng.integers(0, b, size=(r, k))
    M[:k, :k] = np.tril(M[:k, :k], -1)
    M[np.arange(k), np.arange(k)] = 1
    return M


class TestRandomization:
    def setup_method(self):
        rng = np.random.default_rng(3)
        mats = [random_generator_matrix(rng, 2, 16, 5) for _ in range(3)]
        self.net = DigitalNetBase2(mats)
        self.reference = self.net.points.copy()

    def test_clear_restores(self):
        columns = [m.columns.copy() for m in self.net.matrices]
        self.net.add_randomization(RandomDigitalShift(seed=1))
        self.net.add_randomization(LeftMatrixScramble(seed=2))
        self.net.add_randomization(RandomShift(seed=3))
        randomized = self.net.points
        assert not np.array_equal(randomized, self.reference)
        assert np.all((randomized >= 0) & (randomized < 1))

        for m, before in zip(self.net.matrices, columns):
            assert_equal(m.columns, before)

        self.net.clear_randomizations()
        assert_equal(len(self.net.randomizations), 0)
        assert_equal(self.net.points, self.reference)

    def test_digital_shift_twice_is_identity(self):
        shift = RandomDigitalShift(seed=5)
        self.net.add_randomization(shift)
        assert not np.array_equal(self.net.points, self.reference)
        self.net.add_randomization(shift)
        assert_equal(self.net.points, self.reference)

    def test_digital_shift_order_b(self):
        # in base 3 the same shift pushed three times is the identity
        net = DigitalNet(3, [GeneratorMatrix.identity(3, 5, 3)])
        reference = net.points.copy()
        shift = RandomDigitalShift(seed=6)
        for _ in range(3):
            net.add_randomization(shift)
        assert_equal(net.points, reference)

    def test_digital_shift_preserves_net(self):
        net = DigitalNetBase2([GeneratorMatrix.identity(4, 4, 2)])
        net.add_randomization(RandomDigitalShift(seed=8))
        cells = np.floor(net.points[:, 0] * 16).astype(int)
        assert_equal(np.sort(cells), np.arange(16))

    def test_left_matrix_scramble_preserves_net(self):
        for b in (2, 3):
            net = DigitalNet(b, [GeneratorMatrix.identity(3, 6, b)])
            net.add_randomization(LeftMatrixScramble(seed=9))
            cells = np.floor(net.points[:, 0] * b**3 + 1e-9).astype(int)
            assert_equal(np.sort(cells), np.arange(b**3))

    def test_scramble_matrix(self):
        lms = LeftMatrixScramble(seed=0)
        L = lms.scramble_matrix(0, 3, 5)
        assert_equal(np.triu(L, 1), 0)
        assert np.all(np.isin(np.diag(L), [1, 2]))
        assert GeneratorMatrix(L, 3).is_nonsingular()
        # the draw of a coordinate is kept
        assert_equal(lms.scramble_matrix(0, 3, 5), L)

    def test_striped_scramble(self):
        L = LeftMatrixScramble(seed=0, striped=True).scramble_matrix(0, 2, 4)
        assert_equal(L, np.tril(np.ones((4, 4), dtype=int)))

    def test_random_shift(self):
        self.net.add_randomization(RandomShift(seed=7))
        stream = NumpyRandomStream(seed=7)
        shifts = np.array([stream.next_double() for _ in range(3)])
        expected = self.reference + shifts
        expected[expected >= 1] -= 1
        assert_equal(self.net.points, expected)

    def test_draws_in_coordinate_order(self):
        shift = RandomShift(seed=11)
        # coordinate 2 requested first still receives the third draw
        s2 = shift.draw(2)
        stream = NumpyRandomStream(seed=11)
        draws = [stream.next_double() for _ in range(3)]
        assert_equal(s2, draws[2])
        assert_equal(shift.draw(0), draws[0])

    def test_order_matters(self):
        other = DigitalNetBase2([m.columns for m in self.net.matrices])
        self.net.add_randomization(RandomShift(seed=1))
        self.net.add_randomization(RandomDigitalShift(seed=2))
        other.add_randomization(RandomDigitalShift(seed=2))
        other.add_randomization(RandomShift(seed=1))
        assert not np.array_equal(self.net.points, other.points)

    def test_digit_after_value(self):
        shift = RandomShift(seed=1)
        digital = RandomDigitalShift(seed=2)
        self.net.add_randomization(shift)
        self.net.add_randomization(digital)
        r = self.net.precision
        for i, j in [(0, 0), (3, 1), (17, 2)]:
            u = shift.transform_value(j, self.reference[i, j])
            y = (value_to_digits(u, 2, r) + digital.shift_digits(j, 2, r)) % 2
            assert_equal(self.net.get_coordinate(i, j), digits_to_value(y, 2))

    def test_randomize(self):
        self.net.add_randomization(RandomShift(seed=1))
        first = self.net.points
        self.net.randomize()
        second = self.net.points
        assert not np.array_equal(first, second)
        self.net.clear_randomizations()
        assert_equal(self.net.points, self.reference)

    def test_randomize_replaces(self):
        self.net.add_randomization(RandomShift(seed=1))
        self.net.add_randomization(RandomShift(seed=2))
        self.net.randomize(RandomDigitalShift(seed=3))
        pipeline = self.net.randomizations
        assert_equal(len(pipeline), 1)
        assert isinstance(list(pipeline)[0], RandomDigitalShift)

    def test_pop(self):
        first = RandomShift(seed=1)
        self.net.add_randomization(first)
        shifted = self.net.points
        second = RandomDigitalShift(seed=2)
        self.net.add_randomization(second)
        assert self.net.randomizations.pop() is second
        assert_equal(self.net.points, shifted)

    def test_unsupported(self):
        with assert_raises(UnsupportedRandomization):
            HaltonSequence(2).add_randomization(LeftMatrixScramble(seed=1))
        with assert_raises(UnsupportedRandomization):
            KorobovCyclePointSet(7, 3).add_randomization(RandomDigitalShift(seed=1))
        ps = CycleBasedPointSetBase2(lambda s: 5 * s % 16, 4)
        with assert_raises(UnsupportedRandomization):
            ps.add_randomization(LeftMatrixScramble(seed=1))
        # a rejected randomization is not pushed
        assert_equal(len(ps.randomizations), 0)

    def test_apply_point(self):
        ps = KorobovCyclePointSet(7, 3, dimension=3)
        raw = ps.get_point(2)
        ps.add_randomization(RandomShift(seed=4))
        pipeline = ps.randomizations
        assert isinstance(pipeline, RandomizationPipeline)
        assert_equal(pipeline.apply_point(raw), ps.get_point(2))

    def test_halton_digital_shift(self):
        seq = HaltonSequence(2)
        reference = seq.get_points(8)
        seq.add_randomization(RandomDigitalShift(seed=12))
        shifted = seq.get_points(8)
        assert not np.array_equal(shifted, reference)
        assert np.all((shifted[:, 0] >= 0) & (shifted[:, 0] < 1))
        cells = np.floor(shifted[:, 0] * 8).astype(int)
        assert_equal(np.sort(cells), np.arange(8))
        seq.clear_randomizations()
        assert_equal(seq.get_points(8), reference)

    def test_shared_stream(self):
        # two randomizations drawing from one stream take turns in push order
        stream = NumpyRandomStream(seed=5)
        a = RandomShift(stream)
        b = RandomShift(stream)
        a.draw(0)
        b.draw(0)
        check = NumpyRandomStream(seed=5)
        assert_equal(a.draw(0), check.next_double())
        assert_equal(b.draw(0), check.next_double())


class TestReplications:
    """Fresh randomizations pushed after a clear must always take effect."""

    def setup_method(self):
        self.net = DigitalNetBase2([GeneratorMatrix.identity(4, 16, 2)])

    def fresh_points(self, seed):
        net = DigitalNetBase2([GeneratorMatrix.identity(4, 16, 2)])
        net.add_randomization(RandomDigitalShift(seed=seed))
        return net.points

    def test_clear_then_push(self):
        previous = None
        for seed in range(10):
            self.net.clear_randomizations()
            self.net.add_randomization(RandomDigitalShift(seed=seed))
            points = self.net.points
            assert_equal(points, self.fresh_points(seed))
            if previous is not None:
                assert not np.array_equal(points, previous)
            previous = points

    def test_pop_then_push(self):
        self.net.add_randomization(RandomDigitalShift(seed=0))
        for seed in range(1, 6):
            self.net.randomizations.pop()
            self.net.add_randomization(RandomDigitalShift(seed=seed))
            assert_equal(self.net.points, self.fresh_points(seed))

    def test_live_iterator_follows_replications(self):
        it = self.net.iterator(order="gray")
        for seed in range(6):
            self.net.clear_randomizations()
            self.net.add_randomization(RandomDigitalShift(seed=seed))
            it.reset_start_stream()
            expected = self.fresh_points(seed)
            for pos in range(16):
                assert_equal(it.next_point(), expected[pos ^ (pos >> 1)])

    def test_token_changes_on_every_write(self):
        pipeline = self.net.randomizations
        tokens = [pipeline.token]
        pipeline.push(RandomDigitalShift(seed=1))
        tokens.append(pipeline.token)
        pipeline.clear()
        tokens.append(pipeline.token)
        pipeline.push(RandomDigitalShift(seed=2))
        tokens.append(pipeline.token)
        pipeline.randomize()
        tokens.append(pipeline.token)
        pipeline.pop()
        tokens.append(pipeline.token)
        assert_equal(len(set(tokens)), len(tokens))
