"""Tests for the seeded Alea PRNG helpers."""

import pytest

from py_civmap.core.alea_prng import AleaPRNG
from py_civmap.utils.random import get_prng, set_random_seed


class TestAleaPRNG:
    """Test reproducibility and the integer helpers."""

    def test_same_seed_same_stream(self):
        a = AleaPRNG("42")
        b = AleaPRNG("42")
        assert [a.random() for _ in range(20)] == [b.random() for _ in range(20)]

    def test_different_seeds_differ(self):
        a = AleaPRNG("1")
        b = AleaPRNG("2")
        assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]

    def test_random_in_unit_interval(self):
        prng = AleaPRNG("unit")
        for _ in range(1000):
            value = prng.random()
            assert 0.0 <= value < 1.0

    def test_gen_range_bounds(self):
        prng = AleaPRNG("range")
        values = {prng.gen_range(3, 7) for _ in range(500)}
        assert values == {3, 4, 5, 6}

    def test_gen_range_inclusive_bounds(self):
        prng = AleaPRNG("inclusive")
        values = {prng.gen_range_inclusive(0, 2) for _ in range(500)}
        assert values == {0, 1, 2}

    def test_empty_range_raises(self):
        prng = AleaPRNG("empty")
        with pytest.raises(ValueError):
            prng.gen_range(5, 5)

    def test_each_draw_consumes_one_value(self):
        prng = AleaPRNG("count")
        prng.gen_range(0, 10)
        prng.gen_bool(0.5)
        prng.choice([1, 2, 3])
        assert prng.call_count == 3

    def test_shuffle_is_a_permutation(self):
        prng = AleaPRNG("shuffle")
        items = list(range(30))
        prng.shuffle(items)
        assert sorted(items) == list(range(30))
        assert items != list(range(30))

    def test_sample_distinct(self):
        prng = AleaPRNG("sample")
        picked = prng.sample(range(10), 4)
        assert len(picked) == 4
        assert len(set(picked)) == 4
        assert sorted(prng.sample([1, 2], 5)) == [1, 2]

    def test_choice_on_empty_sequence(self):
        with pytest.raises(IndexError):
            AleaPRNG("choice").choice([])

    def test_weighted_index_skips_zero_weights(self):
        prng = AleaPRNG("weights")
        picks = {prng.weighted_index([0, 3, 0, 1]) for _ in range(200)}
        assert picks <= {1, 3}
        assert 1 in picks

    def test_weighted_index_requires_positive_weight(self):
        with pytest.raises(ValueError):
            AleaPRNG("weights").weighted_index([0, 0])

    def test_set_random_seed_resets_shared_stream(self):
        first = set_random_seed(7)
        value = first.random()
        second = set_random_seed(7)
        assert get_prng() is second
        assert second.random() == value
