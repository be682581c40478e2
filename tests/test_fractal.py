"""Tests for the fractal height fields."""

import numpy as np
import pytest

from py_civmap.config.map_parameters import HexOrientation, Offset
from py_civmap.core.alea_prng import AleaPRNG
from py_civmap.core.fractal import CvFractal, FractalFlags
from py_civmap.core.hex_grid import HexGrid


class TestCvFractal:
    """Test fractal construction, sampling and percentiles."""

    @pytest.fixture
    def grid(self):
        return HexGrid(40, 24, HexOrientation.FLAT, Offset.ODD, wrap_x=True, wrap_y=False)

    def test_height_map_covers_every_tile(self, grid):
        fractal = CvFractal.create(AleaPRNG("fractal"), grid, 3)
        heights = fractal.get_height_map()
        assert heights.shape == (grid.size,)
        assert heights.min() >= 0
        assert heights.max() <= 255

    def test_reproducible_from_seed(self, grid):
        a = CvFractal.create(AleaPRNG("same"), grid, 3).get_height_map()
        b = CvFractal.create(AleaPRNG("same"), grid, 3).get_height_map()
        c = CvFractal.create(AleaPRNG("other"), grid, 3).get_height_map()
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_single_tile_lookup_matches_height_map(self, grid):
        fractal = CvFractal.create(AleaPRNG("lookup"), grid, 2)
        heights = fractal.get_height_map()
        for x, y in ((0, 0), (13, 7), (39, 23), (20, 12)):
            assert fractal.get_height(x, y) == heights[y * grid.width + x]

    def test_percent_flag_scales_heights(self, grid):
        fractal = CvFractal.create(AleaPRNG("percent"), grid, 3, FractalFlags.PERCENT)
        heights = fractal.get_height_map()
        assert heights.max() <= 99

    def test_invert_heights(self, grid):
        plain = CvFractal.create(AleaPRNG("invert"), grid, 3)
        inverted = CvFractal.create(AleaPRNG("invert"), grid, 3, FractalFlags.INVERT_HEIGHTS)
        np.testing.assert_array_equal(inverted.array, 255 - plain.array)

    def test_percentiles_are_monotonic(self, grid):
        fractal = CvFractal.create(AleaPRNG("percentiles"), grid, 3)
        values = fractal.get_height_from_percents([0, 10, 50, 90, 100])
        assert values == sorted(values)
        assert values[0] == fractal.array[:-1, :-1].min()
        assert values[-1] == fractal.array[:-1, :-1].max()

    def test_percentiles_clamp_out_of_range(self, grid):
        fractal = CvFractal.create(AleaPRNG("clamp"), grid, 3)
        low, high = fractal.get_height_from_percents([-5, 150])
        assert (low, high) == tuple(fractal.get_height_from_percents([0, 100]))

    def test_grain_out_of_range(self, grid):
        with pytest.raises(AssertionError):
            CvFractal.create(AleaPRNG("grain"), grid, 9)

    def test_ridge_builder_stays_in_byte_range(self, grid):
        rng = AleaPRNG("ridges")
        fractal = CvFractal.create(rng, grid, 3)
        before = fractal.array.copy()
        fractal.ridge_builder(rng, 6, 1, 1, 2)
        assert fractal.array.min() >= 0
        assert fractal.array.max() <= 255
        assert not np.array_equal(before, fractal.array)

    def test_rift_fractal_carves_wrapping_axis(self, grid):
        rng = AleaPRNG("rift")
        rifts = CvFractal.create(rng, grid, 3)
        carved = CvFractal.create(rng, grid, 3, rifts=rifts)
        assert carved.array.min() == 0
