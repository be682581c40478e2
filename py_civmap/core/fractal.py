"""
Fractal height fields for map generation.

This module implements:
- CvFractal: a midpoint-refinement height field over a power-of-two source
  grid, sampled bilinearly onto the map
- Rift carving ("tectonic action") driven by a second fractal
- A weighted Voronoi ridge builder that stamps plate boundaries into the field
- Percentile lookup over the source grid

The source grid is stored as a NumPy array indexed ``[x, y]`` with one
extra column and row used only as interpolation support.
"""

import math
from enum import IntFlag
from typing import List, Optional, Sequence

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .hex_grid import HexGrid

logger = structlog.get_logger()


class FractalFlags(IntFlag):
    """Flags controlling fractal construction."""

    NONE = 0
    POLAR = 1  # Rows/columns at non-wrapping edges are pulled to 0
    PERCENT = 2  # get_height returns 0..99 instead of 0..255
    CENTER_RIFT = 4  # Damp a band through the centre of the world
    INVERT_HEIGHTS = 8  # Heights become 255 - h


DEFAULT_WIDTH_EXP = 7
DEFAULT_HEIGHT_EXP = 6

# Rift parameters used by tectonic_action
RIFT_DEPTH = 0
RIFT_HALF_WIDTH = 16

# Minimum hex distance between two ridge seeds
MIN_SEED_SPACING = 7


class CvFractal:
    """
    Reproducible coherent noise over a ``(2^width_exp + 1) x (2^height_exp + 1)`` grid.

    Build instances with :meth:`create`; the constructor only allocates.
    """

    def __init__(
        self,
        grid: HexGrid,
        flags: FractalFlags = FractalFlags.NONE,
        width_exp: int = DEFAULT_WIDTH_EXP,
        height_exp: int = DEFAULT_HEIGHT_EXP,
    ):
        self.map_width = grid.width
        self.map_height = grid.height
        self.flags = FractalFlags(flags)
        self.width_exp = width_exp
        self.height_exp = height_exp
        self.fractal_width = 1 << width_exp
        self.fractal_height = 1 << height_exp
        # Same layout and wrapping as the map, at fractal resolution
        self.fractal_grid = grid.with_size(self.fractal_width, self.fractal_height)
        self.array = np.zeros((self.fractal_width + 1, self.fractal_height + 1), dtype=np.int64)

    @classmethod
    def create(
        cls,
        rng: AleaPRNG,
        grid: HexGrid,
        grain: int,
        flags: FractalFlags = FractalFlags.NONE,
        width_exp: int = DEFAULT_WIDTH_EXP,
        height_exp: int = DEFAULT_HEIGHT_EXP,
        rifts: Optional["CvFractal"] = None,
    ) -> "CvFractal":
        """
        Create and initialise a fractal.

        Args:
            rng: Random stream
            grid: Map grid; its wrapping and orientation carry over to the fractal
            grain: Coarseness; lower values give smoother fields. Must lie in
                ``[max(min_exp - 7, 0), min_exp]`` where ``min_exp = min(width_exp, height_exp)``
            flags: Construction flags
            width_exp: Source grid width exponent
            height_exp: Source grid height exponent
            rifts: Optional fractal whose values carve a rift channel

        Returns:
            Initialised CvFractal
        """
        min_exp = min(width_exp, height_exp)
        assert max(min_exp - 7, 0) <= grain <= min_exp, (
            f"grain {grain} outside [{max(min_exp - 7, 0)}, {min_exp}]"
        )
        fractal = cls(grid, flags, width_exp, height_exp)
        fractal._init_internal(rng, grain, rifts)
        return fractal

    def _init_internal(self, rng: AleaPRNG, grain: int, rifts: Optional["CvFractal"]) -> None:
        fw = self.fractal_width
        fh = self.fractal_height
        wrap_x = self.fractal_grid.wrap_x
        wrap_y = self.fractal_grid.wrap_y
        arr = self.array

        smooth = min(self.width_exp, self.height_exp) - grain

        # Seed the coarse vertices; the wrap duplicate row/column is filled per pass
        hint_width = (fw >> smooth) + (0 if wrap_x else 1)
        hint_height = (fh >> smooth) + (0 if wrap_y else 1)
        for x in range(hint_width):
            for y in range(hint_height):
                arr[x << smooth, y << smooth] = rng.gen_range(0, 256)

        for pass_ in reversed(range(smooth)):
            if wrap_y:
                arr[:, fh] = arr[:, 0]
            elif self.flags & FractalFlags.POLAR:
                arr[:, 0] = 0
                arr[:, fh] = 0

            if wrap_x:
                arr[fw, :] = arr[0, :]
            elif self.flags & FractalFlags.POLAR:
                arr[0, :] = 0
                arr[fw, :] = 0

            if self.flags & FractalFlags.CENTER_RIFT:
                self._damp_center(wrap_x, wrap_y)

            screen = (1 << (pass_ + 1)) - 1
            randness = 1 << (7 - smooth + pass_)
            columns = (fw >> pass_) + (0 if wrap_x else 1)
            rows = (fh >> pass_) + (0 if wrap_y else 1)
            for x in range(columns):
                odd_x = (x << pass_) & screen != 0
                for y in range(rows):
                    odd_y = (y << pass_) & screen != 0
                    if odd_x and odd_y:
                        total = (
                            arr[(x - 1) << pass_, (y - 1) << pass_]
                            + arr[(x + 1) << pass_, (y - 1) << pass_]
                            + arr[(x - 1) << pass_, (y + 1) << pass_]
                            + arr[(x + 1) << pass_, (y + 1) << pass_]
                        ) >> 2
                    elif odd_x:
                        total = (arr[(x - 1) << pass_, y << pass_] + arr[(x + 1) << pass_, y << pass_]) >> 1
                    elif odd_y:
                        total = (arr[x << pass_, (y - 1) << pass_] + arr[x << pass_, (y + 1) << pass_]) >> 1
                    else:
                        # Set by an earlier pass
                        continue
                    total += rng.gen_range(-randness, randness)
                    arr[x << pass_, y << pass_] = min(max(int(total), 0), 255)

        if rifts is not None:
            assert rifts.width_exp == self.width_exp and rifts.height_exp == self.height_exp, (
                "Rift fractal must share the source grid size"
            )
            self.tectonic_action(rifts)

        if self.flags & FractalFlags.INVERT_HEIGHTS:
            self.array = 255 - self.array

    def _damp_center(self, wrap_x: bool, wrap_y: bool) -> None:
        fw = self.fractal_width
        fh = self.fractal_height
        arr = self.array
        if wrap_y:
            for y in range(fh // 6 + 1):
                factor = abs(fh // 12 - y) + 1
                arr[:, y] //= factor
                arr[:, fh // 2 + y] //= factor
        if wrap_x:
            for x in range(fw // 6 + 1):
                factor = abs(fw // 12 - x) + 1
                arr[x, :] //= factor
                arr[fw // 2 + x, :] //= factor

    def tectonic_action(self, rifts: "CvFractal") -> None:
        """
        Carve a rift channel along each wrapping axis.

        The rift centre line follows the rift fractal's column (or row) at
        three quarters of the grid, and values fall linearly towards
        RIFT_DEPTH at the centre line.
        """
        fw = self.fractal_width
        fh = self.fractal_height
        arr = self.array

        if self.fractal_grid.wrap_x:
            rift_x = (fw // 4) * 3
            for y in range(fh + 1):
                rift_value = int((int(rifts.array[rift_x, y]) - 128) * fw / 128 / 8)
                for x in range(RIFT_HALF_WIDTH):
                    right = (rift_value + x) % fw
                    left = (rift_value - x) % fw
                    arr[right, y] = (arr[right, y] * x + RIFT_DEPTH * (RIFT_HALF_WIDTH - x)) // RIFT_HALF_WIDTH
                    arr[left, y] = (arr[left, y] * x + RIFT_DEPTH * (RIFT_HALF_WIDTH - x)) // RIFT_HALF_WIDTH
            arr[fw, :] = arr[0, :]

        if self.fractal_grid.wrap_y:
            rift_y = (fh // 4) * 3
            for x in range(fw + 1):
                rift_value = int((int(rifts.array[x, rift_y]) - 128) * fh / 128 / 8)
                for y in range(RIFT_HALF_WIDTH):
                    top = (rift_value + y) % fh
                    bottom = (rift_value - y) % fh
                    arr[x, top] = (arr[x, top] * y + RIFT_DEPTH * (RIFT_HALF_WIDTH - y)) // RIFT_HALF_WIDTH
                    arr[x, bottom] = (arr[x, bottom] * y + RIFT_DEPTH * (RIFT_HALF_WIDTH - y)) // RIFT_HALF_WIDTH
            arr[:, fh] = arr[:, 0]

    def ridge_builder(
        self,
        rng: AleaPRNG,
        num_seeds: int,
        ridge_flags: int,
        blend_ridge: int,
        blend_fract: int,
    ) -> None:
        """
        Blend plate-boundary ridges into the field.

        Seeds are scattered over the source grid; every cell gets
        ``255 * closest / next_closest`` of its two nearest (weighted) seed
        distances, so values peak where two plates meet.

        Args:
            rng: Random stream
            num_seeds: Number of plates (at least 3 are used)
            ridge_flags: When non-zero, seed weakness and directional bias
                modify distances
            blend_ridge: Weight of the ridge value
            blend_fract: Weight of the existing fractal value
        """
        grid = self.fractal_grid
        fw = self.fractal_width
        fh = self.fractal_height
        num_seeds = max(num_seeds, 3)
        edge_count = len(grid.edge_directions)

        seeds = []
        while len(seeds) < num_seeds:
            x = rng.gen_range(0, fw)
            y = rng.gen_range(0, fh)
            weakness = rng.gen_range(0, 6)
            bias_edge = rng.gen_range(0, edge_count)
            strength = rng.gen_range(0, 4)
            cell = grid.offset_to_index(x, y)
            if any(grid.distance(cell, seed[0]) < MIN_SEED_SPACING for seed in seeds):
                continue
            seeds.append((cell, weakness, bias_edge, strength))

        xs, ys = np.meshgrid(np.arange(fw), np.arange(fh), indexing="ij")
        distances = np.empty((len(seeds), fw, fh), dtype=np.int64)
        for k, (cell, weakness, bias_edge, strength) in enumerate(seeds):
            seed_x, seed_y = grid.index_to_offset(cell)
            modified = grid.distance_array(xs, ys, seed_x, seed_y)
            if ridge_flags:
                modified = modified + weakness
                direction = grid.estimate_direction_array(xs, ys, seed_x, seed_y)
                modified = np.where(direction == bias_edge, modified - strength, modified)
                modified = np.where(direction == (bias_edge + 3) % 6, modified + strength, modified)
                modified = np.maximum(modified, 1)
            distances[k] = modified

        distances.sort(axis=0)
        closest = distances[0]
        next_closest = np.maximum(distances[1], 1)
        ridge = (255 * closest) // next_closest

        body = self.array[:fw, :fh]
        self.array[:fw, :fh] = (ridge * blend_ridge + body * blend_fract) // max(blend_ridge + blend_fract, 1)

    # Sampling

    def _sample_axes(self):
        fw = self.fractal_width
        fh = self.fractal_height
        src_x = (np.arange(self.map_width) + 0.5) * (fw / self.map_width) - 0.5
        src_y = (np.arange(self.map_height) + 0.5) * (fh / self.map_height) - 0.5
        diff_x = src_x - np.floor(src_x)
        diff_y = src_y - np.floor(src_y)
        index_x = np.minimum(np.clip(src_x, 0, None).astype(np.int64), fw - 1)
        index_y = np.minimum(np.clip(src_y, 0, None).astype(np.int64), fh - 1)
        return index_x, diff_x, index_y, diff_y

    def _finish(self, value):
        height = np.clip(value, 0.0, 255.0).astype(np.int64)
        if self.flags & FractalFlags.PERCENT:
            return (height * 100) >> 8
        return height

    def get_height(self, x: int, y: int) -> int:
        """Bilinearly sampled height at map offset ``(x, y)``."""
        assert 0 <= x < self.map_width and 0 <= y < self.map_height
        fw = self.fractal_width
        fh = self.fractal_height
        src_x = (x + 0.5) * (fw / self.map_width) - 0.5
        src_y = (y + 0.5) * (fh / self.map_height) - 0.5
        diff_x = src_x - math.floor(src_x)
        diff_y = src_y - math.floor(src_y)
        ix = min(int(max(src_x, 0.0)), fw - 1)
        iy = min(int(max(src_y, 0.0)), fh - 1)
        arr = self.array
        value = (
            (1.0 - diff_x) * (1.0 - diff_y) * arr[ix, iy]
            + diff_x * (1.0 - diff_y) * arr[ix + 1, iy]
            + (1.0 - diff_x) * diff_y * arr[ix, iy + 1]
            + diff_x * diff_y * arr[ix + 1, iy + 1]
        )
        return int(self._finish(np.array(value)))

    def get_height_map(self) -> np.ndarray:
        """
        Heights for every map tile at once.

        Returns:
            Flat int array indexed by tile index ``y * width + x``
        """
        ix, dx, iy, dy = self._sample_axes()
        arr = self.array.astype(np.float64)
        # Shapes: (W, 1) against (1, H)
        dx = dx[:, None]
        dy = dy[None, :]
        value = (
            (1.0 - dx) * (1.0 - dy) * arr[np.ix_(ix, iy)]
            + dx * (1.0 - dy) * arr[np.ix_(ix + 1, iy)]
            + (1.0 - dx) * dy * arr[np.ix_(ix, iy + 1)]
            + dx * dy * arr[np.ix_(ix + 1, iy + 1)]
        )
        return self._finish(value).T.reshape(-1)

    def get_height_from_percents(self, percents: Sequence[int]) -> List[int]:
        """
        Heights at the given percentiles of the source grid.

        The support row and column are excluded. Percentages are clamped to [0, 100].
        """
        values = np.sort(self.array[:-1, :-1], axis=None)
        last = len(values) - 1
        return [int(values[(last * min(max(p, 0), 100)) // 100]) for p in percents]
