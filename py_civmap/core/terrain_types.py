"""
Terrain type generation.

This module implements:
- The continents fractal shared by every map type
- Fractal and Pangaea terrain type passes (water, flatland, hill, mountain)
- The wrap-alignment shift that moves the most water-heavy stripe to the map edge
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from ..config.map_parameters import SeaLevel, WorldAge, WorldSize
from .fractal import CvFractal
from .tile_map import TerrainType, TileMap

logger = structlog.get_logger()

CONTINENT_GRAIN = 2

CONTINENT_PLATES = {
    WorldSize.DUEL: 4,
    WorldSize.TINY: 8,
    WorldSize.SMALL: 16,
    WorldSize.STANDARD: 20,
    WorldSize.LARGE: 24,
    WorldSize.HUGE: 32,
}

WORLD_AGE_ADJUSTMENT = {WorldAge.OLD: 2, WorldAge.NORMAL: 3, WorldAge.NEW: 5}
WORLD_AGE_PLATE_FACTOR = {WorldAge.OLD: 0.75, WorldAge.NORMAL: 1.0, WorldAge.NEW: 1.5}


@dataclass
class TerrainTypeOptions:
    """Per-map-type tuning of the terrain type pass."""
    sea_level_low: int = 65  # Water percent for SeaLevel.LOW
    sea_level_normal: int = 72
    sea_level_high: int = 78
    extra_mountains: int = 0
    tectonic_islands: bool = False  # Raise ocean tiles on ridge peaks
    scale_plates_by_age: bool = True  # Multiply plate count by the world-age factor
    mountain_grain: Optional[int] = None  # None uses the world-size grain


FRACTAL_OPTIONS = TerrainTypeOptions()
PANGAEA_OPTIONS = TerrainTypeOptions(
    sea_level_low=71,
    sea_level_normal=78,
    sea_level_high=84,
    scale_plates_by_age=False,
    mountain_grain=4,
)


def _ridge_flags(tile_map: TileMap) -> int:
    """Ridge seeds are weakened and biased when the map wraps on any axis."""
    return int(tile_map.grid.wrap_x) | (int(tile_map.grid.wrap_y) << 1)


class TerrainTypeGenerator:
    """Assigns a TerrainType to every tile from composed fractals."""

    def __init__(self, tile_map: TileMap, options: Optional[TerrainTypeOptions] = None):
        """
        Initialize the terrain type pass.

        Args:
            tile_map: Tile store to write into
            options: Map-type tuning; defaults to the Fractal settings
        """
        self.tile_map = tile_map
        self.options = options or TerrainTypeOptions()
        self.parameters = tile_map.parameters
        self.rng = tile_map.rng

    def continents_fractal(self) -> CvFractal:
        """Coarse continent field roughened by a light ridge blend."""
        tile_map = self.tile_map
        fractal = CvFractal.create(self.rng, tile_map.grid, CONTINENT_GRAIN)
        # Roughens coastlines and builds inland seas
        fractal.ridge_builder(
            self.rng,
            CONTINENT_PLATES[self.parameters.world_size],
            _ridge_flags(tile_map),
            1,
            2,
        )
        return fractal

    def _water_percent(self) -> int:
        options = self.options
        sea_level = self.parameters.sea_level
        if sea_level == SeaLevel.LOW:
            return options.sea_level_low
        if sea_level == SeaLevel.HIGH:
            return options.sea_level_high
        if sea_level == SeaLevel.RANDOM:
            return self.rng.gen_range_inclusive(options.sea_level_low, options.sea_level_high)
        return options.sea_level_normal

    def generate(self, central_blend: bool = False) -> None:
        """
        Run the terrain type pass.

        Args:
            central_blend: Pull the continent field up inside a central ellipse
                and down outside it, producing a single supercontinent
        """
        logger.info("Generating terrain types", central_blend=central_blend)
        tile_map = self.tile_map
        options = self.options
        parameters = self.parameters
        grid = tile_map.grid

        adjustment = WORLD_AGE_ADJUSTMENT[parameters.world_age]
        mountains = 97 - adjustment - options.extra_mountains
        hills_near_mountains = 91 - adjustment * 2 - options.extra_mountains
        hills_bottom1 = 28 - adjustment
        hills_top1 = 28 + adjustment
        hills_bottom2 = 72 - adjustment
        hills_top2 = 72 + adjustment
        hills_clumps = 1 + adjustment

        water_percent = self._water_percent()

        num_plates = parameters.num_plates
        if options.scale_plates_by_age:
            num_plates = int(num_plates * WORLD_AGE_PLATE_FACTOR[parameters.world_age])

        continents = self.continents_fractal()

        mountain_grain = options.mountain_grain if options.mountain_grain is not None else parameters.grain
        mountains_fractal = CvFractal.create(self.rng, grid, mountain_grain)
        mountains_fractal.ridge_builder(self.rng, num_plates * 2 // 3, _ridge_flags(tile_map), 6, 1)

        hills_fractal = CvFractal.create(self.rng, grid, parameters.grain)
        hills_fractal.ridge_builder(self.rng, num_plates, _ridge_flags(tile_map), 1, 2)

        [water_threshold] = continents.get_height_from_percents([water_percent])
        pass_threshold, hb1, ht1, hb2, ht2 = hills_fractal.get_height_from_percents(
            [hills_near_mountains, hills_bottom1, hills_top1, hills_bottom2, hills_top2]
        )
        (
            mountain_threshold,
            hills_near_mountains_height,
            _hills_clumps,
            mountain_100,
            mountain_99,
            _mountain_98,
            mountain_97,
            mountain_95,
        ) = mountains_fractal.get_height_from_percents(
            [mountains, hills_near_mountains, hills_clumps, 100, 99, 98, 97, 95]
        )

        height = continents.get_height_map()
        mountain_height = mountains_fractal.get_height_map()
        hill_height = hills_fractal.get_height_map()

        if central_blend:
            height = self._blend_towards_center(height, water_threshold)

        is_water = height <= water_threshold
        is_peak = mountain_height >= mountain_threshold
        is_pass = hill_height >= pass_threshold
        is_hill = (
            (mountain_height >= hills_near_mountains_height)
            | ((hill_height >= hb1) & (hill_height <= ht1))
            | ((hill_height >= hb2) & (hill_height <= ht2))
        )

        terrain = np.full(tile_map.size, TerrainType.FLATLAND, dtype=np.int8)
        terrain[is_hill] = TerrainType.HILL
        terrain[is_peak] = np.where(is_pass[is_peak], TerrainType.HILL, TerrainType.MOUNTAIN)
        terrain[is_water] = TerrainType.WATER

        if options.tectonic_islands:
            # Islands along ridge lines in the ocean
            terrain[is_water & (mountain_height == mountain_100)] = TerrainType.MOUNTAIN
            terrain[is_water & (mountain_height == mountain_99)] = TerrainType.HILL
            terrain[
                is_water & ((mountain_height == mountain_97) | (mountain_height == mountain_95))
            ] = TerrainType.FLATLAND

        tile_map.terrain_type[:] = terrain

        counts = np.bincount(terrain, minlength=len(TerrainType))
        logger.info(
            "Terrain types generated",
            water=int(counts[TerrainType.WATER]),
            flatland=int(counts[TerrainType.FLATLAND]),
            hill=int(counts[TerrainType.HILL]),
            mountain=int(counts[TerrainType.MOUNTAIN]),
        )

    def _blend_towards_center(self, height: np.ndarray, water_threshold: int) -> np.ndarray:
        width = self.tile_map.width
        map_height = self.tile_map.height
        xs = np.arange(self.tile_map.size) % width
        ys = np.arange(self.tile_map.size) // width
        center_x = width / 2.0
        center_y = map_height / 2.0
        axis_x = center_x * 3.0 / 5.0
        axis_y = center_y * 3.0 / 5.0
        d = ((xs - center_x) / axis_x) ** 2 + ((ys - center_y) / axis_y) ** 2
        h = np.where(d <= 1.0, water_threshold * 1.125, water_threshold * 0.875)
        return ((height + h + h) * 0.33).astype(np.int64)


def shift_terrain_types(tile_map: TileMap) -> None:
    """
    Slide terrain types along wrapping axes so the most water-heavy stripe lands on the edge.

    Column groups have radius ``max(W // 10, 1)`` and row groups ``max(H // 15, 1)``;
    the first group with the fewest land tiles wins. Non-wrapping axes never shift.
    """
    grid = tile_map.grid
    if not grid.wrap_x and not grid.wrap_y:
        return

    land = (tile_map.terrain_type != TerrainType.WATER).reshape(tile_map.height, tile_map.width)
    x_shift = _best_group(land.sum(axis=0), max(tile_map.width // 10, 1)) if grid.wrap_x else 0
    y_shift = _best_group(land.sum(axis=1), max(tile_map.height // 15, 1)) if grid.wrap_y else 0

    logger.info("Shifting terrain types", x_shift=x_shift, y_shift=y_shift)
    if x_shift == 0 and y_shift == 0:
        return

    terrain = tile_map.terrain_type.reshape(tile_map.height, tile_map.width)
    shifted = np.roll(terrain, shift=(-y_shift, -x_shift), axis=(0, 1))
    tile_map.terrain_type[:] = shifted.reshape(-1)


def _best_group(land_totals: np.ndarray, radius: int) -> int:
    """Index of the first window (wrapping, ``2 * radius + 1`` wide) with the least land."""
    group_totals = np.zeros_like(land_totals)
    for offset in range(-radius, radius + 1):
        group_totals += np.roll(land_totals, -offset)
    return int(np.argmin(group_totals))
