"""
Base terrain (biome) assignment.

This module implements:
- Coast marking for ocean tiles touching land
- Latitude bands for land tiles, perturbed by a variation fractal and split
  into desert and plain patches by two more fractals
- Temperature shifts of the band limits and the desert share
- Stochastic coast widening (expand_coasts)

Lakes are not produced here; see hydrology.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from ..config.map_parameters import Temperature
from .fractal import CvFractal
from .tile_map import BaseTerrain, TileMap

logger = structlog.get_logger()

BIOME_GRAIN = 3


@dataclass
class BiomeOptions:
    """Latitude bands (ascending) and fractal shares of the biome pass."""
    grass_latitude: float = 0.1
    desert_bottom_latitude: float = 0.2
    desert_top_latitude: float = 0.5
    tundra_latitude: float = 0.6
    snow_latitude: float = 0.75
    desert_percent: int = 32
    plains_percent: int = 50
    temperature_shift: float = 0.1
    desert_shift: int = 16

    def for_temperature(self, temperature: Temperature) -> "BiomeOptions":
        """Return a copy with the band limits moved for ``temperature``."""
        shifted = BiomeOptions(**self.__dict__)
        if temperature == Temperature.COOL:
            shifted.desert_percent -= self.desert_shift
            shifted.tundra_latitude -= self.temperature_shift * 1.5
            shifted.desert_top_latitude -= self.temperature_shift
            shifted.grass_latitude -= self.temperature_shift * 0.5
        elif temperature == Temperature.HOT:
            shifted.desert_percent += self.desert_shift
            shifted.snow_latitude += self.temperature_shift * 0.5
            shifted.tundra_latitude += self.temperature_shift
            shifted.desert_top_latitude += self.temperature_shift
            shifted.grass_latitude -= self.temperature_shift * 0.5
        return shifted


def tile_latitudes(tile_map: TileMap) -> np.ndarray:
    """Distance from the equator in [0, 1] for every tile."""
    half = tile_map.height / 2.0
    rows = np.arange(tile_map.size) // tile_map.width
    return np.abs(half - rows) / half


class BiomeGenerator:
    """Writes BaseTerrain for every tile except lakes."""

    def __init__(self, tile_map: TileMap, options: Optional[BiomeOptions] = None):
        self.tile_map = tile_map
        self.options = (options or BiomeOptions()).for_temperature(tile_map.parameters.temperature)
        self.rng = tile_map.rng

    def generate(self) -> None:
        logger.info("Generating base terrains")
        tile_map = self.tile_map
        options = self.options
        grid = tile_map.grid

        variation_fractal = CvFractal.create(self.rng, grid, BIOME_GRAIN)
        deserts_fractal = CvFractal.create(self.rng, grid, BIOME_GRAIN)
        plains_fractal = CvFractal.create(self.rng, grid, BIOME_GRAIN)

        # Tops come from the deserts fractal, bottoms from the plains fractal
        desert_top, plains_top = deserts_fractal.get_height_from_percents([100, 100])
        desert_bottom, plains_bottom = plains_fractal.get_height_from_percents(
            [max(0, 100 - options.desert_percent), max(0, 100 - options.plains_percent)]
        )

        water = tile_map.water_mask()
        self._mark_coasts(water)

        deserts_height = deserts_fractal.get_height_map()
        plains_height = plains_fractal.get_height_map()
        latitude = tile_latitudes(tile_map)
        latitude = latitude + (128 - variation_fractal.get_height_map()) / (255.0 * 5.0)
        latitude = np.clip(latitude, 0.0, 1.0)

        is_desert = (
            (deserts_height >= desert_bottom)
            & (deserts_height <= desert_top)
            & (latitude >= options.desert_bottom_latitude)
            & (latitude < options.desert_top_latitude)
        )
        is_plain = (plains_height >= plains_bottom) & (plains_height <= plains_top)

        base = np.select(
            [
                latitude >= options.snow_latitude,
                latitude >= options.tundra_latitude,
                latitude < options.grass_latitude,
                is_desert,
                is_plain,
            ],
            [BaseTerrain.SNOW, BaseTerrain.TUNDRA, BaseTerrain.GRASSLAND, BaseTerrain.DESERT, BaseTerrain.PLAIN],
            default=BaseTerrain.GRASSLAND,
        )
        land = ~water
        tile_map.base_terrain[land] = base[land]

        counts = np.bincount(tile_map.base_terrain, minlength=len(BaseTerrain))
        logger.info(
            "Base terrains generated",
            coast=int(counts[BaseTerrain.COAST]),
            grassland=int(counts[BaseTerrain.GRASSLAND]),
            plain=int(counts[BaseTerrain.PLAIN]),
            desert=int(counts[BaseTerrain.DESERT]),
            tundra=int(counts[BaseTerrain.TUNDRA]),
            snow=int(counts[BaseTerrain.SNOW]),
        )

    def _mark_coasts(self, water: np.ndarray) -> None:
        """Ocean tiles with at least one dry neighbour become coast."""
        tile_map = self.tile_map
        table = tile_map.grid.neighbor_table
        valid = table >= 0
        neighbor_land = valid & ~water[np.where(valid, table, 0)]
        coast = (tile_map.base_terrain == BaseTerrain.OCEAN) & water & neighbor_land.any(axis=1)
        tile_map.base_terrain[coast] = BaseTerrain.COAST


def generate_base_terrains(tile_map: TileMap) -> None:
    BiomeGenerator(tile_map).generate()


def expand_coasts(tile_map: TileMap) -> None:
    """
    Widen the coast once per entry of ``coast_expand_chance``.

    Each sweep collects ocean tiles next to coast that pass their chance roll,
    then converts them together so a sweep never feeds on its own output.
    """
    grid = tile_map.grid
    base_terrain = tile_map.base_terrain
    for chance in tile_map.parameters.coast_expand_chance:
        expansion = [
            tile
            for tile in tile_map.all_tiles()
            if base_terrain[tile] == BaseTerrain.OCEAN
            and any(base_terrain[n] == BaseTerrain.COAST for n in grid.neighbors(tile))
            and tile_map.rng.gen_bool(chance)
        ]
        base_terrain[expansion] = BaseTerrain.COAST
        logger.info("Coasts expanded", chance=chance, tiles=len(expansion))
