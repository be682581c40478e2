"""
Map generation pipeline.

This module implements:
- TerrainTypeStrategy: the per-map-type variants of the terrain type pass
- generate(): validates parameters, seeds the random stream and runs every
  pass in its fixed order over one TileMap
"""

import time
from dataclasses import dataclass, field
from typing import Optional, Union

import structlog

from .config.map_parameters import MapParameters, MapType
from .core.areas import recalculate_areas
from .core.biomes import expand_coasts, generate_base_terrains
from .core.features import add_features
from .core.hydrology import add_lakes, add_rivers, generate_lakes
from .core.luxuries import assign_luxury_roles, place_luxury_resources
from .core.natural_wonders import place_natural_wonders
from .core.regions import choose_civilization_starting_tiles, generate_regions
from .core.resources import fix_sugar_jungles, place_bonus_resources, place_strategic_resources
from .core.settlements import balance_and_assign, normalize_city_state_locations, place_city_states
from .core.terrain_types import (
    FRACTAL_OPTIONS,
    PANGAEA_OPTIONS,
    TerrainTypeGenerator,
    TerrainTypeOptions,
    shift_terrain_types,
)
from .core.tile_map import TileMap
from .ruleset import Ruleset
from .utils.random import set_random_seed

logger = structlog.get_logger()


@dataclass
class FractalStrategy:
    """Continents and islands from the plain continent fractal."""
    options: TerrainTypeOptions = field(default_factory=lambda: FRACTAL_OPTIONS)


@dataclass
class PangaeaStrategy:
    """One supercontinent: the continent fractal is blended towards a central ellipse."""
    options: TerrainTypeOptions = field(default_factory=lambda: PANGAEA_OPTIONS)


TerrainTypeStrategy = Union[FractalStrategy, PangaeaStrategy]


def strategy_for(map_type: MapType) -> TerrainTypeStrategy:
    if map_type == MapType.PANGAEA:
        return PangaeaStrategy()
    return FractalStrategy()


def generate_terrain_types(tile_map: TileMap, strategy: TerrainTypeStrategy) -> None:
    """Run the terrain type pass for the given strategy."""
    if isinstance(strategy, PangaeaStrategy):
        TerrainTypeGenerator(tile_map, strategy.options).generate(central_blend=True)
    elif isinstance(strategy, FractalStrategy):
        TerrainTypeGenerator(tile_map, strategy.options).generate()
    else:
        raise TypeError(f"Unknown terrain type strategy: {type(strategy).__name__}")


def generate(
    parameters: MapParameters,
    ruleset: Optional[Ruleset] = None,
    strategy: Optional[TerrainTypeStrategy] = None,
) -> TileMap:
    """
    Generate a complete map.

    The passes run in a fixed order; each one reads attributes written by
    the ones before it.

    Args:
        parameters: Map parameters of this run
        ruleset: Loaded ruleset; the bundled one is loaded when omitted
        strategy: Terrain type strategy; derived from ``parameters.map_type`` when omitted

    Returns:
        Fully populated TileMap

    Raises:
        ConfigurationError: If the parameters are out of range
    """
    if ruleset is None:
        ruleset = Ruleset.load()
    parameters.validate_parameters(ruleset)
    if strategy is None:
        strategy = strategy_for(parameters.map_type)

    start = time.perf_counter()
    logger.info(
        "Starting map generation",
        map_type=parameters.map_type.value,
        world_size=parameters.world_size.value,
        width=parameters.width,
        height=parameters.height,
        seed=parameters.seed,
    )

    rng = set_random_seed(parameters.seed)
    tile_map = TileMap(parameters, ruleset, rng)

    # Terrain types, then lakes from the small water areas
    generate_terrain_types(tile_map, strategy)
    shift_terrain_types(tile_map)
    recalculate_areas(tile_map)
    generate_lakes(tile_map)

    # Biomes and water
    generate_base_terrains(tile_map)
    expand_coasts(tile_map)
    add_rivers(tile_map)
    add_lakes(tile_map)
    recalculate_areas(tile_map)

    add_features(tile_map)
    recalculate_areas(tile_map)

    # Starts, wonders and city states
    generate_regions(tile_map)
    choose_civilization_starting_tiles(tile_map)
    balance_and_assign(tile_map)
    place_natural_wonders(tile_map)
    assign_luxury_roles(tile_map)
    place_city_states(tile_map)

    # Resources
    place_luxury_resources(tile_map)
    place_strategic_resources(tile_map)
    place_bonus_resources(tile_map)
    normalize_city_state_locations(tile_map)
    fix_sugar_jungles(tile_map)
    recalculate_areas(tile_map)

    logger.info(
        "Map generation complete",
        seed=parameters.seed,
        areas=len(tile_map.area_list),
        landmasses=len(tile_map.landmass_list),
        civilizations=len(tile_map.starting_tile_and_civilization),
        city_states=len(tile_map.starting_tile_and_city_state),
        seconds=round(time.perf_counter() - start, 3),
    )
    return tile_map
