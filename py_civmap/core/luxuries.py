"""
Luxury resources.

This module implements:
- Luxury roles: one luxury per region, three city-state exclusives, Marble as
  a special case and the rest distributed at random
- Terrain plot lists that luxury types are placed from, in priority order
- Luxury placement: at civilization starts, at city states, across regions,
  at random over the whole map, a second type at each start, and Marble
"""

import math
from typing import Dict, List, Optional, Sequence, Set

import numpy as np
import structlog

from ..config.map_parameters import ResourceSetting, WorldSize
from .regions import Region
from .tile_map import BaseTerrain, Feature, Layer, RegionType, Resource, TerrainType, TileMap

logger = structlog.get_logger()

# Luxury types that can be assigned to regions, and regions per type
MAX_LUXURY_TYPES_FOR_REGIONS = 8
MAX_REGIONS_PER_LUXURY_TYPE = 3

SEA_LUXURIES = (Resource.WHALES, Resource.PEARLS, Resource.CRAB)
# Region water tiles needed before a sea luxury is assigned to it
SEA_LUXURY_MIN_WATER = 12

LUXURY_CITY_STATE_WEIGHTS = (
    (Resource.WHALES, 15), (Resource.PEARLS, 15), (Resource.GOLD_ORE, 10), (Resource.SILVER, 10),
    (Resource.GEMS, 10), (Resource.IVORY, 10), (Resource.FURS, 15), (Resource.DYES, 10),
    (Resource.SPICES, 15), (Resource.SILK, 15), (Resource.SUGAR, 10), (Resource.COTTON, 10),
    (Resource.WINE, 10), (Resource.INCENSE, 15), (Resource.COPPER, 10), (Resource.SALT, 10),
    (Resource.CITRUS, 15), (Resource.TRUFFLES, 15), (Resource.CRAB, 15), (Resource.COCOA, 10),
)

LUXURY_FALLBACK_WEIGHTS = (
    (Resource.WHALES, 10), (Resource.PEARLS, 10), (Resource.GOLD_ORE, 10), (Resource.SILVER, 5),
    (Resource.GEMS, 10), (Resource.IVORY, 5), (Resource.FURS, 10), (Resource.DYES, 5),
    (Resource.SPICES, 5), (Resource.SILK, 5), (Resource.SUGAR, 5), (Resource.COTTON, 5),
    (Resource.WINE, 5), (Resource.INCENSE, 5), (Resource.COPPER, 5), (Resource.SALT, 5),
    (Resource.CITRUS, 5), (Resource.TRUFFLES, 5), (Resource.CRAB, 10), (Resource.COCOA, 5),
)

LUXURY_REGION_WEIGHTS = {
    RegionType.UNDEFINED: LUXURY_FALLBACK_WEIGHTS,
    RegionType.TUNDRA: (
        (Resource.FURS, 40), (Resource.WHALES, 35), (Resource.CRAB, 30), (Resource.SILVER, 25),
        (Resource.COPPER, 15), (Resource.SALT, 15), (Resource.GEMS, 5), (Resource.DYES, 5),
    ),
    RegionType.JUNGLE: (
        (Resource.COCOA, 35), (Resource.CITRUS, 35), (Resource.SPICES, 30), (Resource.GEMS, 20),
        (Resource.SUGAR, 20), (Resource.PEARLS, 20), (Resource.COPPER, 5), (Resource.TRUFFLES, 5),
        (Resource.CRAB, 5), (Resource.SILK, 5), (Resource.DYES, 5),
    ),
    RegionType.FOREST: (
        (Resource.DYES, 30), (Resource.SILK, 30), (Resource.TRUFFLES, 30), (Resource.FURS, 10),
        (Resource.SPICES, 10), (Resource.CITRUS, 5), (Resource.SALT, 5), (Resource.COPPER, 5),
        (Resource.COCOA, 5), (Resource.CRAB, 10), (Resource.WHALES, 10), (Resource.PEARLS, 10),
    ),
    RegionType.DESERT: (
        (Resource.INCENSE, 35), (Resource.SALT, 15), (Resource.GOLD_ORE, 25), (Resource.COPPER, 10),
        (Resource.COTTON, 15), (Resource.SUGAR, 15), (Resource.PEARLS, 5), (Resource.CITRUS, 5),
    ),
    RegionType.HILL: (
        (Resource.GOLD_ORE, 30), (Resource.SILVER, 30), (Resource.COPPER, 30), (Resource.GEMS, 15),
        (Resource.PEARLS, 15), (Resource.SALT, 10), (Resource.CRAB, 10), (Resource.WHALES, 10),
    ),
    RegionType.PLAIN: (
        (Resource.IVORY, 35), (Resource.WINE, 35), (Resource.SALT, 25), (Resource.INCENSE, 10),
        (Resource.SPICES, 5), (Resource.WHALES, 5), (Resource.PEARLS, 5), (Resource.CRAB, 5),
        (Resource.TRUFFLES, 5), (Resource.GOLD_ORE, 5),
    ),
    RegionType.GRASSLAND: (
        (Resource.COTTON, 30), (Resource.SILVER, 20), (Resource.SUGAR, 20), (Resource.COPPER, 20),
        (Resource.CRAB, 20), (Resource.PEARLS, 10), (Resource.WHALES, 10), (Resource.COCOA, 10),
        (Resource.TRUFFLES, 5), (Resource.SPICES, 5), (Resource.GEMS, 5),
    ),
    RegionType.HYBRID: (
        (Resource.IVORY, 15), (Resource.COTTON, 15), (Resource.WINE, 15), (Resource.SILVER, 10),
        (Resource.SALT, 15), (Resource.COPPER, 20), (Resource.WHALES, 20), (Resource.PEARLS, 20),
        (Resource.CRAB, 20), (Resource.TRUFFLES, 10), (Resource.COCOA, 10), (Resource.SPICES, 5),
        (Resource.SUGAR, 5), (Resource.INCENSE, 5), (Resource.SILK, 5), (Resource.GEMS, 5),
        (Resource.GOLD_ORE, 5),
    ),
}

# Sea luxuries a region type never receives from the fallback table
FALLBACK_SEA_EXCLUSIONS = {
    RegionType.JUNGLE: Resource.WHALES,
    RegionType.TUNDRA: Resource.PEARLS,
    RegionType.DESERT: Resource.CRAB,
}

# Plot list indices
(
    COAST,
    MARSH,
    FLOODPLAIN,
    HILL_OPEN,
    HILL_COVERED,
    HILL_JUNGLE,
    HILL_FOREST,
    JUNGLE_FLAT,
    FOREST_FLAT,
    DESERT_FLAT_NO_FEATURE,
    PLAIN_FLAT_NO_FEATURE,
    DRY_GRASS_FLAT_NO_FEATURE,
    FRESH_GRASS_FLAT_NO_FEATURE,
    TUNDRA_FLAT_INCLUDING_FOREST,
    FOREST_FLAT_NOT_TUNDRA,
) = range(15)
PLOT_LIST_COUNT = 15

# Plot lists each luxury is placed from, most preferred first
LUXURY_PLOT_PRIORITY = {
    Resource.WHALES: (COAST,),
    Resource.PEARLS: (COAST,),
    Resource.CRAB: (COAST,),
    Resource.GOLD_ORE: (HILL_OPEN, DESERT_FLAT_NO_FEATURE, HILL_COVERED),
    Resource.SILVER: (HILL_OPEN, HILL_COVERED, TUNDRA_FLAT_INCLUDING_FOREST, DRY_GRASS_FLAT_NO_FEATURE),
    Resource.GEMS: (HILL_JUNGLE, HILL_FOREST, HILL_OPEN, JUNGLE_FLAT),
    Resource.MARBLE: (DRY_GRASS_FLAT_NO_FEATURE, DESERT_FLAT_NO_FEATURE, PLAIN_FLAT_NO_FEATURE, HILL_OPEN),
    Resource.IVORY: (PLAIN_FLAT_NO_FEATURE, DRY_GRASS_FLAT_NO_FEATURE),
    Resource.FURS: (TUNDRA_FLAT_INCLUDING_FOREST, FOREST_FLAT_NOT_TUNDRA),
    Resource.DYES: (FOREST_FLAT, JUNGLE_FLAT, MARSH),
    Resource.SPICES: (JUNGLE_FLAT, FOREST_FLAT_NOT_TUNDRA, MARSH),
    Resource.SILK: (FOREST_FLAT_NOT_TUNDRA, JUNGLE_FLAT),
    Resource.SUGAR: (MARSH, JUNGLE_FLAT, FLOODPLAIN, FRESH_GRASS_FLAT_NO_FEATURE),
    Resource.COTTON: (FLOODPLAIN, FRESH_GRASS_FLAT_NO_FEATURE, DRY_GRASS_FLAT_NO_FEATURE),
    Resource.WINE: (PLAIN_FLAT_NO_FEATURE, DRY_GRASS_FLAT_NO_FEATURE, FRESH_GRASS_FLAT_NO_FEATURE),
    Resource.INCENSE: (DESERT_FLAT_NO_FEATURE, FLOODPLAIN, PLAIN_FLAT_NO_FEATURE),
    Resource.COPPER: (HILL_OPEN, HILL_COVERED, DRY_GRASS_FLAT_NO_FEATURE, TUNDRA_FLAT_INCLUDING_FOREST),
    Resource.SALT: (PLAIN_FLAT_NO_FEATURE, DESERT_FLAT_NO_FEATURE, TUNDRA_FLAT_INCLUDING_FOREST, FOREST_FLAT),
    Resource.CITRUS: (JUNGLE_FLAT, HILL_JUNGLE, FOREST_FLAT_NOT_TUNDRA, FLOODPLAIN),
    Resource.TRUFFLES: (FOREST_FLAT_NOT_TUNDRA, JUNGLE_FLAT, MARSH, HILL_COVERED),
    Resource.COCOA: (JUNGLE_FLAT, HILL_JUNGLE, FOREST_FLAT_NOT_TUNDRA),
}

# Regional luxury target by civilization count (index), per world size
REGION_LUXURY_TARGETS = {
    WorldSize.DUEL: (1,) * 22,
    WorldSize.TINY: (0, 2, 2, 2, 2, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1),
    WorldSize.SMALL: (0, 3, 3, 3, 4, 4, 4, 3, 2, 2, 2, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1),
    WorldSize.STANDARD: (0, 3, 3, 4, 4, 5, 5, 6, 5, 4, 4, 3, 3, 2, 2, 1, 1, 1, 1, 1, 1, 1),
    WorldSize.LARGE: (0, 3, 4, 4, 5, 5, 5, 6, 6, 7, 6, 5, 5, 4, 4, 3, 3, 2, 2, 2, 2, 2),
    WorldSize.HUGE: (0, 4, 5, 5, 6, 6, 6, 6, 7, 7, 7, 8, 7, 6, 6, 5, 5, 4, 4, 3, 3, 2),
}

# Share of the random-luxury target given to each random type, by number of random types
RANDOM_LUXURY_RATIOS = (
    (1.0,),
    (0.55, 0.45),
    (0.40, 0.33, 0.27),
    (0.35, 0.25, 0.25, 0.15),
    (0.25, 0.25, 0.20, 0.15, 0.15),
    (0.20, 0.20, 0.20, 0.15, 0.15, 0.10),
    (0.20, 0.20, 0.15, 0.15, 0.10, 0.10, 0.10),
    (0.20, 0.15, 0.15, 0.10, 0.10, 0.10, 0.10, 0.10),
)

# Marble per civilization by resource setting
MARBLE_PER_CIVILIZATION = {
    ResourceSetting.SPARSE: 0.5,
    ResourceSetting.ABUNDANT: 0.9,
}
DEFAULT_MARBLE_PER_CIVILIZATION = 0.75

# Largest site radius a city can work
MAX_CITY_SITE_RADIUS = 5


def region_luxury_targets(world_size: WorldSize) -> Sequence[int]:
    return REGION_LUXURY_TARGETS[world_size]


def land_plot_lists_for_tile(tile_map: TileMap, tile: int, fresh: bool) -> List[int]:
    """Indices of the land plot lists ``tile`` belongs to."""
    terrain_type = tile_map.terrain_type[tile]
    base = tile_map.base_terrain[tile]
    feature = tile_map.get_feature(tile)

    if terrain_type == TerrainType.FLATLAND:
        if feature == Feature.FOREST:
            if base == BaseTerrain.TUNDRA:
                return [FOREST_FLAT, TUNDRA_FLAT_INCLUDING_FOREST]
            return [FOREST_FLAT, FOREST_FLAT_NOT_TUNDRA]
        if feature == Feature.JUNGLE:
            return [JUNGLE_FLAT]
        if feature == Feature.MARSH:
            return [MARSH]
        if feature == Feature.FLOODPLAIN:
            return [FLOODPLAIN]
        if feature is not None:
            return []
        if base == BaseTerrain.GRASSLAND:
            return [FRESH_GRASS_FLAT_NO_FEATURE if fresh else DRY_GRASS_FLAT_NO_FEATURE]
        if base == BaseTerrain.DESERT:
            return [DESERT_FLAT_NO_FEATURE]
        if base == BaseTerrain.PLAIN:
            return [PLAIN_FLAT_NO_FEATURE]
        if base == BaseTerrain.TUNDRA:
            return [TUNDRA_FLAT_INCLUDING_FOREST]
        return []

    if terrain_type == TerrainType.HILL and base != BaseTerrain.SNOW:
        if feature is None:
            return [HILL_OPEN]
        if feature == Feature.FOREST:
            return [HILL_FOREST, HILL_COVERED]
        if feature == Feature.JUNGLE:
            return [HILL_JUNGLE, HILL_COVERED]
    return []


def _is_open_coast(tile_map: TileMap, tile: int) -> bool:
    return (
        tile_map.base_terrain[tile] == BaseTerrain.COAST
        and tile_map.feature[tile] not in (Feature.ICE, Feature.ATOLL)
    )


def luxury_plot_lists_at_city_site(tile_map: TileMap, city_site: int, radius: int) -> List[List[int]]:
    """
    Plot lists of the tiles within ``radius`` rings of a city site.

    Args:
        tile_map: Map to read
        city_site: Centre tile, itself excluded
        radius: Number of rings; anything outside 1..5 yields empty lists

    Returns:
        One list of tiles per plot list index
    """
    lists: List[List[int]] = [[] for _ in range(PLOT_LIST_COUNT)]
    if not 0 < radius <= MAX_CITY_SITE_RADIUS:
        return lists

    for distance in range(1, radius + 1):
        for tile in tile_map.grid.tiles_at_distance(city_site, distance):
            if tile_map.is_water(tile):
                if _is_open_coast(tile_map, tile):
                    lists[COAST].append(tile)
                continue
            for index in land_plot_lists_for_tile(tile_map, tile, tile_map.is_freshwater(tile)):
                lists[index].append(tile)
    return lists


def luxury_plot_lists_in_region(tile_map: TileMap, region: Region) -> List[List[int]]:
    """Plot lists of a region's rectangle; coast tiles must touch the region's area."""
    lists: List[List[int]] = [[] for _ in range(PLOT_LIST_COUNT)]
    grid = tile_map.grid
    for tile in region.rectangle.iter_tiles(grid):
        if tile_map.is_water(tile):
            if not _is_open_coast(tile_map, tile):
                continue
            if region.area_id is None or any(
                tile_map.area_id[n] == region.area_id for n in grid.neighbors(tile)
            ):
                lists[COAST].append(tile)
            continue
        for index in land_plot_lists_for_tile(tile_map, tile, tile_map.is_freshwater(tile)):
            lists[index].append(tile)
    return lists


def global_luxury_plot_lists(tile_map: TileMap) -> List[List[int]]:
    """Plot lists over the whole map, skipping claimed tiles and tiles with a resource."""
    lists: List[List[int]] = [[] for _ in range(PLOT_LIST_COUNT)]
    water = tile_map.water_mask()
    next_to_land = tile_map.neighbor_any(~water)
    fresh = tile_map.freshwater_mask()
    free = ~tile_map.player_collision & (tile_map.resource < 0)

    for tile in np.flatnonzero(free):
        tile = int(tile)
        if water[tile]:
            if _is_open_coast(tile_map, tile) and next_to_land[tile]:
                lists[COAST].append(tile)
            continue
        for index in land_plot_lists_for_tile(tile_map, tile, bool(fresh[tile])):
            lists[index].append(tile)
    return lists


def allowed_luxuries_at_city_site(tile_map: TileMap, city_site: int, radius: int) -> Set[Resource]:
    """Luxury types that have at least one candidate tile around a city site."""
    lists = luxury_plot_lists_at_city_site(tile_map, city_site, radius)
    return {
        luxury
        for luxury, indices in LUXURY_PLOT_PRIORITY.items()
        if any(lists[index] for index in indices)
    }


def place_luxury_from_lists(
    tile_map: TileMap,
    luxury: Resource,
    amount: int,
    lists: List[List[int]],
    ratio: float = 1.0,
    layer: Optional[Layer] = None,
    min_radius: int = 0,
    max_radius: int = 0,
) -> int:
    """
    Place ``amount`` copies of a luxury, walking its plot lists in priority order.

    Returns:
        Number of copies that could not be placed
    """
    left = amount
    for index in LUXURY_PLOT_PRIORITY[luxury]:
        if left <= 0:
            break
        tile_list = lists[index]
        tile_map.rng.shuffle(tile_list)
        left = tile_map.place_specific_number_of_resources(
            luxury, 1, left, ratio, layer, min_radius, max_radius, tile_list
        )
    return left


class LuxuryRoleAssigner:
    """Decides which luxury goes to each region, city states and random placement."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.rng = tile_map.rng
        self.parameters = tile_map.parameters

    def assign_luxury_roles(self) -> None:
        tile_map = self.tile_map
        rng = self.rng
        logger.info("Assigning luxury roles", regions=len(tile_map.region_list))

        # Undefined regions choose last so typed regions get their favourites
        tile_map.region_list.sort(
            key=lambda region: 9 if region.region_type == RegionType.UNDEFINED else int(region.region_type)
        )

        role = tile_map.luxury_resource_role
        tile_map.luxury_assign_to_region_count = {}
        for region in tile_map.region_list:
            luxury = self.assign_luxury_to_region(region)
            region.luxury_resource = luxury
            if luxury not in role.luxury_assigned_to_regions:
                role.luxury_assigned_to_regions.append(luxury)
            count = tile_map.luxury_assign_to_region_count
            count[luxury] = count.get(luxury, 0) + 1

        region_luxuries = set(role.luxury_assigned_to_regions)
        candidates = [(luxury, weight) for luxury, weight in LUXURY_CITY_STATE_WEIGHTS if luxury not in region_luxuries]
        for _ in range(3):
            index = rng.weighted_index([weight for _, weight in candidates])
            role.luxury_assigned_to_city_state.append(candidates.pop(index)[0])

        role.luxury_assigned_to_special_case.append(Resource.MARBLE)

        city_state_luxuries = set(role.luxury_assigned_to_city_state)
        remaining = [
            luxury for luxury, _ in LUXURY_CITY_STATE_WEIGHTS
            if luxury not in region_luxuries and luxury not in city_state_luxuries
        ]
        rng.shuffle(remaining)
        # No luxury type is disabled at any world size
        role.luxury_assigned_to_random.extend(remaining)

        logger.info(
            "Luxury roles assigned",
            regions=[luxury.name for luxury in role.luxury_assigned_to_regions],
            city_states=[luxury.name for luxury in role.luxury_assigned_to_city_state],
            random=len(role.luxury_assigned_to_random),
        )

    def _split_cap(self) -> int:
        civilization_num = self.parameters.civilization_num
        if civilization_num > 12:
            return MAX_REGIONS_PER_LUXURY_TYPE
        if civilization_num > 8:
            return 2
        return 1

    def _eligible(self, luxury: Resource, cap: int) -> bool:
        count = self.tile_map.luxury_assign_to_region_count
        return count.get(luxury, 0) < cap and (
            len(count) < MAX_LUXURY_TYPES_FOR_REGIONS or luxury in count
        )

    @staticmethod
    def _sea_allowed(region: Region) -> bool:
        return (
            region.start_location_condition.along_ocean
            and region.terrain_statistic.terrain_type_num[TerrainType.WATER] > SEA_LUXURY_MIN_WATER
        )

    def _weighted_candidates(self, region: Region, weights, cap: int, sea_check: bool, exclude=None):
        count = self.tile_map.luxury_assign_to_region_count
        luxuries, adjusted = [], []
        for luxury, weight in weights:
            if luxury == exclude or not self._eligible(luxury, cap):
                continue
            if sea_check and luxury in SEA_LUXURIES and not self._sea_allowed(region):
                continue
            luxuries.append(luxury)
            adjusted.append(weight // (1 + count.get(luxury, 0)))
        return luxuries, adjusted

    def assign_luxury_to_region(self, region: Region) -> Resource:
        """
        Pick a luxury for ``region`` from its region type's table.

        Weights fall with the number of regions already holding a type. At most
        eight types go to regions and at most three regions share a type.
        """
        region_type = region.region_type
        split_cap = self._split_cap()

        luxuries, weights = self._weighted_candidates(
            region, LUXURY_REGION_WEIGHTS[region_type], split_cap, sea_check=True
        )

        if not luxuries and region_type != RegionType.UNDEFINED and split_cap != MAX_REGIONS_PER_LUXURY_TYPE:
            luxuries, weights = self._weighted_candidates(
                region,
                LUXURY_FALLBACK_WEIGHTS,
                MAX_REGIONS_PER_LUXURY_TYPE,
                sea_check=True,
                exclude=FALLBACK_SEA_EXCLUSIONS.get(region_type),
            )

        if not luxuries:
            luxuries, weights = self._weighted_candidates(
                region, LUXURY_REGION_WEIGHTS[region_type], MAX_REGIONS_PER_LUXURY_TYPE, sea_check=False
            )

        assert luxuries, "No luxury left to assign to region"
        return luxuries[self.rng.weighted_index(weights)]


def assign_luxury_roles(tile_map: TileMap) -> None:
    LuxuryRoleAssigner(tile_map).assign_luxury_roles()


class LuxuryPlacer:
    """Places luxury resources according to the assigned roles."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.rng = tile_map.rng
        self.parameters = tile_map.parameters
        self.role = tile_map.luxury_resource_role
        self.luxury_low_fertility_compensation: Dict[Resource, int] = {}
        self.region_low_fertility_compensation = [0] * len(tile_map.region_list)

    def place_luxury_resources(self) -> None:
        logger.info("Placing luxury resources")
        self.place_at_civilization_starts()
        self.place_at_city_states()
        self.place_regional_luxuries()
        self.place_random_luxuries()
        if self.parameters.resource_setting != ResourceSetting.SPARSE:
            self.place_second_luxury_at_starts()
        if Resource.MARBLE in self.role.luxury_assigned_to_special_case:
            self.place_marble()
        # Luxury IDs follow the strategic ones
        placed = int((self.tile_map.resource >= Resource.WHALES).sum())
        logger.info("Luxury resources placed", luxuries=placed)

    def _compensate(self, region_index: int, luxury: Resource, amount: int) -> None:
        compensation = self.luxury_low_fertility_compensation
        compensation[luxury] = compensation.get(luxury, 0) + amount
        self.region_low_fertility_compensation[region_index] += amount

    def place_at_civilization_starts(self) -> None:
        """Put each region's luxury next to its start, more of it on poor land."""
        tile_map = self.tile_map
        for region_index, region in enumerate(tile_map.region_list):
            luxury = region.luxury_resource
            start = region.starting_tile
            if luxury is None or start is None:
                continue

            num_to_place = 2 if self.parameters.resource_setting == ResourceSetting.LEGENDARY_START else 1
            if region.average_fertility < 2.5:
                num_to_place += 1
                self._compensate(region_index, luxury, 1)

            statistic = region.terrain_statistic
            land = int(statistic.terrain_type_num[TerrainType.HILL] + statistic.terrain_type_num[TerrainType.FLATLAND])
            if land == 0 or region.fertility_sum / land < 4.0:
                num_to_place += 1
                self._compensate(region_index, luxury, 1)

            lists = luxury_plot_lists_at_city_site(tile_map, start, 2)
            left = place_luxury_from_lists(tile_map, luxury, num_to_place, lists, ratio=0.5)
            if left > 0:
                lists = luxury_plot_lists_at_city_site(tile_map, start, 3)
                left = place_luxury_from_lists(tile_map, luxury, left, lists)

            if left > 0:
                self._compensate(region_index, luxury, -left)
                randoms_to_place = 1
                for random_luxury in self.role.luxury_assigned_to_random:
                    if randoms_to_place <= 0:
                        break
                    randoms_to_place = place_luxury_from_lists(tile_map, random_luxury, randoms_to_place, lists)

    def place_at_city_states(self) -> None:
        """Give every city state one luxury, preferring city-state exclusives."""
        tile_map = self.tile_map
        role = self.role
        for city_state, region_index in tile_map.city_state_starting_tile_and_region_index:
            allowed = allowed_luxuries_at_city_site(tile_map, city_state, 2)
            weights: Dict[Resource, float] = {}

            city_state_types = [lux for lux in role.luxury_assigned_to_city_state if lux in allowed]
            for luxury in city_state_types:
                weights[luxury] = 75.0 / len(city_state_types)

            if role.luxury_assigned_to_random or region_index is not None:
                random_types = [lux for lux in role.luxury_assigned_to_random if lux in allowed]
                if region_index is not None:
                    region_luxury = tile_map.region_list[region_index].luxury_resource
                    if region_luxury in allowed:
                        weights[region_luxury] = 25.0 / (len(random_types) + 1)
                for luxury in random_types:
                    weights[luxury] = 25.0 / len(random_types)

            if not weights:
                continue
            candidates = sorted(weights)
            luxury = candidates[self.rng.weighted_index([weights[lux] for lux in candidates])]
            lists = luxury_plot_lists_at_city_site(tile_map, city_state, 2)
            place_luxury_from_lists(tile_map, luxury, 1, lists)

    def place_regional_luxuries(self) -> None:
        """Spread each region's luxury over the region, shared types split between regions."""
        tile_map = self.tile_map
        targets = region_luxury_targets(self.parameters.world_size)
        civilization_num = min(self.parameters.civilization_num, len(targets) - 1)
        setting = self.parameters.resource_setting

        for region_index, region in enumerate(tile_map.region_list):
            luxury = region.luxury_resource
            if luxury is None:
                continue
            assignment_count = tile_map.luxury_assign_to_region_count[luxury]
            compensation = self.luxury_low_fertility_compensation.get(luxury, 0)

            target = int((targets[civilization_num] + 0.5 * compensation) / assignment_count)
            target -= self.region_low_fertility_compensation[region_index]
            if setting == ResourceSetting.SPARSE:
                target -= 1
            elif setting == ResourceSetting.ABUNDANT:
                target += 1

            lists = luxury_plot_lists_in_region(tile_map, region)
            place_luxury_from_lists(tile_map, luxury, max(1, target), lists)

    def place_random_luxuries(self) -> None:
        """Scatter the random luxury types over the whole map, earlier types weighted heavier."""
        tile_map = self.tile_map
        random_types = self.role.luxury_assigned_to_random
        if not random_types:
            return

        # The first two entries of the regional table are the base target and minimum per type
        targets = region_luxury_targets(self.parameters.world_size)
        base_target, loop_target = targets[0], targets[1]
        target = base_target + self.rng.gen_range(0, max(1, self.parameters.civilization_num))
        type_num = len(random_types)

        for index, luxury in enumerate(random_types):
            if type_num * 3 > target:
                num_to_place = 3
            elif type_num > len(RANDOM_LUXURY_RATIOS):
                num_to_place = max(3, math.ceil(target / 10))
            else:
                share = math.ceil(target * RANDOM_LUXURY_RATIOS[type_num - 1][index])
                num_to_place = max(max(3, loop_target - index), share)

            lists = global_luxury_plot_lists(tile_map)
            place_luxury_from_lists(
                tile_map, luxury, num_to_place, lists,
                ratio=0.25, layer=Layer.LUXURY, min_radius=4, max_radius=6,
            )

    def place_second_luxury_at_starts(self) -> None:
        """Add one luxury of another type at each start: random, then city-state, then other regions."""
        tile_map = self.tile_map
        role = self.role
        for region in tile_map.region_list:
            start = region.starting_tile
            if start is None:
                continue
            allowed = allowed_luxuries_at_city_site(tile_map, start, 2)

            candidates = [lux for lux in role.luxury_assigned_to_random if lux in allowed]
            if self.parameters.resource_setting != ResourceSetting.STRATEGIC_BALANCE:
                candidates += [lux for lux in role.luxury_assigned_to_special_case if lux in allowed]
            if not candidates:
                candidates = [lux for lux in role.luxury_assigned_to_city_state if lux in allowed]
            if not candidates:
                candidates = [
                    lux for lux in role.luxury_assigned_to_regions
                    if lux in allowed and lux != region.luxury_resource
                ]
            if not candidates:
                continue

            luxury = self.rng.choice(candidates)
            lists = luxury_plot_lists_at_city_site(tile_map, start, 2)
            place_luxury_from_lists(tile_map, luxury, 1, lists)

    def place_marble(self) -> None:
        """Place Marble on open flat or hill land, spaced by its own layer."""
        tile_map = self.tile_map
        civilization_num = self.parameters.civilization_num
        per_civilization = MARBLE_PER_CIVILIZATION.get(
            self.parameters.resource_setting, DEFAULT_MARBLE_PER_CIVILIZATION
        )
        target = math.ceil(civilization_num * per_civilization)
        already_placed = int((tile_map.resource == Resource.MARBLE).sum())

        fresh = tile_map.freshwater_mask()
        no_feature = tile_map.feature < 0
        terrain_type = tile_map.terrain_type
        base = tile_map.base_terrain
        flat = no_feature & (terrain_type == TerrainType.FLATLAND) & (
            ((base == BaseTerrain.GRASSLAND) & ~fresh)
            | (base == BaseTerrain.DESERT)
            | ((base == BaseTerrain.PLAIN) & ~fresh)
            | (base == BaseTerrain.TUNDRA)
        )
        hill = no_feature & (terrain_type == TerrainType.HILL) & (base != BaseTerrain.SNOW)
        candidates = [int(tile) for tile in np.flatnonzero(flat | hill)]
        if not candidates:
            logger.warning("No tile can hold Marble")
            return

        left = max(2, target - already_placed)
        self.rng.shuffle(candidates)
        luxury_impact = tile_map.layer_impact[Layer.LUXURY]
        marble_impact = tile_map.layer_impact[Layer.MARBLE]
        for tile in candidates:
            if left <= 0:
                break
            if tile_map.has_resource(tile) or marble_impact[tile] != 0 or luxury_impact[tile] != 0:
                continue
            tile_map.set_resource(tile, Resource.MARBLE, 1)
            tile_map.place_impact_and_ripples(tile, Layer.MARBLE)
            left -= 1

        if left > 0:
            logger.warning("Could not place all Marble", missing=left)


def place_luxury_resources(tile_map: TileMap) -> None:
    LuxuryPlacer(tile_map).place_luxury_resources()
