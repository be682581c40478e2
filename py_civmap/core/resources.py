"""
Strategic and bonus resources.

This module implements:
- Resource quantities per resource setting
- Strategic placement: frequency lists per terrain, minor strategics near
  city states, small deposits on flatland, oil in the sea and top-ups for
  scarce types
- Bonus placement: fish, a bonus in the third ring of every start, extra
  food in hill regions and frequency lists per terrain
- Sugar on jungle turned into marsh
"""

import math
from typing import Dict, List, Sequence, Tuple

import numpy as np
import structlog

from ..config.map_parameters import RegionDivideMethod, ResourceSetting
from .luxuries import (
    DESERT_FLAT_NO_FEATURE,
    DRY_GRASS_FLAT_NO_FEATURE,
    FOREST_FLAT_NOT_TUNDRA,
    HILL_COVERED,
    HILL_OPEN,
    MARSH,
    PLAIN_FLAT_NO_FEATURE,
    TUNDRA_FLAT_INCLUDING_FOREST,
    luxury_plot_lists_at_city_site,
)
from .regions import Region
from .tile_map import BaseTerrain, Feature, Layer, RegionType, Resource, ResourceToPlace, TerrainType, TileMap

logger = structlog.get_logger()

MAJOR_STRATEGIC_QUANTITIES = {
    ResourceSetting.SPARSE: {
        Resource.URANIUM: 2, Resource.HORSES: 4, Resource.OIL: 5,
        Resource.IRON: 4, Resource.COAL: 5, Resource.ALUMINUM: 5,
    },
    ResourceSetting.ABUNDANT: {
        Resource.URANIUM: 4, Resource.HORSES: 6, Resource.OIL: 9,
        Resource.IRON: 9, Resource.COAL: 10, Resource.ALUMINUM: 10,
    },
}
DEFAULT_MAJOR_STRATEGIC_QUANTITIES = {
    Resource.URANIUM: 4, Resource.HORSES: 4, Resource.OIL: 7,
    Resource.IRON: 6, Resource.COAL: 7, Resource.ALUMINUM: 8,
}

SMALL_STRATEGIC_QUANTITIES = {
    ResourceSetting.SPARSE: {
        Resource.URANIUM: 1, Resource.HORSES: 1, Resource.OIL: 2,
        Resource.IRON: 1, Resource.COAL: 2, Resource.ALUMINUM: 2,
    },
    ResourceSetting.ABUNDANT: {
        Resource.URANIUM: 3, Resource.HORSES: 3, Resource.OIL: 3,
        Resource.IRON: 3, Resource.COAL: 3, Resource.ALUMINUM: 3,
    },
}
DEFAULT_SMALL_STRATEGIC_QUANTITIES = {
    Resource.URANIUM: 2, Resource.HORSES: 2, Resource.OIL: 3,
    Resource.IRON: 2, Resource.COAL: 3, Resource.ALUMINUM: 3,
}

# Luxury plot lists searched for each modern strategic next to a city state
CITY_STATE_STRATEGIC_PLOT_PRIORITY = (
    (Resource.COAL, (HILL_OPEN, HILL_COVERED, TUNDRA_FLAT_INCLUDING_FOREST,
                     DRY_GRASS_FLAT_NO_FEATURE, PLAIN_FLAT_NO_FEATURE, DESERT_FLAT_NO_FEATURE)),
    (Resource.OIL, (DESERT_FLAT_NO_FEATURE, MARSH, TUNDRA_FLAT_INCLUDING_FOREST,
                    FOREST_FLAT_NOT_TUNDRA, DRY_GRASS_FLAT_NO_FEATURE, PLAIN_FLAT_NO_FEATURE)),
    (Resource.ALUMINUM, (HILL_OPEN, HILL_COVERED, TUNDRA_FLAT_INCLUDING_FOREST,
                         DESERT_FLAT_NO_FEATURE, PLAIN_FLAT_NO_FEATURE, DRY_GRASS_FLAT_NO_FEATURE)),
)

# Bonus put in the third ring of a start, by region type
START_BONUS_BY_REGION_TYPE = {
    RegionType.TUNDRA: Resource.DEER,
    RegionType.JUNGLE: Resource.BANANAS,
    RegionType.FOREST: Resource.DEER,
    RegionType.DESERT: Resource.WHEAT,
    RegionType.HILL: Resource.SHEEP,
    RegionType.PLAIN: Resource.WHEAT,
    RegionType.GRASSLAND: Resource.CATTLE,
    RegionType.HYBRID: Resource.CATTLE,
}


def major_strategic_quantities(resource_setting: ResourceSetting) -> Dict[Resource, int]:
    """Units per tile of a regular strategic deposit."""
    return MAJOR_STRATEGIC_QUANTITIES.get(resource_setting, DEFAULT_MAJOR_STRATEGIC_QUANTITIES)


def small_strategic_quantities(resource_setting: ResourceSetting) -> Dict[Resource, int]:
    """Units per tile of a small strategic deposit."""
    return SMALL_STRATEGIC_QUANTITIES.get(resource_setting, DEFAULT_SMALL_STRATEGIC_QUANTITIES)


def bonus_multiplier(resource_setting: ResourceSetting) -> float:
    """Scale of the tiles-per-resource frequencies."""
    if resource_setting == ResourceSetting.SPARSE:
        return 1.5
    if resource_setting == ResourceSetting.ABUNDANT:
        return 2.0 / 3.0
    return 1.0


def placed_resource_count(tile_map: TileMap, resource: Resource) -> int:
    """Total units of ``resource`` on the map."""
    return int(tile_map.resource_quantity[tile_map.resource == resource].sum())


def _is_open_coast(tile_map: TileMap, tile: int) -> bool:
    return (
        tile_map.base_terrain[tile] == BaseTerrain.COAST
        and tile_map.feature[tile] not in (Feature.ICE, Feature.ATOLL)
    )


def _free_tiles(tile_map: TileMap) -> np.ndarray:
    """Tiles not claimed by a player and holding no resource, in index order."""
    return np.flatnonzero(~tile_map.player_collision & (tile_map.resource < 0))


class StrategicResourcePlacer:
    """Places Horses, Iron, Coal, Oil, Aluminum and Uranium."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.rng = tile_map.rng
        self.parameters = tile_map.parameters
        self.quantities = major_strategic_quantities(self.parameters.resource_setting)

    def plot_lists(self) -> Dict[str, List[int]]:
        """Shuffled candidate lists keyed by terrain class."""
        tile_map = self.tile_map
        fresh = tile_map.freshwater_mask()
        lists: Dict[str, List[int]] = {
            name: [] for name in (
                "coast", "flatland", "jungle_flat", "forest_flat", "marsh", "snow_flat",
                "dry_grass_flat_no_feature", "plain_flat_no_feature", "tundra_flat_no_feature",
                "desert_flat_no_feature", "hill",
            )
        }

        for tile in _free_tiles(tile_map):
            tile = int(tile)
            terrain_type = tile_map.terrain_type[tile]
            base = tile_map.base_terrain[tile]
            feature = tile_map.get_feature(tile)

            if terrain_type == TerrainType.WATER:
                if _is_open_coast(tile_map, tile):
                    lists["coast"].append(tile)
            elif terrain_type == TerrainType.FLATLAND:
                if feature in (None, Feature.FOREST, Feature.JUNGLE):
                    lists["flatland"].append(tile)
                if feature == Feature.FOREST:
                    lists["forest_flat"].append(tile)
                elif feature == Feature.JUNGLE:
                    lists["jungle_flat"].append(tile)
                elif feature == Feature.MARSH:
                    lists["marsh"].append(tile)
                elif feature is None:
                    if base == BaseTerrain.GRASSLAND and not fresh[tile]:
                        lists["dry_grass_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.DESERT:
                        lists["desert_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.PLAIN:
                        lists["plain_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.TUNDRA:
                        lists["tundra_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.SNOW:
                        lists["snow_flat"].append(tile)
            elif terrain_type == TerrainType.HILL and base != BaseTerrain.SNOW:
                lists["hill"].append(tile)

        for tile_list in lists.values():
            self.rng.shuffle(tile_list)
        return lists

    def _item(self, resource: Resource, weight: int, min_radius: int, max_radius: int) -> ResourceToPlace:
        return ResourceToPlace(resource, self.quantities[resource], weight, min_radius, max_radius)

    def place_strategic_resources(self) -> None:
        tile_map = self.tile_map
        logger.info("Placing strategic resources", setting=self.parameters.resource_setting.value)
        lists = self.plot_lists()
        item = self._item

        frequency_lists: Sequence[Tuple[float, str, List[ResourceToPlace]]] = (
            (9, "marsh", [item(Resource.OIL, 65, 1, 1), item(Resource.URANIUM, 35, 0, 1)]),
            (16, "tundra_flat_no_feature", [
                item(Resource.OIL, 40, 1, 2), item(Resource.ALUMINUM, 15, 1, 2), item(Resource.IRON, 45, 1, 2),
            ]),
            (17, "snow_flat", [
                item(Resource.OIL, 60, 1, 1), item(Resource.ALUMINUM, 15, 2, 3), item(Resource.IRON, 25, 2, 3),
            ]),
            (13, "desert_flat_no_feature", [item(Resource.OIL, 65, 0, 1), item(Resource.IRON, 35, 1, 1)]),
            (22, "hill", [
                item(Resource.IRON, 26, 0, 2), item(Resource.COAL, 35, 1, 3), item(Resource.ALUMINUM, 39, 2, 3),
            ]),
            (33, "jungle_flat", [item(Resource.COAL, 30, 1, 2), item(Resource.URANIUM, 70, 1, 2)]),
            (39, "forest_flat", [item(Resource.COAL, 30, 1, 2), item(Resource.URANIUM, 70, 1, 1)]),
            (33, "dry_grass_flat_no_feature", [item(Resource.HORSES, 100, 2, 5)]),
            (33, "plain_flat_no_feature", [item(Resource.HORSES, 100, 1, 4)]),
        )
        for frequency, name, items in frequency_lists:
            tile_map.process_resource_list(frequency, Layer.STRATEGIC, lists[name], items)

        self.add_modern_minor_strategics_to_city_states()
        self.place_small_quantities_of_strategics(
            23 * bonus_multiplier(self.parameters.resource_setting), lists["flatland"]
        )
        self.place_oil_in_the_sea(lists["coast"])
        self.top_up_scarce_strategics(lists)

        logger.info(
            "Strategic resources placed",
            **{
                resource.name.lower(): placed_resource_count(tile_map, resource)
                for resource in DEFAULT_MAJOR_STRATEGIC_QUANTITIES
            },
        )

    def add_modern_minor_strategics_to_city_states(self) -> None:
        """Give three in four city states a small Coal, Oil or Aluminum deposit nearby."""
        tile_map = self.tile_map
        small = small_strategic_quantities(self.parameters.resource_setting)
        for city_state, _ in tile_map.city_state_starting_tile_and_region_index:
            choice = self.rng.gen_range(0, 4)
            if choice == 3:
                continue
            resource, indices = CITY_STATE_STRATEGIC_PLOT_PRIORITY[choice]
            lists = luxury_plot_lists_at_city_site(tile_map, city_state, 3)
            left = 1
            for index in indices:
                if left <= 0:
                    break
                tile_list = lists[index]
                self.rng.shuffle(tile_list)
                left = tile_map.place_specific_number_of_resources(
                    resource, small[resource], left, 1.0, None, 0, 0, tile_list
                )

    def _small_strategic_for_tile(self, tile: int):
        """Pick the type of a small deposit from the tile's terrain, or None."""
        tile_map = self.tile_map
        rng = self.rng
        terrain_type = tile_map.terrain_type[tile]
        base = tile_map.base_terrain[tile]
        feature = tile_map.get_feature(tile)

        if feature == Feature.FOREST:
            roll = rng.gen_range(0, 4)
            return (Resource.URANIUM, Resource.COAL)[roll] if roll < 2 else Resource.IRON
        if feature == Feature.JUNGLE:
            roll = rng.gen_range(0, 4)
            if roll == 0:
                return Resource.IRON if terrain_type == TerrainType.HILL else Resource.OIL
            return Resource.COAL if roll == 1 else Resource.ALUMINUM
        if feature == Feature.MARSH:
            roll = rng.gen_range(0, 4)
            return (Resource.IRON, Resource.COAL)[roll] if roll < 2 else Resource.OIL
        if feature is not None:
            return None

        if terrain_type == TerrainType.FLATLAND:
            if base == BaseTerrain.GRASSLAND:
                if tile_map.is_freshwater(tile):
                    return Resource.HORSES
                return Resource.IRON if rng.gen_range(0, 5) < 3 else Resource.HORSES
            if base == BaseTerrain.DESERT:
                return (Resource.IRON, Resource.ALUMINUM, Resource.OIL)[rng.gen_range(0, 3)]
            if base == BaseTerrain.PLAIN:
                return Resource.IRON if rng.gen_range(0, 5) < 2 else Resource.HORSES
            roll = rng.gen_range(0, 4)
            return (Resource.IRON, Resource.URANIUM)[roll] if roll < 2 else Resource.OIL
        if terrain_type == TerrainType.HILL:
            roll = rng.gen_range(0, 5)
            if base in (BaseTerrain.GRASSLAND, BaseTerrain.PLAIN) and roll == 2:
                return Resource.HORSES
            return Resource.IRON if roll < 2 else Resource.COAL
        return None

    def place_small_quantities_of_strategics(self, frequency: float, tile_list: Sequence[int]) -> None:
        """Scatter small deposits over ``tile_list`` at one per ``frequency`` tiles."""
        tile_map = self.tile_map
        if not tile_list:
            return
        small = small_strategic_quantities(self.parameters.resource_setting)
        left = math.ceil(len(tile_list) / frequency)
        impact = tile_map.layer_impact[Layer.STRATEGIC]

        for tile in tile_list:
            if left <= 0:
                break
            if impact[tile] != 0 or tile_map.has_resource(tile):
                continue
            resource = self._small_strategic_for_tile(tile)
            if resource is None:
                continue
            # Radius 1 is twice as likely as 0 or 2
            radius = self.rng.gen_range(0, 4)
            if radius > 2:
                radius = 1
            tile_map.place_resource(tile, resource, small[resource])
            tile_map.place_impact_and_ripples(tile, Layer.STRATEGIC, radius)
            left -= 1

    def place_oil_in_the_sea(self, coast_list: Sequence[int]) -> None:
        """Put half as much oil as there is on land into coastal waters."""
        tile_map = self.tile_map
        sea_oil_quantity = 6 if self.parameters.resource_setting == ResourceSetting.ABUNDANT else 4
        land_oil = placed_resource_count(tile_map, Resource.OIL)
        num_to_place = int(land_oil / 2 / sea_oil_quantity)
        tile_map.place_specific_number_of_resources(
            Resource.OIL, sea_oil_quantity, num_to_place, 0.2, Layer.STRATEGIC, 4, 7, coast_list
        )

    def _add_one(self, resource: Resource, tile_list: List[int]) -> None:
        if tile_list:
            self.tile_map.process_resource_list(
                len(tile_list), Layer.STRATEGIC, tile_list, [self._item(resource, 100, 0, 0)]
            )

    def top_up_scarce_strategics(self, lists: Dict[str, List[int]]) -> None:
        """Add one more deposit of each type that is still scarce."""
        tile_map = self.tile_map
        civilization_num = self.parameters.civilization_num

        def below(resource: Resource, threshold: int) -> bool:
            return placed_resource_count(tile_map, resource) < threshold

        if below(Resource.IRON, 8):
            self._add_one(Resource.IRON, lists["hill"])
        if below(Resource.IRON, 4 * civilization_num):
            self._add_one(Resource.IRON, lists["flatland"])
        if below(Resource.HORSES, 4 * civilization_num):
            self._add_one(Resource.HORSES, lists["plain_flat_no_feature"])
        if below(Resource.HORSES, 4 * civilization_num):
            self._add_one(Resource.HORSES, lists["dry_grass_flat_no_feature"])
        if below(Resource.COAL, 8):
            self._add_one(Resource.COAL, lists["hill"])
        if below(Resource.COAL, 4 * civilization_num):
            self._add_one(Resource.COAL, lists["flatland"])
        if below(Resource.OIL, 4 * civilization_num):
            self._add_one(Resource.OIL, lists["flatland"])
        if below(Resource.ALUMINUM, 4 * civilization_num):
            self._add_one(Resource.ALUMINUM, lists["hill"])
        if below(Resource.URANIUM, 2 * civilization_num):
            self._add_one(Resource.URANIUM, lists["flatland"])


def place_strategic_resources(tile_map: TileMap) -> None:
    StrategicResourcePlacer(tile_map).place_strategic_resources()


class BonusResourcePlacer:
    """Places food and production bonus resources."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.rng = tile_map.rng
        self.parameters = tile_map.parameters

    def plot_lists(self) -> Dict[str, List[int]]:
        """Shuffled candidate lists keyed by terrain class."""
        tile_map = self.tile_map
        fresh = tile_map.freshwater_mask()
        lists: Dict[str, List[int]] = {
            name: [] for name in (
                "extra_deer", "desert_wheat", "banana", "coast", "hill_open",
                "dry_grass_flat_no_feature", "grass_flat_no_feature", "plain_flat_no_feature",
                "tundra_flat_no_feature", "desert_flat_no_feature", "forest_flat_not_tundra",
            )
        }

        for tile in _free_tiles(tile_map):
            tile = int(tile)
            terrain_type = tile_map.terrain_type[tile]
            base = tile_map.base_terrain[tile]
            feature = tile_map.get_feature(tile)

            if base == BaseTerrain.TUNDRA and feature == Feature.FOREST:
                lists["extra_deer"].append(tile)
            if feature == Feature.FLOODPLAIN or (
                terrain_type == TerrainType.FLATLAND
                and base == BaseTerrain.DESERT
                and feature is None
                and fresh[tile]
            ):
                lists["desert_wheat"].append(tile)
            if feature == Feature.JUNGLE:
                lists["banana"].append(tile)

            if terrain_type == TerrainType.WATER:
                if _is_open_coast(tile_map, tile):
                    lists["coast"].append(tile)
            elif terrain_type == TerrainType.FLATLAND:
                if feature == Feature.FOREST and base != BaseTerrain.TUNDRA:
                    lists["forest_flat_not_tundra"].append(tile)
                elif feature is None:
                    if base == BaseTerrain.GRASSLAND:
                        lists["grass_flat_no_feature"].append(tile)
                        if not fresh[tile]:
                            lists["dry_grass_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.DESERT:
                        lists["desert_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.PLAIN:
                        lists["plain_flat_no_feature"].append(tile)
                    elif base == BaseTerrain.TUNDRA:
                        lists["tundra_flat_no_feature"].append(tile)
            elif terrain_type == TerrainType.HILL and base != BaseTerrain.SNOW and feature is None:
                lists["hill_open"].append(tile)

        for tile_list in lists.values():
            self.rng.shuffle(tile_list)
        return lists

    def place_bonus_resources(self) -> None:
        tile_map = self.tile_map
        logger.info("Placing bonus resources", setting=self.parameters.resource_setting.value)
        multiplier = bonus_multiplier(self.parameters.resource_setting)
        lists = self.plot_lists()

        self.place_fish(10 * multiplier, lists["coast"])
        self.place_bonus_at_civilization_starts()
        self.add_extra_bonuses_to_hill_regions()

        frequency_lists = (
            (8, "extra_deer", Resource.DEER, 1, 2),
            (10, "desert_wheat", Resource.WHEAT, 0, 2),
            (12, "tundra_flat_no_feature", Resource.DEER, 1, 2),
            (14, "banana", Resource.BANANAS, 0, 3),
            (50, "plain_flat_no_feature", Resource.WHEAT, 2, 3),
            (60, "plain_flat_no_feature", Resource.BISON, 2, 3),
            (18, "grass_flat_no_feature", Resource.CATTLE, 1, 2),
            (30, "dry_grass_flat_no_feature", Resource.STONE, 1, 1),
            (50, "dry_grass_flat_no_feature", Resource.BISON, 1, 1),
            (13, "hill_open", Resource.SHEEP, 1, 1),
            (15, "tundra_flat_no_feature", Resource.STONE, 1, 2),
            (19, "desert_flat_no_feature", Resource.STONE, 1, 2),
            (25, "forest_flat_not_tundra", Resource.DEER, 3, 4),
        )
        for frequency, name, resource, min_radius, max_radius in frequency_lists:
            tile_map.process_resource_list(
                frequency * multiplier,
                Layer.BONUS,
                lists[name],
                [ResourceToPlace(resource, 1, 100, min_radius, max_radius)],
            )

        bonus = [int(r) for r in Resource if r <= Resource.BISON]
        logger.info("Bonus resources placed", bonus=int(np.isin(tile_map.resource, bonus).sum()))

    def place_fish(self, frequency: float, coast_list: Sequence[int]) -> None:
        """Place fish on coast tiles spaced by the fish layer."""
        tile_map = self.tile_map
        if not coast_list:
            return
        left = math.ceil(len(coast_list) / frequency)
        impact = tile_map.layer_impact[Layer.FISH]
        for tile in coast_list:
            if left <= 0:
                break
            if impact[tile] != 0 or tile_map.has_resource(tile):
                continue
            # Radius 3 is twice as likely as the other values in 0..5
            radius = self.rng.gen_range(0, 7)
            if radius > 5:
                radius = 3
            tile_map.place_resource(tile, Resource.FISH, 1)
            tile_map.place_impact_and_ripples(tile, Layer.FISH, radius)
            left -= 1

    def _start_bonus_fits(self, resource: Resource, tile: int) -> bool:
        tile_map = self.tile_map
        terrain_type = tile_map.terrain_type[tile]
        base = tile_map.base_terrain[tile]
        feature = tile_map.get_feature(tile)
        if resource == Resource.DEER:
            return feature == Feature.FOREST or (
                terrain_type == TerrainType.FLATLAND and base == BaseTerrain.TUNDRA
            )
        if resource == Resource.BANANAS:
            return feature == Feature.JUNGLE
        if resource == Resource.WHEAT:
            if terrain_type != TerrainType.FLATLAND:
                return False
            return (
                (base == BaseTerrain.PLAIN and feature is None)
                or feature == Feature.FLOODPLAIN
                or (base == BaseTerrain.DESERT and tile_map.is_freshwater(tile))
            )
        if resource == Resource.SHEEP:
            return (
                terrain_type == TerrainType.HILL
                and feature is None
                and base in (BaseTerrain.PLAIN, BaseTerrain.GRASSLAND, BaseTerrain.TUNDRA)
            )
        if resource == Resource.CATTLE:
            return terrain_type == TerrainType.FLATLAND and feature is None and base == BaseTerrain.GRASSLAND
        return False

    def place_bonus_at_civilization_starts(self) -> None:
        """
        Put one bonus matching the region type in the third ring of every start.

        Hill regions get a second sheep when there is room; starts without a
        fitting land tile get fish instead.
        """
        tile_map = self.tile_map
        for region in tile_map.region_list:
            resource = START_BONUS_BY_REGION_TYPE.get(region.region_type)
            if resource is None or region.starting_tile is None:
                continue

            plot_list, fish_list = [], []
            for tile in tile_map.grid.tiles_at_distance(region.starting_tile, 3):
                if self._start_bonus_fits(resource, tile):
                    plot_list.append(tile)
                if _is_open_coast(tile_map, tile):
                    fish_list.append(tile)

            if plot_list:
                self.rng.shuffle(plot_list)
                tile_map.place_specific_number_of_resources(resource, 1, 1, 1.0, None, 0, 0, plot_list)
                if len(plot_list) > 1 and resource == Resource.SHEEP:
                    tile_map.place_specific_number_of_resources(resource, 1, 1, 1.0, None, 0, 0, plot_list)
            elif fish_list:
                self.rng.shuffle(fish_list)
                tile_map.place_specific_number_of_resources(Resource.FISH, 1, 1, 1.0, None, 0, 0, fish_list)

    def _infertility_quotient(self, region: Region) -> float:
        statistic = region.terrain_statistic
        terrain = statistic.terrain_type_num
        base = statistic.base_terrain_num
        rugged = int(terrain[TerrainType.HILL] + terrain[TerrainType.MOUNTAIN])
        farmland = int(base[BaseTerrain.GRASSLAND] + base[BaseTerrain.PLAIN])
        land = int(terrain[TerrainType.HILL] + terrain[TerrainType.FLATLAND])
        if self.parameters.region_divide_method == RegionDivideMethod.WHOLE_MAP_RECTANGLE:
            land += int(terrain[TerrainType.MOUNTAIN])
        if land == 0:
            return 1.0
        return 1.0 + max((rugged - farmland) / land, 0.0)

    def add_extra_bonuses_to_hill_regions(self) -> None:
        """Add food to hill regions, more where rugged land outweighs farmland."""
        tile_map = self.tile_map
        hill_regions = [region for region in tile_map.region_list if region.region_type == RegionType.HILL]
        if not hill_regions:
            return
        self.rng.shuffle(hill_regions)

        for region in hill_regions:
            quotient = self._infertility_quotient(region)
            groups: Dict[str, List[int]] = {
                "dry_hill": [], "jungle": [], "flat_tundra": [], "flat_plain": [], "flat_grass": [], "forest": [],
            }
            for tile in region.rectangle.iter_tiles(tile_map.grid):
                terrain_type = tile_map.terrain_type[tile]
                if tile_map.has_resource(tile) or terrain_type not in (TerrainType.HILL, TerrainType.FLATLAND):
                    continue
                if region.area_id is not None and tile_map.area_id[tile] != region.area_id:
                    continue
                base = tile_map.base_terrain[tile]
                feature = tile_map.get_feature(tile)
                if feature == Feature.FOREST:
                    groups["forest"].append(tile)
                elif feature == Feature.JUNGLE:
                    groups["jungle"].append(tile)
                elif feature == Feature.FLOODPLAIN:
                    groups["flat_plain"].append(tile)
                elif feature is not None:
                    continue
                elif terrain_type == TerrainType.HILL:
                    if (
                        base in (BaseTerrain.GRASSLAND, BaseTerrain.PLAIN, BaseTerrain.TUNDRA)
                        and not tile_map.is_freshwater(tile)
                    ):
                        groups["dry_hill"].append(tile)
                elif base == BaseTerrain.GRASSLAND:
                    groups["flat_grass"].append(tile)
                elif base == BaseTerrain.DESERT:
                    if tile_map.is_freshwater(tile):
                        groups["flat_plain"].append(tile)
                elif base == BaseTerrain.PLAIN:
                    groups["flat_plain"].append(tile)
                elif base == BaseTerrain.TUNDRA:
                    groups["flat_tundra"].append(tile)

            placements = (
                ("dry_hill", 9, Resource.SHEEP, 0, 1),
                ("jungle", 14, Resource.BANANAS, 1, 2),
                ("flat_tundra", 14, Resource.DEER, 0, 1),
                ("flat_plain", 18, Resource.WHEAT, 0, 2),
                ("flat_grass", 20, Resource.CATTLE, 0, 2),
                ("forest", 24, Resource.DEER, 1, 2),
            )
            for name, frequency, resource, min_radius, max_radius in placements:
                if groups[name]:
                    self.rng.shuffle(groups[name])
                    tile_map.process_resource_list(
                        frequency / quotient,
                        Layer.BONUS,
                        groups[name],
                        [ResourceToPlace(resource, 1, 100, min_radius, max_radius)],
                    )


def place_bonus_resources(tile_map: TileMap) -> None:
    BonusResourcePlacer(tile_map).place_bonus_resources()


def fix_sugar_jungles(tile_map: TileMap) -> None:
    """Turn jungle tiles holding Sugar into grassland marsh."""
    mask = (tile_map.resource == Resource.SUGAR) & (tile_map.feature == Feature.JUNGLE)
    tile_map.terrain_type[mask] = TerrainType.FLATLAND
    tile_map.base_terrain[mask] = BaseTerrain.GRASSLAND
    tile_map.feature[mask] = Feature.MARSH
    if mask.any():
        logger.info("Sugar jungles fixed", tiles=int(mask.sum()))
