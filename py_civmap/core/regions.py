"""
Regions and civilization starting tiles.

This module implements:
- Start placement fertility per tile
- Region generation for the four divide methods (Pangaea, Continent,
  WholeMapRectangle, CustomRectangle)
- Recursive chopping of a region into as many regions as it has civilizations,
  with dead edge rows and columns trimmed after every cut
- Terrain statistics and region types
- Civilization starting tiles chosen with a centre bias and scored on the
  food, production and "good" tiles within three rings
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..config.map_parameters import HexOrientation, Offset, Rectangle, RegionDivideMethod
from .tile_map import BaseTerrain, Feature, Layer, RegionType, Resource, TerrainType, TileMap

logger = structlog.get_logger()

# Uneven divisions: divisions -> (first part, second part)
UNEVEN_CHOPS = {
    5: (3, 2),
    7: (3, 4),
    11: (3, 8),
    13: (5, 8),
    17: (9, 8),
    19: (7, 12),
}

CENTER_BIAS = 1.0 / 3.0
MIDDLE_BIAS = 2.0 / 3.0

# Ring scoring tables, indexed by the running totals
FOOD_INNER = (0, 8, 14, 19, 22, 24, 25)
PRODUCTION_INNER = (0, 10, 16, 20, 20, 12, 0)
FOOD_MIDDLE = (0, 2, 5, 10, 20, 25, 28, 30, 32, 34, 35)
PRODUCTION_MIDDLE = (0, 10, 20, 25, 30, 35)

# Minimum (food, production, good) after each ring
MIN_INNER = (1, 0, 3)
MIN_MIDDLE = (4, 0, 6)
MIN_OUTER = (4, 2, 8)
MAX_JUNK = 9

COASTAL_START_SCORE = 40


def fertility_map(tile_map: TileMap, check_coastal_land: bool) -> np.ndarray:
    """
    Start placement fertility of every tile.

    Args:
        tile_map: Tile store
        check_coastal_land: Add the coastal land bonus (landmass regions only)

    Returns:
        int32 array indexed by tile
    """
    terrain_type = tile_map.terrain_type
    base = tile_map.base_terrain
    feature = tile_map.feature

    fertility = (terrain_type == TerrainType.HILL).astype(np.int32)
    fertility += np.select(
        [
            base == BaseTerrain.GRASSLAND,
            base == BaseTerrain.PLAIN,
            np.isin(base, (BaseTerrain.COAST, BaseTerrain.LAKE, BaseTerrain.TUNDRA)),
            base == BaseTerrain.DESERT,
        ],
        [3, 4, 2, 1],
        default=0,
    ).astype(np.int32)
    fertility -= np.isin(feature, (Feature.JUNGLE, Feature.ICE)).astype(np.int32)
    fertility -= 2 * (feature == Feature.MARSH).astype(np.int32)
    fertility += tile_map.river_mask().astype(np.int32)
    fertility += tile_map.freshwater_mask().astype(np.int32)
    if check_coastal_land:
        fertility += 2 * tile_map.coastal_land_mask().astype(np.int32)

    # Later assignments take precedence
    fertility = np.where(feature == Feature.OASIS, 4, fertility)
    fertility = np.where(feature == Feature.FLOODPLAIN, 5, fertility)
    fertility = np.where(base == BaseTerrain.SNOW, -1, fertility)
    fertility = np.where(terrain_type == TerrainType.MOUNTAIN, -2, fertility)
    return fertility.astype(np.int32)


def rectangle_indices(rectangle: Rectangle, grid) -> np.ndarray:
    """Tile indices of ``rectangle`` as a (height, width) array, south row first."""
    ys = (rectangle.south_y + np.arange(rectangle.height)) % grid.height
    xs = (rectangle.west_x + np.arange(rectangle.width)) % grid.width
    return ys[:, None] * grid.width + xs[None, :]


@dataclass
class TerrainStatistic:
    """Tile counts of a region; land counts only include the region's area."""
    terrain_type_num: np.ndarray = field(default_factory=lambda: np.zeros(len(TerrainType), dtype=np.int64))
    base_terrain_num: np.ndarray = field(default_factory=lambda: np.zeros(len(BaseTerrain), dtype=np.int64))
    feature_num: np.ndarray = field(default_factory=lambda: np.zeros(len(Feature), dtype=np.int64))
    river_num: int = 0
    coastal_land_num: int = 0
    next_to_coastal_land_num: int = 0


@dataclass
class StartLocationCondition:
    """Surroundings of a starting tile, used to match nations to starts."""
    along_ocean: bool = False
    next_to_lake: bool = False
    is_river: bool = False
    near_river: bool = False  # River within two rings, the start itself excluded
    near_mountain: bool = False
    forest_count: int = 0
    jungle_count: int = 0


@dataclass
class Region:
    """
    Rectangular part of the map that hosts one civilization.

    ``fertility`` has one row per rectangle row (south first). When ``area_id``
    is set, only tiles of that area count towards the region.
    """
    rectangle: Rectangle
    area_id: Optional[int]
    fertility: np.ndarray
    terrain_statistic: TerrainStatistic = field(default_factory=TerrainStatistic)
    region_type: RegionType = RegionType.UNDEFINED
    starting_tile: Optional[int] = None
    start_location_condition: StartLocationCondition = field(default_factory=StartLocationCondition)
    luxury_resource: Optional[Resource] = None

    @property
    def fertility_sum(self) -> int:
        return int(self.fertility.sum())

    @property
    def tile_count(self) -> int:
        return int(self.fertility.size)

    @property
    def average_fertility(self) -> float:
        if self.tile_count == 0:
            return 0.0
        return self.fertility_sum / self.tile_count

    def tile_indices(self, grid) -> np.ndarray:
        return rectangle_indices(self.rectangle, grid)

    def remove_dead_rows_and_columns(self, grid) -> None:
        """Trim edge rows and columns whose fertility is all zero."""
        live = self.fertility != 0
        if not live.any():
            return
        rows = np.nonzero(live.any(axis=1))[0]
        columns = np.nonzero(live.any(axis=0))[0]
        south, north = int(rows[0]), int(rows[-1])
        west, east = int(columns[0]), int(columns[-1])
        height, width = self.fertility.shape
        if (south, north, west, east) == (0, height - 1, 0, width - 1):
            return
        self.rectangle = Rectangle(
            west_x=(self.rectangle.west_x + west) % grid.width,
            south_y=(self.rectangle.south_y + south) % grid.height,
            width=east - west + 1,
            height=north - south + 1,
        )
        self.fertility = self.fertility[south:north + 1, west:east + 1].copy()

    def determine_region_type(self) -> None:
        statistic = self.terrain_statistic
        terrain = statistic.terrain_type_num
        base = statistic.base_terrain_num
        feature = statistic.feature_num

        flat_and_hill = int(terrain[TerrainType.FLATLAND] + terrain[TerrainType.HILL])
        tundra = int(base[BaseTerrain.TUNDRA] + base[BaseTerrain.SNOW])
        jungle = int(feature[Feature.JUNGLE])
        forest = int(feature[Feature.FOREST])
        desert = int(base[BaseTerrain.DESERT])
        plain = int(base[BaseTerrain.PLAIN])
        grass = int(base[BaseTerrain.GRASSLAND])
        hill = int(terrain[TerrainType.HILL])

        def share(percent: int, per: int = 100) -> int:
            return flat_and_hill * percent // per

        if tundra >= share(30):
            region_type = RegionType.TUNDRA
        elif jungle >= share(30) or (jungle >= share(20) and jungle + forest >= share(35)):
            region_type = RegionType.JUNGLE
        elif forest >= share(30) or (forest >= share(20) and jungle + forest >= share(35)):
            region_type = RegionType.FOREST
        elif desert >= share(25):
            region_type = RegionType.DESERT
        elif hill >= share(415, 1000):
            region_type = RegionType.HILL
        elif plain >= share(30) and plain * 70 // 100 > grass:
            region_type = RegionType.PLAIN
        elif grass >= share(30) and grass * 70 // 100 > plain:
            region_type = RegionType.GRASSLAND
        elif (
            grass + plain + desert + tundra + hill + int(terrain[TerrainType.MOUNTAIN])
        ) > share(80):
            region_type = RegionType.HYBRID
        else:
            region_type = RegionType.UNDEFINED
        self.region_type = region_type


class RegionGenerator:
    """Splits the map into one region per civilization."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.parameters = tile_map.parameters
        self._river = tile_map.river_mask()
        self._coastal_land = tile_map.coastal_land_mask()
        self._next_to_coastal_land = (
            ~tile_map.water_mask() & ~self._coastal_land & tile_map.neighbor_any(self._coastal_land)
        )

    def generate(self) -> List[Region]:
        tile_map = self.tile_map
        method = self.parameters.region_divide_method
        civilization_num = self.parameters.civilization_num
        logger.info("Generating regions", method=method.value, civilizations=civilization_num)

        tile_map.region_list = []
        if method == RegionDivideMethod.PANGAEA:
            land_areas = self.land_area_ids()
            assert land_areas, "Map has no land area to divide"
            biggest = max(land_areas, key=lambda area: tile_map.area_list[area].size)
            self.divide_into_regions(self.landmass_region(biggest), civilization_num)
        elif method == RegionDivideMethod.CONTINENT:
            self._divide_continents(civilization_num)
        else:
            if method == RegionDivideMethod.WHOLE_MAP_RECTANGLE:
                rectangle = Rectangle(west_x=0, south_y=0, width=tile_map.width, height=tile_map.height)
            else:
                rectangle = self.parameters.custom_rectangle
            self.divide_into_regions(self.rectangle_region(rectangle), civilization_num)

        logger.info(
            "Regions generated",
            regions=len(tile_map.region_list),
            region_types=[region.region_type.name for region in tile_map.region_list],
        )
        return tile_map.region_list

    def land_area_ids(self) -> List[int]:
        """Areas that are neither water nor mountains, ascending."""
        return [
            area.id for area in self.tile_map.area_list
            if not area.is_water and not area.is_mountain
        ]

    def _divide_continents(self, civilization_num: int) -> None:
        regions = [self.landmass_region(area) for area in self.land_area_ids()]
        regions.sort(key=lambda region: region.fertility_sum)
        best = regions[::-1][:min(len(regions), civilization_num)]
        assert best, "Map has no land area to divide"

        civs_on_landmass = [0] * len(best)
        for _ in range(civilization_num):
            chosen = 0
            chosen_score = None
            # Ties go to the later landmass
            for index, region in enumerate(best):
                score = region.fertility_sum / (civs_on_landmass[index] + 1.0)
                if chosen_score is None or score >= chosen_score:
                    chosen = index
                    chosen_score = score
            civs_on_landmass[chosen] += 1

        for region, civs in zip(best, civs_on_landmass):
            if civs > 0:
                self.divide_into_regions(region, civs)

    def landmass_region(self, area: int) -> Region:
        rectangle = self.landmass_boundaries(area)
        indices = rectangle_indices(rectangle, self.grid)
        fertility = np.where(
            self.tile_map.area_id[indices] == area,
            fertility_map(self.tile_map, check_coastal_land=True)[indices],
            0,
        ).astype(np.int32)
        return Region(rectangle=rectangle, area_id=area, fertility=fertility)

    def rectangle_region(self, rectangle: Rectangle) -> Region:
        indices = rectangle_indices(rectangle, self.grid)
        fertility = fertility_map(self.tile_map, check_coastal_land=False)[indices]
        region = Region(rectangle=rectangle, area_id=None, fertility=fertility.astype(np.int32))
        region.remove_dead_rows_and_columns(self.grid)
        return region

    def landmass_boundaries(self, area: int) -> Rectangle:
        """Smallest (possibly wrapping) rectangle holding every tile of ``area``."""
        grid = self.grid
        member = (self.tile_map.area_id == area).reshape(grid.height, grid.width)
        west_x, width = _span(member.any(axis=0), grid.wrap_x)
        south_y, height = _span(member.any(axis=1), grid.wrap_y)
        return Rectangle(west_x=west_x, south_y=south_y, width=width, height=height)

    def divide_into_regions(self, region: Region, divisions: int) -> None:
        stack: List[Tuple[Region, int]] = [(region, divisions)]
        while stack:
            current, count = stack.pop()
            if count == 1:
                self.measure_terrain(current)
                current.determine_region_type()
                self.tile_map.region_list.append(current)
            elif count == 2:
                first, second = self.chop_into_two_regions(current, 50.0)
                stack.extend([(first, 1), (second, 1)])
            elif count == 3:
                stack.extend((part, 1) for part in self.chop_into_three_regions(current))
            elif count in UNEVEN_CHOPS:
                first_count, second_count = UNEVEN_CHOPS[count]
                first, second = self.chop_into_two_regions(current, first_count / count * 100.0)
                stack.extend([(first, first_count), (second, second_count)])
            elif count % 3 == 0:
                stack.extend((part, count // 3) for part in self.chop_into_three_regions(current))
            else:
                assert count % 2 == 0, f"Cannot divide a region into {count} parts"
                first, second = self.chop_into_two_regions(current, 50.0)
                stack.extend([(first, count // 2), (second, count // 2)])

    def chop_into_two_regions(self, region: Region, percent: float) -> Tuple[Region, Region]:
        """
        Cut ``region`` across its longer axis.

        The first part takes whole rows (tall regions) or columns from the
        south/west edge until its fertility reaches ``percent`` of the total.
        """
        grid = self.grid
        rectangle = region.rectangle
        target = int(region.fertility_sum * percent / 100.0)
        taller = rectangle.height > rectangle.width

        line_totals = region.fertility.sum(axis=1) if taller else region.fertility.sum(axis=0)
        reached = np.nonzero(np.cumsum(line_totals) >= target)[0]
        cut = int(reached[0]) + 1 if reached.size else len(line_totals)
        # Leave at least one line for the second part
        cut = min(cut, max(len(line_totals) - 1, 1))

        if taller:
            first_rectangle = Rectangle(
                west_x=rectangle.west_x, south_y=rectangle.south_y,
                width=rectangle.width, height=cut,
            )
            second_rectangle = Rectangle(
                west_x=rectangle.west_x, south_y=(rectangle.south_y + cut) % grid.height,
                width=rectangle.width, height=rectangle.height - cut,
            )
            first_fertility = region.fertility[:cut]
            second_fertility = region.fertility[cut:]
        else:
            first_rectangle = Rectangle(
                west_x=rectangle.west_x, south_y=rectangle.south_y,
                width=cut, height=rectangle.height,
            )
            second_rectangle = Rectangle(
                west_x=(rectangle.west_x + cut) % grid.width, south_y=rectangle.south_y,
                width=rectangle.width - cut, height=rectangle.height,
            )
            first_fertility = region.fertility[:, :cut]
            second_fertility = region.fertility[:, cut:]

        first = Region(rectangle=first_rectangle, area_id=region.area_id, fertility=first_fertility.copy())
        second = Region(rectangle=second_rectangle, area_id=region.area_id, fertility=second_fertility.copy())
        first.remove_dead_rows_and_columns(grid)
        second.remove_dead_rows_and_columns(grid)
        return first, second

    def chop_into_three_regions(self, region: Region) -> Tuple[Region, Region, Region]:
        first, remaining = self.chop_into_two_regions(region, 33.3)
        second, third = self.chop_into_two_regions(remaining, 50.0)
        return first, second, third

    def measure_terrain(self, region: Region) -> None:
        """Fill ``region.terrain_statistic``; water and mountains count regardless of area."""
        tile_map = self.tile_map
        indices = region.tile_indices(self.grid).ravel()
        terrain_type = tile_map.terrain_type[indices]
        base = tile_map.base_terrain[indices]
        feature = tile_map.feature[indices]

        water = terrain_type == TerrainType.WATER
        mountain = terrain_type == TerrainType.MOUNTAIN
        land = (terrain_type == TerrainType.FLATLAND) | (terrain_type == TerrainType.HILL)
        if region.area_id is not None:
            land &= tile_map.area_id[indices] == region.area_id
        flatland = land & (terrain_type == TerrainType.FLATLAND)

        statistic = TerrainStatistic()
        counted_type = water | mountain | land
        statistic.terrain_type_num += np.bincount(
            terrain_type[counted_type], minlength=len(TerrainType)
        )
        # Hills yield the same whatever their base terrain
        counted_base = water | flatland
        statistic.base_terrain_num += np.bincount(base[counted_base], minlength=len(BaseTerrain))
        counted_feature = (water | land) & (feature >= 0)
        statistic.feature_num += np.bincount(feature[counted_feature], minlength=len(Feature))
        statistic.river_num = int((land & self._river[indices]).sum())
        statistic.coastal_land_num = int((land & self._coastal_land[indices]).sum())
        statistic.next_to_coastal_land_num = int((land & self._next_to_coastal_land[indices]).sum())
        region.terrain_statistic = statistic


def _span(occupied: np.ndarray, wraps: bool) -> Tuple[int, int]:
    """Start and length of the occupied lines, wrapping when both map edges are occupied."""
    count = len(occupied)
    if wraps and occupied[0] and occupied[-1]:
        empty = np.nonzero(~occupied[1:-1])[0] + 1
        if empty.size:
            start = int(empty[-1]) + 1
            end = int(empty[0]) - 1
            return start, end - start + 1 + count
        # Spans the whole world: treated as not wrapping
    filled = np.nonzero(occupied)[0]
    return int(filled[0]), int(filled[-1] - filled[0] + 1)


def generate_regions(tile_map: TileMap) -> List[Region]:
    return RegionGenerator(tile_map).generate()


class StartingTileSelector:
    """Picks one civilization starting tile per region, poorest regions first."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid

    def choose(self) -> None:
        tile_map = self.tile_map
        logger.info("Choosing civilization starting tiles", regions=len(tile_map.region_list))
        tile_map.region_list.sort(key=lambda region: region.average_fertility)
        if not tile_map.region_list:
            return

        ignore_area = tile_map.region_list[0].area_id is None
        coastal = tile_map.parameters.civilization_starting_tile_must_be_coastal_land
        forced = 0
        for region in tile_map.region_list:
            if ignore_area:
                found = self.find_start_without_regard_to_area(region)
            elif coastal:
                found = self.find_coastal_land_start(region)
            else:
                found = self.find_start(region)
            if not found:
                forced += 1
                logger.warning(
                    "Forced civilization start",
                    tile=region.starting_tile,
                    rectangle=region.rectangle.model_dump(),
                )

        logger.info("Civilization starting tiles chosen", forced=forced)

    # Tile measurement

    def measure_single_tile(self, tile: int, region: Region) -> Tuple[bool, bool, bool, bool]:
        """
        Classify a tile as (food, production, good, junk) for ``region``.

        "Food" is not the tile yield: regions lacking food get bonus resources
        later, so what counts as food depends on the region type.
        """
        tile_map = self.tile_map
        region_type = region.region_type
        terrain_type = tile_map.terrain_type[tile]
        base = tile_map.base_terrain[tile]
        feature = tile_map.feature[tile]

        if terrain_type == TerrainType.WATER:
            if feature == Feature.ICE:
                return False, False, False, True
            if base == BaseTerrain.LAKE:
                return True, False, True, False
            if region.area_id is None and base == BaseTerrain.COAST:
                return False, False, True, False
            return False, False, False, False
        if terrain_type == TerrainType.MOUNTAIN:
            return False, False, False, True

        if feature == Feature.FOREST:
            food = region_type in (RegionType.FOREST, RegionType.TUNDRA)
            return food, True, True, False
        if feature == Feature.JUNGLE:
            if region_type != RegionType.GRASSLAND:
                return True, False, True, False
            return False, terrain_type == TerrainType.HILL, False, False
        if feature == Feature.MARSH:
            return False, False, False, False
        if feature in (Feature.OASIS, Feature.FLOODPLAIN):
            return True, False, True, False

        if terrain_type == TerrainType.HILL:
            return False, True, True, False

        if base == BaseTerrain.GRASSLAND:
            food = region_type in (
                RegionType.JUNGLE, RegionType.FOREST, RegionType.HILL,
                RegionType.GRASSLAND, RegionType.HYBRID,
            )
            return food, False, True, False
        if base == BaseTerrain.DESERT:
            return False, False, False, region_type != RegionType.DESERT
        if base == BaseTerrain.PLAIN:
            food = region_type in (
                RegionType.TUNDRA, RegionType.DESERT, RegionType.HILL,
                RegionType.PLAIN, RegionType.HYBRID,
            )
            return food, False, True, False
        if base == BaseTerrain.TUNDRA:
            tundra = region_type == RegionType.TUNDRA
            return tundra, False, tundra, False
        if base == BaseTerrain.SNOW:
            return False, False, False, True
        return False, False, False, False

    def evaluate_candidate_tile(self, tile: int, region: Region) -> Tuple[int, bool]:
        """
        Score a candidate start on its three surrounding rings.

        Returns:
            (score, meets_minimum_requirements); tiles failing the minimums are
            only used as fallbacks
        """
        tile_map = self.tile_map
        grid = self.grid
        meets = True
        food = production = good = junk = river = 0

        def measure_ring(distance: int) -> None:
            nonlocal food, production, good, junk, river
            ring = grid.tiles_at_distance(tile, distance)
            # Tiles cut off by a map edge count as junk
            junk += 6 * distance - len(ring)
            for ring_tile in ring:
                is_food, is_production, is_good, is_junk = self.measure_single_tile(ring_tile, region)
                food += is_food
                production += is_production
                good += is_good
                junk += is_junk
                if tile_map.has_river(ring_tile):
                    river += 1

        measure_ring(1)
        if food < MIN_INNER[0] or production < MIN_INNER[1] or good < MIN_INNER[2]:
            meets = False
        inner_score = FOOD_INNER[food] + PRODUCTION_INNER[production] + good * 2 + river - junk * 3

        measure_ring(2)
        if food < MIN_MIDDLE[0] or production < MIN_MIDDLE[1] or good < MIN_MIDDLE[2]:
            meets = False
        food_middle = 35 if food >= 10 else FOOD_MIDDLE[food]
        effective_production = (food + 1) // 2 if food * 2 < production else production
        production_middle = 35 if effective_production >= 5 else PRODUCTION_MIDDLE[effective_production]
        middle_score = food_middle + production_middle + good * 2 + river - junk * 3

        measure_ring(3)
        if (
            food < MIN_OUTER[0]
            or production < MIN_OUTER[1]
            or good < MIN_OUTER[2]
            or junk > MAX_JUNK
        ):
            meets = False
        outer_score = food + production + good + river - junk * 2

        score = inner_score + middle_score + outer_score
        if tile_map.is_coastal_land(tile):
            score += COASTAL_START_SCORE

        # Near an existing start: fallback only, scaled down by proximity
        impact = int(tile_map.layer_impact[Layer.CIVILIZATION, tile])
        if impact != 0:
            meets = False
            score = int(score * (100 - impact) / 100.0)
        return score, meets

    def iterate_through_candidate_tile_list(
        self, tiles: List[int], region: Region
    ) -> Tuple[Optional[int], Optional[int], int, int]:
        """Best eligible tile and best fallback tile, with their scores."""
        best_tile = None
        best_score = -5000
        fallback_tile = None
        fallback_score = -5000
        for tile in tiles:
            score, meets = self.evaluate_candidate_tile(tile, region)
            if meets:
                if score > best_score:
                    best_tile, best_score = tile, score
            elif score > fallback_score:
                fallback_tile, fallback_score = tile, score
        return best_tile, fallback_tile, best_score, fallback_score

    # Start searches

    def _assign(self, region: Region, tile: int) -> None:
        region.starting_tile = tile
        self.tile_map.place_impact_and_ripples(tile, Layer.CIVILIZATION)

    def _force_start(self, region: Region) -> None:
        """Turn the south-west tile of the region into grassland and start there."""
        tile_map = self.tile_map
        tile = self.grid.offset_to_index(
            region.rectangle.west_x % self.grid.width, region.rectangle.south_y % self.grid.height
        )
        tile_map.terrain_type[tile] = TerrainType.FLATLAND
        tile_map.base_terrain[tile] = BaseTerrain.GRASSLAND
        tile_map.set_feature(tile, None)
        tile_map.natural_wonder[tile] = -1
        self._assign(region, tile)

    def _assign_best_fallback(self, region: Region, fallbacks: List[Tuple[int, int]]) -> bool:
        if not fallbacks:
            return False
        best_tile, best_score = fallbacks[0]
        for tile, score in fallbacks[1:]:
            # Ties go to the later candidate
            if score >= best_score:
                best_tile, best_score = tile, score
        self._assign(region, best_tile)
        return True

    def find_start_without_regard_to_area(self, region: Region) -> bool:
        """Search every area of a rectangle region, most fertile area first."""
        tile_map = self.tile_map
        indices = region.tile_indices(self.grid).ravel()
        fertility = region.fertility.ravel()

        area_fertility: Dict[int, int] = {}
        area_candidates: Dict[int, List[int]] = {}
        for position, tile in enumerate(indices):
            tile = int(tile)
            if tile_map.terrain_type[tile] not in (TerrainType.FLATLAND, TerrainType.HILL):
                continue
            area = int(tile_map.area_id[tile])
            area_fertility[area] = area_fertility.get(area, 0) + int(fertility[position])
            if tile_map.can_be_civilization_starting_tile(tile):
                area_candidates.setdefault(area, []).append(tile)

        fallbacks: List[Tuple[int, int]] = []
        ranked = sorted(area_fertility.items(), key=lambda item: (item[1], item[0]), reverse=True)
        for area, _ in ranked:
            best, fallback, _, fallback_score = self.iterate_through_candidate_tile_list(
                area_candidates.get(area, []), region
            )
            if best is not None:
                self._assign(region, best)
                return True
            if fallback is not None:
                fallbacks.append((fallback, fallback_score))

        if self._assign_best_fallback(region, fallbacks):
            return True
        self._force_start(region)
        return False

    def find_start(self, region: Region) -> bool:
        """Centre-biased search among the region's area; river, then fresh or coastal, then dry."""
        tile_map = self.tile_map
        return self._find_biased_start(
            region,
            lambda tile: tile_map.is_freshwater(tile) or tile_map.is_coastal_land(tile),
        )

    def find_coastal_land_start(self, region: Region) -> bool:
        """Like find_start, for regions whose starts must be coastal; falls back inland."""
        if region.terrain_statistic.coastal_land_num < 3:
            return self.find_start(region)
        return self._find_biased_start(region, self.tile_map.is_freshwater)

    def bias_rectangles(self, rectangle: Rectangle) -> Tuple[Rectangle, Rectangle]:
        """Centre and middle rectangles of a region."""
        grid = self.grid

        def inner(bias: float) -> Rectangle:
            margin_x = math.floor((rectangle.width - bias * rectangle.width) / 2.0)
            margin_y = math.floor((rectangle.height - bias * rectangle.height) / 2.0)
            return Rectangle(
                west_x=(rectangle.west_x + margin_x) % grid.width,
                south_y=(rectangle.south_y + margin_y) % grid.height,
                width=rectangle.width - margin_x * 2,
                height=rectangle.height - margin_y * 2,
            )

        return inner(CENTER_BIAS), inner(MIDDLE_BIAS)

    def _find_biased_start(self, region: Region, second_choice: Callable[[int], bool]) -> bool:
        tile_map = self.tile_map
        grid = self.grid
        center, middle = self.bias_rectangles(region.rectangle)

        # river, second choice, dry; centre lists first
        center_lists: List[List[int]] = [[], [], []]
        middle_lists: List[List[int]] = [[], [], []]
        outer: List[int] = []
        for tile in region.rectangle.iter_tiles(grid):
            if not tile_map.can_be_civilization_starting_tile(tile):
                continue
            if tile_map.area_id[tile] != region.area_id:
                continue
            if center.contains(grid, tile):
                lists = center_lists
            elif middle.contains(grid, tile):
                lists = middle_lists
            else:
                outer.append(tile)
                continue
            if tile_map.has_river(tile):
                lists[0].append(tile)
            elif second_choice(tile):
                lists[1].append(tile)
            else:
                lists[2].append(tile)

        fallbacks: List[Tuple[int, int]] = []
        for tiles in center_lists + middle_lists:
            best, fallback, _, fallback_score = self.iterate_through_candidate_tile_list(tiles, region)
            if best is not None:
                self._assign(region, best)
                return True
            if fallback is not None:
                fallbacks.append((fallback, fallback_score))

        if outer:
            eligible = []
            outer_fallback = None
            outer_fallback_score = -50
            for tile in outer:
                score, meets = self.evaluate_candidate_tile(tile, region)
                if meets:
                    eligible.append(tile)
                elif score > outer_fallback_score:
                    outer_fallback, outer_fallback_score = tile, score
            if eligible:
                self._assign(region, self.closest_to_center(region.rectangle, eligible))
                return True
            if outer_fallback is not None:
                fallbacks.append((outer_fallback, outer_fallback_score))

        if self._assign_best_fallback(region, fallbacks):
            return True
        self._force_start(region)
        return False

    def _hex_shift(self, x: float, y: float, x_odd: bool, y_odd: bool) -> Tuple[float, float]:
        """Shift shoved rows (pointy) or columns (flat) by half a tile."""
        grid = self.grid
        if grid.orientation == HexOrientation.POINTY:
            if y_odd == (grid.offset == Offset.ODD):
                x += 0.5
        elif x_odd == (grid.offset == Offset.ODD):
            y += 0.5
        return x, y

    def closest_to_center(self, rectangle: Rectangle, tiles: List[int]) -> int:
        grid = self.grid
        bullseye_x = rectangle.west_x + rectangle.width / 2.0
        bullseye_y = rectangle.south_y + rectangle.height / 2.0
        bullseye_x, bullseye_y = self._hex_shift(
            bullseye_x,
            bullseye_y,
            bullseye_x / 2.0 != math.floor(bullseye_x / 2.0),
            bullseye_y / 2.0 != math.floor(bullseye_y / 2.0),
        )

        closest = tiles[0]
        closest_distance = float(max(grid.width, grid.height))
        for tile in tiles:
            x, y = grid.index_to_offset(tile)
            adjusted_x, adjusted_y = self._hex_shift(float(x), float(y), x % 2 != 0, y % 2 != 0)
            # Un-wrap tiles that lie past the map edge
            if x < rectangle.west_x:
                adjusted_x += grid.width
            if y < rectangle.south_y:
                adjusted_y += grid.height
            distance = math.hypot(adjusted_x - bullseye_x, adjusted_y - bullseye_y)
            if distance < closest_distance:
                closest, closest_distance = tile, distance
        return closest


def choose_civilization_starting_tiles(tile_map: TileMap) -> None:
    StartingTileSelector(tile_map).choose()
