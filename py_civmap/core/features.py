"""
Terrain features.

This module implements:
- Ice on polar water
- Floodplains on river tiles, oases in deserts
- Marsh, jungle and forest clusters, each scored by how many neighbours
  already carry the same feature and capped at a share of the land
- Atolls on coast tiles next to small islands
"""

import math
from dataclasses import dataclass
from typing import List, Optional

import structlog

from ..config.map_parameters import Rainfall, WorldSize
from .tile_map import BaseTerrain, Feature, TerrainType, TileMap

logger = structlog.get_logger()

ICE_LATITUDE = 0.78

ATOLL_TARGET = {
    WorldSize.DUEL: 2,
    WorldSize.TINY: 4,
    WorldSize.SMALL: 5,
    WorldSize.STANDARD: 7,
    WorldSize.LARGE: 9,
    WorldSize.HUGE: 12,
}

# Land-area size ranges of the atoll buckets, smallest islands first
ATOLL_BUCKETS = ((1, 2), (3, 7), (8, 16), (17, 40), (41, 75))
# Share of each bucket that may be used: ceil(len / divisor)
ATOLL_BUCKET_DIVISORS = (4, 5, 4, 3, 4)


@dataclass
class FeatureOptions:
    """Maximum land share (percent) of each feature before rainfall."""
    jungle_percent: int = 12
    forest_percent: int = 18
    marsh_percent: int = 3
    oasis_percent: int = 1
    equator: int = 0


def cluster_score(same_feature_neighbors: int) -> int:
    """Placement score out of 300 for a feature that likes to clump."""
    score = 300
    if same_feature_neighbors == 1:
        score += 50
    elif same_feature_neighbors in (2, 3):
        score += 150
    elif same_feature_neighbors == 4:
        score -= 50
    elif same_feature_neighbors >= 5:
        score -= 200
    return score


class FeatureGenerator:
    """Adds features tile by tile in ascending tile order."""

    def __init__(self, tile_map: TileMap, options: Optional[FeatureOptions] = None):
        self.tile_map = tile_map
        self.options = options or FeatureOptions()
        self.rng = tile_map.rng
        self.rules = tile_map.ruleset.features

    def _rainfall(self) -> int:
        rainfall = self.tile_map.parameters.rainfall
        if rainfall == Rainfall.ARID:
            return -4
        if rainfall == Rainfall.WET:
            return 4
        if rainfall == Rainfall.RANDOM:
            return self.rng.gen_range(0, 11) - 5
        return 0

    def _can_occur(self, feature: Feature, tile: int) -> bool:
        rule = self.rules.get(feature)
        if rule is None:
            return False
        return rule.can_occur(self.tile_map.terrain_type[tile], self.tile_map.base_terrain[tile])

    def _neighbors_with(self, tile: int, feature: Feature) -> int:
        tile_map = self.tile_map
        return sum(1 for n in tile_map.grid.neighbors(tile) if tile_map.feature[n] == feature)

    def generate(self) -> None:
        logger.info("Adding features")
        tile_map = self.tile_map
        grid = tile_map.grid
        rng = self.rng

        rainfall = self._rainfall()
        # Shares shrink towards zero like integer division in the rainfall tables
        jungle_max = self.options.jungle_percent + rainfall
        forest_max = self.options.forest_percent + rainfall
        marsh_max = self.options.marsh_percent + int(rainfall / 2)
        oasis_max = self.options.oasis_percent + int(rainfall / 4)

        equator = self.options.equator
        jungle_bottom = (equator - math.ceil(jungle_max * 0.5)) / 100.0
        jungle_top = (equator + math.ceil(jungle_max * 0.5)) / 100.0

        counts = {Feature.FOREST: 0, Feature.JUNGLE: 0, Feature.MARSH: 0, Feature.OASIS: 0, Feature.ICE: 0}
        land_tiles = 0

        def under_cap(feature: Feature, max_percent: int) -> bool:
            return math.ceil(counts[feature] * 100.0 / land_tiles) <= max_percent

        for tile in tile_map.all_tiles():
            latitude = grid.latitude(tile)

            if tile_map.is_impassable(tile):
                continue

            if tile_map.is_water(tile):
                if (
                    not tile_map.has_river(tile)
                    and self._can_occur(Feature.ICE, tile)
                    and latitude > ICE_LATITUDE
                ):
                    score = rng.gen_range(0, 100) + latitude * 100.0
                    if any(not tile_map.is_water(n) for n in grid.neighbors(tile)):
                        score /= 2.0
                    score += 10.0 * self._neighbors_with(tile, Feature.ICE)
                    if score > 130.0:
                        tile_map.set_feature(tile, Feature.ICE)
                        counts[Feature.ICE] += 1
                continue

            land_tiles += 1

            if tile_map.has_river(tile) and self._can_occur(Feature.FLOODPLAIN, tile):
                tile_map.set_feature(tile, Feature.FLOODPLAIN)
                continue

            if (
                self._can_occur(Feature.OASIS, tile)
                and under_cap(Feature.OASIS, oasis_max)
                and rng.gen_range(0, 4) == 1
            ):
                tile_map.set_feature(tile, Feature.OASIS)
                counts[Feature.OASIS] += 1
                continue

            if self._can_occur(Feature.MARSH, tile) and under_cap(Feature.MARSH, marsh_max):
                score = cluster_score(self._neighbors_with(tile, Feature.MARSH))
                if rng.gen_range(0, 300) <= score:
                    tile_map.set_feature(tile, Feature.MARSH)
                    counts[Feature.MARSH] += 1
                    continue

            if (
                self._can_occur(Feature.JUNGLE, tile)
                and under_cap(Feature.JUNGLE, jungle_max)
                and jungle_bottom <= latitude <= jungle_top
            ):
                score = cluster_score(self._neighbors_with(tile, Feature.JUNGLE))
                if rng.gen_range(0, 300) <= score:
                    tile_map.set_feature(tile, Feature.JUNGLE)
                    if not (
                        tile_map.terrain_type[tile] == TerrainType.HILL
                        and tile_map.base_terrain[tile] in (BaseTerrain.GRASSLAND, BaseTerrain.PLAIN)
                    ):
                        tile_map.terrain_type[tile] = TerrainType.FLATLAND
                    tile_map.base_terrain[tile] = BaseTerrain.PLAIN
                    counts[Feature.JUNGLE] += 1
                    continue

            if self._can_occur(Feature.FOREST, tile) and under_cap(Feature.FOREST, forest_max):
                score = cluster_score(self._neighbors_with(tile, Feature.FOREST))
                if rng.gen_range(0, 300) <= score:
                    tile_map.set_feature(tile, Feature.FOREST)
                    counts[Feature.FOREST] += 1
                    continue

        logger.info(
            "Features added",
            land_tiles=land_tiles,
            **{feature.name.lower(): count for feature, count in counts.items()},
        )

        self.add_atolls()

    def _biggest_water_area(self):
        water_areas = [area for area in self.tile_map.area_list if area.is_water]
        if not water_areas:
            return None
        return max(water_areas, key=lambda area: area.size)

    def add_atolls(self) -> None:
        """Put atolls on coast tiles that touch exactly one small-island land tile."""
        tile_map = self.tile_map
        grid = tile_map.grid
        rng = self.rng

        biggest = self._biggest_water_area()
        if biggest is None or biggest.size <= tile_map.size // 4:
            return

        target = ATOLL_TARGET[tile_map.parameters.world_size]
        atoll_number = target + rng.gen_range(0, target)

        buckets: List[List[int]] = [[] for _ in ATOLL_BUCKETS]
        for tile in tile_map.all_tiles():
            if tile_map.base_terrain[tile] != BaseTerrain.COAST or tile_map.feature[tile] == Feature.ICE:
                continue
            land = [
                n for n in grid.neighbors(tile)
                if tile_map.terrain_type[n] in (TerrainType.HILL, TerrainType.FLATLAND)
                and tile_map.base_terrain[n] not in (BaseTerrain.TUNDRA, BaseTerrain.SNOW)
                and tile_map.feature[n] != Feature.ICE
            ]
            if len(land) != 1:
                continue
            area_size = tile_map.area_list[tile_map.area_id[land[0]]].size
            for bucket, (low, high) in zip(buckets, ATOLL_BUCKETS):
                if low <= area_size <= high:
                    bucket.append(tile)
                    break

        for bucket in buckets:
            rng.shuffle(bucket)
        remaining = [-(-len(bucket) // divisor) for bucket, divisor in zip(buckets, ATOLL_BUCKET_DIVISORS)]
        positions = [0] * len(buckets)

        def take(preference) -> Optional[int]:
            for index in preference:
                if remaining[index] > 0:
                    remaining[index] -= 1
                    tile = buckets[index][positions[index]]
                    positions[index] += 1
                    return tile
            return None

        placed = 0
        for _ in range(atoll_number):
            roll = rng.gen_range_inclusive(1, 100)
            if roll <= 40 and remaining[0] > 0:
                tile = take((0,))
            elif 41 <= roll <= 65:
                tile = take((1, 0))
            elif 66 <= roll <= 80:
                tile = take((2, 1, 0))
            elif 81 <= roll <= 90:
                tile = take((3, 2, 1, 0))
            else:
                tile = take((4, 3, 2, 1, 0))
            if tile is not None:
                tile_map.set_feature(tile, Feature.ATOLL)
                placed += 1

        logger.info("Atolls added", atolls=placed, target=atoll_number)


def add_features(tile_map: TileMap) -> None:
    FeatureGenerator(tile_map).generate()
