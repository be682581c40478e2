"""
Natural wonder placement.

This module implements:
- Candidate search: every tile is tested against each ruleset wonder
  (terrain type, base terrain, freshwater and placement uniques)
- The two-tile Great Barrier Reef and the Rock of Gibraltar special cases
- Placement in order of scarcity, rarest wonder first, spaced by the
  natural wonder impact layer
"""

from typing import Dict, List, Optional, Sequence, Set

import structlog

from ..config.map_parameters import WorldSize
from .hex_grid import Direction
from .tile_map import BaseTerrain, Feature, Layer, NaturalWonder, TerrainType, TileMap

logger = structlog.get_logger()

NATURAL_WONDER_TARGETS = {
    WorldSize.DUEL: 2,
    WorldSize.TINY: 3,
    WorldSize.SMALL: 4,
    WorldSize.STANDARD: 5,
    WorldSize.LARGE: 6,
    WorldSize.HUGE: 7,
}

# Neighbours around a two-tile wonder when none are cut off by a map edge
TWO_TILE_RING_SIZE = 8
REEF_MIN_COAST = 4


def natural_wonder_target(parameters) -> int:
    """Number of wonders to place, capped by ``natural_wonder_num`` when it is set."""
    target = NATURAL_WONDER_TARGETS[parameters.world_size]
    if parameters.natural_wonder_num is not None:
        target = min(target, parameters.natural_wonder_num)
    return target


def ranked_landmass_areas(tile_map: TileMap) -> List[int]:
    """Land area IDs that are not pure mountain, largest first (ties by ID)."""
    areas = [area for area in tile_map.area_list if not area.is_water and not area.is_mountain]
    areas.sort(key=lambda area: (-area.size, area.id))
    return [area.id for area in areas]


class NaturalWonderPlacer:
    """Finds eligible sites for every ruleset wonder and places up to the target number."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.ruleset = tile_map.ruleset
        self.landmass_ranking = ranked_landmass_areas(tile_map)
        # Reef partner direction, chosen once per map
        self.reef_direction: Optional[Direction] = None

    def _count_neighbors(self, tile: int, filter_name: str) -> int:
        tile_map = self.tile_map
        return sum(
            1
            for n in self.grid.neighbors(tile)
            if self.ruleset.matches_filter(
                filter_name, tile_map.terrain_type[n], tile_map.base_terrain[n], tile_map.feature[n]
            )
        )

    def _on_ranked_landmass(self, tile: int, rank: int) -> bool:
        if rank >= len(self.landmass_ranking):
            return False
        return self.landmass_ranking[rank] == self.tile_map.area_id[tile]

    def unique_holds(self, tile: int, unique) -> bool:
        """Evaluate one placement unique at ``tile``; unknown uniques always hold."""
        placeholder, params = unique.placeholder, unique.params
        if placeholder == "Must be adjacent to [] [] tiles":
            return self._count_neighbors(tile, params[1]) == int(params[0])
        if placeholder == "Must be adjacent to [] to [] [] tiles":
            count = self._count_neighbors(tile, params[2])
            return int(params[0]) <= count <= int(params[1])
        if placeholder == "Must not be on [] largest landmasses":
            return not self._on_ranked_landmass(tile, int(params[0]))
        if placeholder == "Must be on [] largest landmasses":
            return self._on_ranked_landmass(tile, int(params[0]))
        return True

    def _reef_ring(self, tile: int) -> Optional[Set[int]]:
        partner = self.grid.neighbor(tile, self.reef_direction)
        if partner is None:
            return None
        ring = set(self.grid.neighbors(tile)) | set(self.grid.neighbors(partner))
        ring.discard(tile)
        ring.discard(partner)
        return ring

    def can_place_reef(self, tile: int, rule) -> bool:
        tile_map = self.tile_map
        partner = self.grid.neighbor(tile, self.reef_direction)
        if partner is None or tile_map.player_collision[partner]:
            return False
        for t in (tile, partner):
            if (
                tile_map.terrain_type[t] not in rule.occurs_on_type
                or tile_map.base_terrain[t] not in rule.occurs_on_base
            ):
                return False
        ring = self._reef_ring(tile)
        if ring is None or len(ring) != TWO_TILE_RING_SIZE:
            return False
        for n in ring:
            if (
                tile_map.terrain_type[n] != TerrainType.WATER
                or tile_map.base_terrain[n] == BaseTerrain.LAKE
                or tile_map.feature[n] == Feature.ICE
            ):
                return False
        coast = sum(1 for n in ring if tile_map.base_terrain[n] == BaseTerrain.COAST)
        return coast >= REEF_MIN_COAST

    def can_place(self, tile: int, rule) -> bool:
        tile_map = self.tile_map
        if tile_map.player_collision[tile]:
            return False
        if rule.wonder == NaturalWonder.GREAT_BARRIER_REEF:
            return self.can_place_reef(tile, rule)
        if tile_map.is_freshwater(tile) != rule.is_fresh_water:
            return False
        if (
            tile_map.terrain_type[tile] not in rule.occurs_on_type
            or tile_map.base_terrain[tile] not in rule.occurs_on_base
        ):
            return False
        # A mountain cannot carry a river
        if rule.turns_into_type == TerrainType.MOUNTAIN and tile_map.has_river(tile):
            return False
        return all(self.unique_holds(tile, unique) for unique in rule.uniques)

    def find_candidates(self) -> Dict[NaturalWonder, List[int]]:
        """Eligible tiles per wonder, in ascending tile order."""
        candidates: Dict[NaturalWonder, List[int]] = {}
        rules = [self.ruleset.natural_wonders[wonder] for wonder in sorted(self.ruleset.natural_wonders)]
        for tile in self.tile_map.all_tiles():
            for rule in rules:
                if self.can_place(tile, rule):
                    candidates.setdefault(rule.wonder, []).append(tile)
        return candidates

    def place_natural_wonders(self) -> List[int]:
        """
        Place natural wonders, rarest first.

        Returns:
            Tiles that received a wonder (both tiles of a two-tile wonder)
        """
        tile_map = self.tile_map
        target = natural_wonder_target(tile_map.parameters)
        logger.info("Placing natural wonders", target=target)

        self.reef_direction = tile_map.rng.choice(list(self.grid.edge_directions))
        candidates = self.find_candidates()
        order = sorted(candidates, key=lambda wonder: (len(candidates[wonder]), wonder))

        placed_tiles: List[int] = []
        placed = 0
        for wonder in order:
            if placed >= target:
                break
            tiles = candidates[wonder]
            tile_map.rng.shuffle(tiles)
            for tile in tiles:
                if tile_map.layer_impact[Layer.NATURAL_WONDER, tile] != 0:
                    continue
                placed_tiles.extend(self._place(wonder, tile))
                placed += 1
                break

        self._fix_water_neighbors(placed_tiles)
        logger.info(
            "Natural wonder placement complete",
            placed=placed,
            candidates={tile_map.ruleset.wonder_name(w): len(t) for w, t in candidates.items()},
        )
        return placed_tiles

    def _place(self, wonder: NaturalWonder, tile: int) -> List[int]:
        tile_map = self.tile_map
        rule = self.ruleset.natural_wonders[wonder]
        tile_map.set_feature(tile, None)

        if wonder == NaturalWonder.GREAT_BARRIER_REEF:
            partner = self.grid.neighbor(tile, self.reef_direction)
            for n in set(self.grid.neighbors(tile)) | set(self.grid.neighbors(partner)):
                tile_map.terrain_type[n] = TerrainType.WATER
                tile_map.base_terrain[n] = BaseTerrain.COAST
            tile_map.set_feature(partner, None)
            tile_map.natural_wonder[tile] = wonder
            tile_map.natural_wonder[partner] = wonder
            wonder_tiles = [tile, partner]
        elif wonder == NaturalWonder.ROCK_OF_GIBRALTAR:
            for n in self.grid.neighbors(tile):
                if tile_map.terrain_type[n] == TerrainType.WATER:
                    tile_map.base_terrain[n] = BaseTerrain.COAST
                elif tile_map.has_river(n):
                    tile_map.terrain_type[n] = TerrainType.HILL
                else:
                    tile_map.terrain_type[n] = TerrainType.MOUNTAIN
                    tile_map.set_feature(n, None)
            tile_map.terrain_type[tile] = TerrainType.FLATLAND
            tile_map.base_terrain[tile] = BaseTerrain.GRASSLAND
            tile_map.natural_wonder[tile] = wonder
            wonder_tiles = [tile]
        else:
            if rule.turns_into_type is not None:
                tile_map.terrain_type[tile] = rule.turns_into_type
            if rule.turns_into_base is not None:
                tile_map.base_terrain[tile] = rule.turns_into_base
            tile_map.natural_wonder[tile] = wonder
            wonder_tiles = [tile]

        tile_map.place_impact_and_ripples(tile, Layer.NATURAL_WONDER)
        tile_map.player_collision[tile] = True
        logger.debug("Placed natural wonder", wonder=rule.name, tile=tile)
        return wonder_tiles

    def _fix_water_neighbors(self, placed_tiles: Sequence[int]) -> None:
        """Water next to a land wonder becomes lake beside lakes, coast otherwise."""
        tile_map = self.tile_map
        for tile in placed_tiles:
            if tile_map.terrain_type[tile] == TerrainType.WATER:
                continue
            for n in self.grid.neighbors(tile):
                if tile_map.terrain_type[n] != TerrainType.WATER:
                    continue
                beside_lake = any(
                    tile_map.base_terrain[m] == BaseTerrain.LAKE for m in self.grid.neighbors(n)
                )
                tile_map.base_terrain[n] = BaseTerrain.LAKE if beside_lake else BaseTerrain.COAST


def place_natural_wonders(tile_map: TileMap) -> List[int]:
    placer = NaturalWonderPlacer(tile_map)
    return placer.place_natural_wonders()
