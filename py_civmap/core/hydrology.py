"""
Lakes and rivers.

This module implements:
- generate_lakes: small enclosed water areas become lakes
- add_lakes: random inland lakes, a few of them grown past one tile
- Rivers that walk along hex edges from inland corners, preferring low,
  dry ground and keeping their initial heading when it is competitive
"""

from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from ..config.map_parameters import HexOrientation
from .hex_grid import Direction
from .tile_map import NONE_ID, BaseTerrain, RiverEdge, TerrainType, TileMap

logger = structlog.get_logger()

LAKE_PLOT_RAND = 25

# Tiles of an area required per river edge before the top-up passes stop
TILES_PER_RIVER_EDGE = 12

ELEVATION = {
    TerrainType.MOUNTAIN: 4,
    TerrainType.HILL: 3,
    TerrainType.WATER: 2,
    TerrainType.FLATLAND: 1,
}


@dataclass(frozen=True)
class EdgeCheck:
    """
    Tile next to the river tile that must be dry land without a blocking river.

    ``own_rivers`` are directions checked on the river tile itself,
    ``neighbor_rivers`` directions checked on the neighbour.
    """
    direction: Direction
    check_water: bool = True
    own_rivers: Tuple[Direction, ...] = ()
    neighbor_rivers: Tuple[Direction, ...] = ()


@dataclass(frozen=True)
class RiverStep:
    """How a flow direction moves along the corners of a hex."""
    move: Optional[Direction]  # Edge owner relative to the current tile; None for the tile itself
    checks: Tuple[EdgeCheck, ...]
    advance: bool = False  # Continue from the first check's neighbour


D = Direction

POINTY_STEPS = {
    D.N: RiverStep(None, (EdgeCheck(D.NE, neighbor_rivers=(D.SE, D.SW)),), advance=True),
    D.NE: RiverStep(None, (EdgeCheck(D.E, own_rivers=(D.E,), neighbor_rivers=(D.SW,)),)),
    D.SE: RiverStep(D.E, (
        EdgeCheck(D.SE, own_rivers=(D.SE,)),
        EdgeCheck(D.SW, neighbor_rivers=(D.E,)),
    )),
    D.S: RiverStep(D.SW, (
        EdgeCheck(D.SE, own_rivers=(D.SE,)),
        EdgeCheck(D.E, check_water=False, neighbor_rivers=(D.SW,)),
    )),
    D.SW: RiverStep(None, (EdgeCheck(D.SW, own_rivers=(D.SW,), neighbor_rivers=(D.E,)),)),
    D.NW: RiverStep(None, (EdgeCheck(D.W, neighbor_rivers=(D.E, D.SE)),), advance=True),
}

FLAT_STEPS = {
    D.NE: RiverStep(None, (EdgeCheck(D.NE, own_rivers=(D.NE,), neighbor_rivers=(D.S,)),)),
    D.E: RiverStep(D.NE, (
        EdgeCheck(D.SE, own_rivers=(D.SE,)),
        EdgeCheck(D.S, neighbor_rivers=(D.NE,)),
    )),
    D.SE: RiverStep(D.S, (
        EdgeCheck(D.SE, own_rivers=(D.SE,)),
        EdgeCheck(D.NE, neighbor_rivers=(D.S,)),
    )),
    D.SW: RiverStep(None, (EdgeCheck(D.S, own_rivers=(D.S,), neighbor_rivers=(D.NE,)),)),
    D.W: RiverStep(None, (EdgeCheck(D.SW, neighbor_rivers=(D.NE, D.SE)),), advance=True),
    D.NW: RiverStep(None, (EdgeCheck(D.N, neighbor_rivers=(D.S, D.SE)),), advance=True),
}

# (flow direction, neighbour whose value scores that flow), in evaluation order
POINTY_FLOW_CHOICES = (
    (D.N, D.NW), (D.NE, D.NE), (D.SE, D.E), (D.S, D.SW), (D.SW, D.W), (D.NW, D.NW),
)
FLAT_FLOW_CHOICES = (
    (D.E, D.NE), (D.SE, D.S), (D.SW, D.SW), (D.W, D.NW), (D.NW, D.NW), (D.NE, D.N),
)


def generate_lakes(tile_map: TileMap) -> None:
    """Turn every water area no larger than ``lake_max_area_size`` into lake."""
    max_size = tile_map.parameters.lake_max_area_size
    small_areas = np.array([area.size <= max_size for area in tile_map.area_list], dtype=bool)
    lakes = tile_map.water_mask() & small_areas[tile_map.area_id]
    tile_map.base_terrain[lakes] = BaseTerrain.LAKE
    logger.info("Lakes generated", tiles=int(lakes.sum()))


class LakeBuilder:
    """Scatters small inland lakes after rivers exist."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.rng = tile_map.rng

    def can_add_lake(self, tile: int) -> bool:
        tile_map = self.tile_map
        if (
            tile_map.is_water(tile)
            or tile_map.natural_wonder[tile] >= 0
            or tile_map.has_river(tile)
        ):
            return False
        return all(
            not tile_map.is_water(n) and tile_map.natural_wonder[n] < 0
            for n in tile_map.grid.neighbors(tile)
        )

    def _make_lake(self, tile: int) -> None:
        tile_map = self.tile_map
        tile_map.terrain_type[tile] = TerrainType.WATER
        tile_map.base_terrain[tile] = BaseTerrain.LAKE
        tile_map.feature[tile] = NONE_ID
        tile_map.added_lake[tile] = True

    def _grow_lake(self, tile: int) -> bool:
        """Add accepted neighbours of ``tile``; True when the lake counts as large."""
        accepted = []
        for neighbor in self.tile_map.grid.neighbors(tile):
            if self.can_add_lake(neighbor) and self.rng.gen_range(0, len(accepted) + 4) < 3:
                accepted.append(neighbor)
        for neighbor in accepted:
            self._make_lake(neighbor)
        return len(accepted) > 2

    def add_lakes(self) -> None:
        logger.info("Adding lakes")
        large_lake_num = self.tile_map.parameters.large_lake_num
        large_lakes = 0
        added = 0
        for tile in self.tile_map.all_tiles():
            if self.can_add_lake(tile) and self.rng.gen_range(0, LAKE_PLOT_RAND) == 0:
                if large_lakes < large_lake_num and self._grow_lake(tile):
                    large_lakes += 1
                self._make_lake(tile)
                added += 1
        logger.info("Lakes added", lakes=added, large_lakes=large_lakes)


def add_lakes(tile_map: TileMap) -> None:
    LakeBuilder(tile_map).add_lakes()


class RiverGenerator:
    """
    Grows rivers along hex edges.

    Four passes pick start tiles: mountains and hills, then one in eight
    inland tiles, then mountains/hills and finally any land in areas that
    still have fewer than one river edge per ``TILES_PER_RIVER_EDGE`` tiles.
    A start needs no freshwater within the source range and no water within
    the sea range; the last two passes halve both ranges.
    """

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.rng = tile_map.rng
        if self.grid.orientation == HexOrientation.FLAT:
            self.steps = FLAT_STEPS
            self.flow_choices = FLAT_FLOW_CHOICES
        else:
            self.steps = POINTY_STEPS
            self.flow_choices = POINTY_FLOW_CHOICES
        self.water = tile_map.water_mask()
        self.fresh = np.array([tile_map.is_freshwater(t) for t in tile_map.all_tiles()], dtype=bool)
        self.water_distance = self._distance_to_water()
        self.edge_count_by_area: Dict[int, int] = {}

    def _distance_to_water(self) -> np.ndarray:
        """Hex steps from each tile to the nearest water tile (multi-source BFS)."""
        tile_map = self.tile_map
        distance = np.full(tile_map.size, np.iinfo(np.int32).max, dtype=np.int32)
        queue = deque()
        for tile in np.flatnonzero(self.water):
            distance[tile] = 0
            queue.append(int(tile))
        while queue:
            current = queue.popleft()
            for neighbor in self.grid.neighbors(current):
                if distance[neighbor] > distance[current] + 1:
                    distance[neighbor] = distance[current] + 1
                    queue.append(neighbor)
        return distance

    def add_rivers(self) -> None:
        logger.info("Adding rivers")
        tile_map = self.tile_map
        river_source_range = 4
        sea_water_range = 3

        for index in range(4):
            if index <= 1:
                source_range, sea_range = river_source_range, sea_water_range
            else:
                source_range, sea_range = river_source_range // 2, sea_water_range // 2

            for tile in tile_map.all_tiles():
                if not self._passes_condition(index, tile):
                    continue
                if not self._is_valid_source(tile, source_range, sea_range):
                    continue
                start = self._inland_corner(tile)
                if start is not None:
                    self._do_river(start)

        logger.info(
            "Rivers added",
            rivers=len(tile_map.river_list),
            edges=sum(len(river) for river in tile_map.river_list),
        )

    def _passes_condition(self, index: int, tile: int) -> bool:
        tile_map = self.tile_map
        terrain_type = tile_map.terrain_type[tile]
        elevated = terrain_type in (TerrainType.MOUNTAIN, TerrainType.HILL)
        if index == 0:
            return elevated
        if index == 1:
            return (
                terrain_type != TerrainType.WATER
                and not tile_map.is_coastal_land(tile)
                and self.rng.gen_range(0, 8) == 0
            )
        area = int(tile_map.area_id[tile])
        needs_rivers = self.edge_count_by_area.get(area, 0) <= tile_map.area_list[area].size // TILES_PER_RIVER_EDGE
        if index == 2:
            return elevated and needs_rivers
        return terrain_type != TerrainType.WATER and needs_rivers

    def _is_valid_source(self, tile: int, source_range: int, sea_range: int) -> bool:
        tile_map = self.tile_map
        if tile_map.natural_wonder[tile] >= 0:
            return False
        if any(tile_map.natural_wonder[n] >= 0 for n in self.grid.neighbors(tile)):
            return False
        if any(self.fresh[t] for t in self.grid.tiles_in_distance(tile, source_range)):
            return False
        return self.water_distance[tile] > sea_range

    def _inland_corner(self, tile: int) -> Optional[int]:
        """Random tile among ``tile`` and its back neighbours whose front neighbours are all land."""
        grid = self.grid
        candidates = [tile]
        for direction in grid.edge_directions[3:6]:
            neighbor = grid.neighbor(tile, direction)
            if neighbor is not None:
                candidates.append(neighbor)

        def is_inland(candidate: int) -> bool:
            for direction in grid.edge_directions[0:3]:
                neighbor = grid.neighbor(candidate, direction)
                if neighbor is None or self.water[neighbor]:
                    return False
            return True

        corners = [c for c in candidates if is_inland(c)]
        if not corners:
            return None
        return self.rng.choice(corners)

    def river_value_at_tile(self, tile: int) -> int:
        """Lower values are better places for a river to flow towards."""
        tile_map = self.tile_map
        neighbors = self.grid.neighbors(tile)
        if tile_map.natural_wonder[tile] >= 0 or any(tile_map.natural_wonder[n] >= 0 for n in neighbors):
            return -1

        total = ELEVATION[TerrainType(int(tile_map.terrain_type[tile]))] * 20
        # Map edges count as high ground
        total += 40 * (6 - len(neighbors))
        for neighbor in neighbors:
            total += ELEVATION[TerrainType(int(tile_map.terrain_type[neighbor]))]
            if tile_map.base_terrain[neighbor] == BaseTerrain.DESERT:
                total += 4
        total += self.rng.gen_range(0, 10)
        return total

    def _blocked(self, river_tile: int, check: EdgeCheck) -> Tuple[bool, Optional[int]]:
        tile_map = self.tile_map
        neighbor = self.grid.neighbor(river_tile, check.direction)
        if neighbor is None:
            return True, None
        if check.check_water and self.water[neighbor]:
            return True, neighbor
        if any(tile_map.has_river_in_direction(river_tile, d) for d in check.own_rivers):
            return True, neighbor
        if any(tile_map.has_river_in_direction(neighbor, d) for d in check.neighbor_rivers):
            return True, neighbor
        return False, neighbor

    def _record_edge(self, river: List[RiverEdge], tile: int, flow: Direction) -> bool:
        """Store one edge; False when the edge cannot carry a river."""
        tile_map = self.tile_map
        grid = self.grid
        edge_direction = grid.edge_direction_for_flow(flow)
        if tile_map.has_river_in_direction(tile, edge_direction):
            return False
        other = grid.neighbor(tile, edge_direction)
        if other is None:
            return False
        if self.water[tile] and self.water[other]:
            return False
        if TerrainType.MOUNTAIN in (tile_map.terrain_type[tile], tile_map.terrain_type[other]):
            return False

        tile_map.add_river_edge(river, tile, flow)
        area = int(tile_map.area_id[tile])
        self.edge_count_by_area[area] = self.edge_count_by_area.get(area, 0) + 1
        for side in (tile, other):
            if not self.water[side]:
                self.fresh[side] = True
        return True

    def _do_river(self, start_tile: int, original_flow: Optional[Direction] = None) -> None:
        tile_map = self.tile_map
        grid = self.grid

        # Starting on an existing river would close a loop
        if (tile_map.river_flow[start_tile] >= 0).any():
            return

        river: List[RiverEdge] = []
        this_flow: Optional[Direction] = None

        while True:
            if this_flow is None:
                river_tile = start_tile
            else:
                step = self.steps[this_flow]
                if step.move is None:
                    river_tile = start_tile
                else:
                    river_tile = grid.neighbor(start_tile, step.move)
                    if river_tile is None:
                        break
                if not self._record_edge(river, river_tile, this_flow):
                    break

                stop = False
                first_neighbor = None
                for position, check in enumerate(step.checks):
                    blocked, neighbor = self._blocked(river_tile, check)
                    if position == 0:
                        first_neighbor = neighbor
                    if blocked:
                        stop = True
                        break
                if stop:
                    break
                if step.advance:
                    river_tile = first_neighbor

            if self.water[river_tile]:
                break

            best_flow = self._best_flow(river_tile, this_flow, original_flow)
            if best_flow is None:
                break
            if original_flow is None:
                original_flow = best_flow
            start_tile = river_tile
            this_flow = best_flow

        if river:
            tile_map.river_list.append(river)

    def _best_flow(
        self,
        river_tile: int,
        this_flow: Optional[Direction],
        original_flow: Optional[Direction],
    ) -> Optional[Direction]:
        grid = self.grid
        if this_flow is not None:
            allowed: Sequence[Direction] = (
                grid.corner_clockwise(this_flow),
                grid.corner_counter_clockwise(this_flow),
            )
        best_flow = None
        best_value = None
        for flow, direction in self.flow_choices:
            if this_flow is not None:
                if flow not in allowed or (original_flow is not None and flow.opposite() == original_flow):
                    continue
            neighbor = grid.neighbor(river_tile, direction)
            if neighbor is None:
                continue
            value = self.river_value_at_tile(neighbor)
            if flow == original_flow:
                value = int(value * 3 / 4)
            if best_value is None or value < best_value:
                best_value = value
                best_flow = flow
        return best_flow


def add_rivers(tile_map: TileMap) -> None:
    RiverGenerator(tile_map).add_rivers()
