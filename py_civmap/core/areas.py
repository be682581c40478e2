"""
Area and landmass classification.

This module implements:
- Areas: connected tiles with the same passability and water state. A first
  "wide" flood fill only crosses an edge when both tiles' common neighbours
  match as well, so one-tile isthmuses do not join large areas. Fragments
  left over are filled with the plain predicate and merged into their
  largest neighbouring area when small.
- Landmasses: connected tiles with the same water state.

Both fills are iterative breadth-first searches over tile indices, visiting
seeds in ascending tile order, so IDs are stable for an unchanged map.
"""

from collections import deque
from typing import Callable, List

import numpy as np
import structlog

from .tile_map import UNINITIALIZED, Area, Landmass, LandmassType, TerrainType, TileMap

logger = structlog.get_logger()

MIN_AREA_SIZE = 7


class AreaClassifier:
    """Computes ``area_id``/``area_list`` and ``landmass_id``/``landmass_list``."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.neighbor_sets = None

    def recalculate(self) -> None:
        self.calculate_areas()
        self.calculate_landmasses()

    def _flood(self, start: int, assigned: np.ndarray, connects: Callable[[int, int], bool]) -> List[int]:
        """Tiles reachable from ``start`` over unassigned tiles accepted by ``connects(tile, before)``."""
        members = [start]
        seen = {start}
        queue = deque([start])
        neighbors = self.grid.neighbors
        while queue:
            current = queue.popleft()
            for tile in neighbors(current):
                if tile in seen or assigned[tile] != UNINITIALIZED:
                    continue
                if connects(tile, current):
                    seen.add(tile)
                    members.append(tile)
                    queue.append(tile)
        return members

    def calculate_areas(self) -> None:
        logger.info("Calculating areas")
        tile_map = self.tile_map
        grid = self.grid
        impassable = tile_map.impassable_mask()
        water = tile_map.water_mask()
        area_id = np.full(tile_map.size, UNINITIALIZED, dtype=np.int32)
        area_list: List[Area] = []

        if self.neighbor_sets is None:
            self.neighbor_sets = [frozenset(grid.neighbors(tile)) for tile in range(tile_map.size)]
        neighbor_sets = self.neighbor_sets

        def same_state(tile: int, before: int) -> bool:
            return impassable[tile] == impassable[before] and water[tile] == water[before]

        def wide(tile: int, before: int) -> bool:
            if not same_state(tile, before):
                return False
            common = neighbor_sets[tile] & neighbor_sets[before]
            return all(same_state(n, before) for n in common)

        def new_area(seed: int, members: List[int]) -> None:
            area = Area(
                id=len(area_list),
                size=len(members),
                is_water=bool(water[seed]),
                is_mountain=bool(tile_map.terrain_type[seed] == TerrainType.MOUNTAIN),
            )
            area_list.append(area)
            area_id[members] = area.id

        # Wide areas
        for tile in range(tile_map.size):
            if area_id[tile] != UNINITIALIZED:
                continue
            members = self._flood(tile, area_id, wide)
            if len(members) >= MIN_AREA_SIZE:
                new_area(tile, members)

        # Everything left: thin corridors and small pockets
        merged = 0
        for tile in range(tile_map.size):
            if area_id[tile] != UNINITIALIZED:
                continue
            members = self._flood(tile, area_id, same_state)
            if len(members) >= MIN_AREA_SIZE:
                new_area(tile, members)
                continue

            best = None
            for member in sorted(members):
                for neighbor in grid.neighbors(member):
                    candidate = area_id[neighbor]
                    if candidate == UNINITIALIZED or water[neighbor] != water[member]:
                        continue
                    # Ties go to the last largest area met
                    if best is None or area_list[candidate].size >= area_list[best].size:
                        best = int(candidate)
            if best is None:
                new_area(tile, members)
            else:
                area_list[best].size += len(members)
                area_id[members] = best
                merged += 1

        assert area_list, "Area classification produced no areas"
        tile_map.area_id[:] = area_id
        tile_map.area_list = area_list
        logger.info("Areas calculated", areas=len(area_list), merged_fragments=merged)

    def calculate_landmasses(self) -> None:
        tile_map = self.tile_map
        water = tile_map.water_mask()
        landmass_id = np.full(tile_map.size, UNINITIALIZED, dtype=np.int32)
        landmass_list: List[Landmass] = []

        def same_water(tile: int, before: int) -> bool:
            return water[tile] == water[before]

        for tile in range(tile_map.size):
            if landmass_id[tile] != UNINITIALIZED:
                continue
            members = self._flood(tile, landmass_id, same_water)
            landmass = Landmass(
                id=len(landmass_list),
                size=len(members),
                landmass_type=LandmassType.WATER if water[tile] else LandmassType.LAND,
            )
            landmass_list.append(landmass)
            landmass_id[members] = landmass.id

        tile_map.landmass_id[:] = landmass_id
        tile_map.landmass_list = landmass_list
        logger.info("Landmasses calculated", landmasses=len(landmass_list))


def recalculate_areas(tile_map: TileMap) -> None:
    """Recompute areas and landmasses after terrain changes."""
    AreaClassifier(tile_map).recalculate()
