"""Tests for natural wonder placement."""

import numpy as np
import pytest

from py_civmap.config.map_parameters import MapParameters, WorldSize
from py_civmap.core.areas import recalculate_areas
from py_civmap.core.hex_grid import Direction
from py_civmap.core.natural_wonders import (
    NaturalWonderPlacer,
    natural_wonder_target,
    place_natural_wonders,
    ranked_landmass_areas,
)
from py_civmap.core.tile_map import BaseTerrain, Layer, NaturalWonder, TerrainType
from py_civmap.ruleset import WonderUnique

from map_helpers import paint, rectangle_tiles


class TestTargets:
    """Test how many wonders a map asks for."""

    def test_target_by_world_size(self):
        assert natural_wonder_target(MapParameters(world_size=WorldSize.DUEL)) == 2
        assert natural_wonder_target(MapParameters(world_size=WorldSize.HUGE)) == 7

    def test_target_capped_by_parameter(self):
        assert natural_wonder_target(MapParameters(world_size=WorldSize.HUGE, natural_wonder_num=3)) == 3
        assert natural_wonder_target(MapParameters(world_size=WorldSize.DUEL, natural_wonder_num=9)) == 2
        assert natural_wonder_target(MapParameters(world_size=WorldSize.DUEL, natural_wonder_num=0)) == 0


class TestPlacementRules:
    """Test candidate checks on hand painted maps."""

    @pytest.fixture
    def islands(self, make_tile_map):
        tile_map = make_tile_map(width=30, height=20)
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 12, 12))
        paint(tile_map, rectangle_tiles(tile_map, 18, 4, 6, 6))
        recalculate_areas(tile_map)
        return tile_map

    def test_landmasses_ranked_by_size(self, islands):
        ranking = ranked_landmass_areas(islands)
        grid = islands.grid
        assert ranking[0] == islands.area_id[grid.offset_to_index(7, 7)]
        assert ranking[1] == islands.area_id[grid.offset_to_index(20, 6)]
        sizes = [islands.area_list[area].size for area in ranking]
        assert sizes == sorted(sizes, reverse=True)

    def test_largest_landmass_uniques(self, islands):
        placer = NaturalWonderPlacer(islands)
        grid = islands.grid
        not_largest = WonderUnique.parse("Must not be on [0] largest landmasses")
        on_second = WonderUnique.parse("Must be on [1] largest landmasses")
        big = grid.offset_to_index(7, 7)
        small = grid.offset_to_index(20, 6)
        assert not placer.unique_holds(big, not_largest)
        assert placer.unique_holds(small, not_largest)
        assert placer.unique_holds(small, on_second)
        assert not placer.unique_holds(big, on_second)

    def test_adjacency_uniques(self, islands):
        placer = NaturalWonderPlacer(islands)
        grid = islands.grid
        inland = grid.offset_to_index(7, 7)
        shore = grid.offset_to_index(2, 7)
        no_water = WonderUnique.parse("Must be adjacent to [0] [Water] tiles")
        some_land = WonderUnique.parse("Must be adjacent to [1] to [6] [Land] tiles")
        assert placer.unique_holds(inland, no_water)
        assert not placer.unique_holds(shore, no_water)
        assert placer.unique_holds(shore, some_land)

    def test_unknown_unique_holds(self, islands):
        placer = NaturalWonderPlacer(islands)
        assert placer.unique_holds(0, WonderUnique.parse("Must be far from [Barbarians]"))

    def test_starting_tiles_are_never_candidates(self, islands):
        placer = NaturalWonderPlacer(islands)
        tile = islands.grid.offset_to_index(7, 7)
        rule = islands.ruleset.natural_wonders[NaturalWonder.FOUNTAIN_OF_YOUTH]
        assert placer.can_place(tile, rule)
        islands.player_collision[tile] = True
        assert not placer.can_place(tile, rule)

    def test_mountain_wonders_avoid_rivers(self, islands):
        placer = NaturalWonderPlacer(islands)
        grid = islands.grid
        tile = grid.offset_to_index(20, 6)
        rule = islands.ruleset.natural_wonders[NaturalWonder.SRI_PADA]
        assert placer.can_place(tile, rule)
        islands.add_river_edge([], tile, Direction.E)
        assert not placer.can_place(tile, rule)


class TestRockOfGibraltar:
    """Test the single land tile wonder in the sea."""

    @pytest.fixture
    def rock(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=16)
        grid = tile_map.grid
        island = grid.offset_to_index(10, 8)
        paint(tile_map, grid.tiles_in_distance(island, 2), TerrainType.WATER, BaseTerrain.COAST)
        paint(tile_map, [island])
        recalculate_areas(tile_map)
        return tile_map, island

    def test_candidate_beside_single_land_tile(self, rock):
        tile_map, island = rock
        placer = NaturalWonderPlacer(tile_map)
        rule = tile_map.ruleset.natural_wonders[NaturalWonder.ROCK_OF_GIBRALTAR]
        site = tile_map.grid.neighbors(island)[0]
        assert placer.can_place(site, rule)
        assert not placer.can_place(island, rule)
        far = tile_map.grid.offset_to_index(1, 1)
        assert not placer.can_place(far, rule)

    def test_placement_reshapes_neighbors(self, rock):
        tile_map, island = rock
        placer = NaturalWonderPlacer(tile_map)
        site = tile_map.grid.neighbors(island)[0]
        placed = placer._place(NaturalWonder.ROCK_OF_GIBRALTAR, site)
        assert placed == [site]
        assert tile_map.terrain_type[site] == TerrainType.FLATLAND
        assert tile_map.base_terrain[site] == BaseTerrain.GRASSLAND
        assert tile_map.get_natural_wonder(site) == NaturalWonder.ROCK_OF_GIBRALTAR
        assert tile_map.terrain_type[island] == TerrainType.MOUNTAIN
        for n in tile_map.grid.neighbors(site):
            if n != island:
                assert tile_map.base_terrain[n] == BaseTerrain.COAST
        assert tile_map.player_collision[site]
        assert tile_map.layer_impact[Layer.NATURAL_WONDER, site] > 0


class TestGreatBarrierReef:
    """Test the two tile wonder."""

    @pytest.fixture
    def placer(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=16)
        recalculate_areas(tile_map)
        placer = NaturalWonderPlacer(tile_map)
        placer.reef_direction = tile_map.grid.edge_directions[0]
        return placer

    def test_needs_coast_around(self, placer):
        tile_map = placer.tile_map
        tile = tile_map.grid.offset_to_index(10, 8)
        rule = tile_map.ruleset.natural_wonders[NaturalWonder.GREAT_BARRIER_REEF]
        assert not placer.can_place(tile, rule)
        paint(tile_map, placer._reef_ring(tile), TerrainType.WATER, BaseTerrain.COAST)
        assert placer.can_place(tile, rule)

    def test_partner_must_be_free(self, placer):
        tile_map = placer.tile_map
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        rule = tile_map.ruleset.natural_wonders[NaturalWonder.GREAT_BARRIER_REEF]
        paint(tile_map, placer._reef_ring(tile), TerrainType.WATER, BaseTerrain.COAST)
        tile_map.player_collision[grid.neighbor(tile, placer.reef_direction)] = True
        assert not placer.can_place(tile, rule)

    def test_map_edge_cuts_ring(self, placer):
        tile_map = placer.tile_map
        rule = tile_map.ruleset.natural_wonders[NaturalWonder.GREAT_BARRIER_REEF]
        corner = tile_map.grid.offset_to_index(0, 0)
        assert not placer.can_place(corner, rule)

    def test_both_tiles_tagged(self, placer):
        tile_map = placer.tile_map
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        partner = grid.neighbor(tile, placer.reef_direction)
        placed = placer._place(NaturalWonder.GREAT_BARRIER_REEF, tile)
        assert sorted(placed) == sorted([tile, partner])
        assert tile_map.get_natural_wonder(partner) == NaturalWonder.GREAT_BARRIER_REEF
        for n in placer._reef_ring(tile):
            assert tile_map.base_terrain[n] == BaseTerrain.COAST


class TestPlaceNaturalWonders:
    """Test the placement pass."""

    @pytest.fixture
    def continent(self, make_tile_map):
        def factory(**kwargs):
            tile_map = make_tile_map(width=40, height=24, seed=6, world_size=WorldSize.DUEL, **kwargs)
            paint(tile_map, rectangle_tiles(tile_map, 3, 3, 34, 18))
            paint(tile_map, rectangle_tiles(tile_map, 5, 5, 8, 8), TerrainType.FLATLAND, BaseTerrain.DESERT)
            paint(tile_map, rectangle_tiles(tile_map, 20, 6, 6, 4), TerrainType.HILL, BaseTerrain.PLAIN)
            recalculate_areas(tile_map)
            return tile_map

        return factory

    def test_places_up_to_target(self, continent):
        tile_map = continent()
        placed = place_natural_wonders(tile_map)
        wonders = {int(w) for w in tile_map.natural_wonder[tile_map.natural_wonder >= 0]}
        assert 1 <= len(wonders) <= 2
        assert all(tile_map.natural_wonder[tile] >= 0 for tile in placed)

    def test_wonders_are_spaced(self, continent):
        tile_map = continent()
        place_natural_wonders(tile_map)
        tiles = np.flatnonzero(tile_map.natural_wonder >= 0)
        for i, a in enumerate(tiles):
            for b in tiles[i + 1:]:
                assert tile_map.grid.distance(int(a), int(b)) > tile_map.height // 5

    def test_zero_wonders_requested(self, continent):
        tile_map = continent(natural_wonder_num=0)
        assert place_natural_wonders(tile_map) == []
        assert (tile_map.natural_wonder < 0).all()

    def test_water_beside_land_wonder_is_coast(self, continent):
        tile_map = continent()
        placed = place_natural_wonders(tile_map)
        for tile in placed:
            if tile_map.terrain_type[tile] == TerrainType.WATER:
                continue
            for n in tile_map.grid.neighbors(tile):
                if tile_map.terrain_type[n] == TerrainType.WATER:
                    assert tile_map.base_terrain[n] in (BaseTerrain.COAST, BaseTerrain.LAKE)
