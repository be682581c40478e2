"""Tests for the tile store, impact layers and placement helpers."""

import pytest

from py_civmap.core.hex_grid import Direction
from py_civmap.core.tile_map import (
    CIVILIZATION_IMPACT,
    CIVILIZATION_RIPPLES,
    IMPACT_MAX,
    BaseTerrain,
    Feature,
    Layer,
    Resource,
    ResourceToPlace,
    TerrainType,
)

from map_helpers import paint, rectangle_tiles


class TestTileStore:
    """Test storage and tile predicates."""

    @pytest.fixture
    def island(self, make_tile_map):
        tile_map = make_tile_map()
        paint(tile_map, rectangle_tiles(tile_map, 4, 3, 8, 6))
        return tile_map

    def test_new_map_is_ocean(self, make_tile_map):
        tile_map = make_tile_map()
        assert (tile_map.terrain_type == TerrainType.WATER).all()
        assert (tile_map.base_terrain == BaseTerrain.OCEAN).all()
        assert (tile_map.feature == -1).all()
        assert (tile_map.layer_impact == 0).all()

    def test_optional_attributes(self, island):
        tile = island.grid.offset_to_index(6, 5)
        assert island.get_feature(tile) is None
        island.set_feature(tile, Feature.FOREST)
        assert island.get_feature(tile) == Feature.FOREST
        island.set_feature(tile, None)
        assert island.get_feature(tile) is None

    def test_one_resource_per_tile(self, island):
        tile = island.grid.offset_to_index(6, 5)
        island.set_resource(tile, Resource.WHEAT, 1)
        assert island.get_resource(tile) == Resource.WHEAT
        with pytest.raises(AssertionError):
            island.set_resource(tile, Resource.CATTLE, 1)
        island.clear_resource(tile)
        assert not island.has_resource(tile)

    def test_place_resource_marks_class_layer(self, island):
        tile = island.grid.offset_to_index(6, 5)
        island.place_resource(tile, Resource.IRON, 4)
        assert island.layer_impact[Layer.STRATEGIC, tile] == IMPACT_MAX
        assert island.resource_quantity[tile] == 4

    def test_coastal_land(self, island):
        grid = island.grid
        paint(island, [grid.offset_to_index(3, 5)], TerrainType.WATER, BaseTerrain.COAST)
        assert island.is_coastal_land(grid.offset_to_index(4, 5))
        assert not island.is_coastal_land(grid.offset_to_index(8, 6))
        mask = island.coastal_land_mask()
        assert mask[grid.offset_to_index(4, 5)]
        assert not mask[grid.offset_to_index(3, 5)]

    def test_freshwater_from_lake(self, island):
        grid = island.grid
        lake = grid.offset_to_index(8, 6)
        paint(island, [lake], TerrainType.WATER, BaseTerrain.LAKE)
        neighbor = grid.neighbors(lake)[0]
        assert island.is_freshwater(neighbor)
        assert not island.is_freshwater(lake)
        assert island.freshwater_mask()[neighbor]

    def test_river_edges_are_shared(self, island):
        grid = island.grid
        tile = grid.offset_to_index(6, 5)
        river = []
        island.add_river_edge(river, tile, Direction.E)
        south = grid.neighbor(tile, Direction.S)
        assert island.has_river(tile)
        assert island.has_river(south)
        assert island.has_river_in_direction(tile, Direction.S)
        assert island.has_river_in_direction(south, Direction.N)
        assert island.river_mask()[south]
        assert island.is_freshwater(tile)
        assert len(river) == 1

    def test_impassable_mask(self, island):
        grid = island.grid
        mountain = grid.offset_to_index(6, 5)
        iced = grid.offset_to_index(0, 0)
        island.terrain_type[mountain] = TerrainType.MOUNTAIN
        island.set_feature(iced, Feature.ICE)
        mask = island.impassable_mask()
        assert mask[mountain] and mask[iced]
        assert mask.sum() == 2
        assert island.is_impassable(iced)

    def test_to_records(self, island):
        records = island.to_records()
        assert len(records["tiles"]) == island.size
        first = records["tiles"][0]
        assert first["terrain_type"] == "Water"
        assert first["base_terrain"] == "Ocean"
        assert first["resource"] is None
        assert records["tiles"][island.grid.offset_to_index(6, 5)]["base_terrain"] == "Grassland"


class TestImpactLayers:
    """Test impact and ripple stamping."""

    @pytest.fixture
    def tile_map(self, make_tile_map):
        return make_tile_map(width=20, height=16)

    def test_resource_ripples_fall_off(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        tile_map.place_impact_and_ripples(tile, Layer.LUXURY, 2)
        impact = tile_map.layer_impact[Layer.LUXURY]
        assert impact[tile] == IMPACT_MAX
        assert all(impact[t] == 2 for t in grid.tiles_at_distance(tile, 1))
        assert all(impact[t] == 1 for t in grid.tiles_at_distance(tile, 2))
        assert all(impact[t] == 0 for t in grid.tiles_at_distance(tile, 3))

    def test_overlapping_ripples_grow(self, tile_map):
        grid = tile_map.grid
        a = grid.offset_to_index(8, 8)
        tile_map.place_impact_and_ripples(a, Layer.BONUS, 2)
        b = grid.tiles_at_distance(a, 2)[0]
        shared = [t for t in grid.neighbors(b) if grid.distance(a, t) == 1]
        assert tile_map.layer_impact[Layer.BONUS, shared[0]] == 2
        tile_map.place_impact_and_ripples(b, Layer.BONUS, 2)
        # Stronger of ripple and existing value, plus two
        assert tile_map.layer_impact[Layer.BONUS, shared[0]] == 4
        assert tile_map.layer_impact[Layer.BONUS, a] == 50

    def test_resource_overlap_caps_at_fifty(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        impact = tile_map.layer_impact[Layer.STRATEGIC]
        for _ in range(3):
            tile_map.place_impact_and_ripples(tile, Layer.STRATEGIC, 2)
        assert all(impact[t] == 6 for t in grid.tiles_at_distance(tile, 1))
        assert all(impact[t] == 5 for t in grid.tiles_at_distance(tile, 2))
        for _ in range(30):
            tile_map.place_impact_and_ripples(tile, Layer.STRATEGIC, 2)
        assert all(impact[t] == 50 for t in grid.tiles_in_distance(tile, 2) if t != tile)
        assert impact[tile] == IMPACT_MAX

    def test_fish_center_is_one(self, tile_map):
        tile = tile_map.grid.offset_to_index(10, 8)
        tile_map.place_impact_and_ripples(tile, Layer.FISH, 1)
        assert tile_map.layer_impact[Layer.FISH, tile] == 1

    def test_fish_overlap_caps_at_ten(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        fish = tile_map.layer_impact[Layer.FISH]
        for _ in range(3):
            tile_map.place_impact_and_ripples(tile, Layer.FISH, 3)
        assert all(fish[t] == 5 for t in grid.tiles_at_distance(tile, 1))
        for _ in range(20):
            tile_map.place_impact_and_ripples(tile, Layer.FISH, 3)
        assert all(fish[t] == 10 for t in grid.tiles_in_distance(tile, 3) if t != tile)
        assert fish[tile] == 1

    def test_fish_center_overwrites_ripple(self, tile_map):
        grid = tile_map.grid
        a = grid.offset_to_index(10, 8)
        b = grid.neighbors(a)[0]
        fish = tile_map.layer_impact[Layer.FISH]
        tile_map.place_impact_and_ripples(a, Layer.FISH, 3)
        assert fish[b] == 3
        tile_map.place_impact_and_ripples(b, Layer.FISH, 3)
        assert fish[b] == 1
        assert fish[a] == 4

    def test_city_state_stamps_several_layers(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        tile_map.place_impact_and_ripples(tile, Layer.CITY_STATE)
        assert tile_map.layer_impact[Layer.CITY_STATE, tile] == IMPACT_MAX
        assert all(tile_map.layer_impact[Layer.CITY_STATE, t] == 1 for t in grid.tiles_at_distance(tile, 4))
        assert tile_map.layer_impact[Layer.LUXURY, tile] == IMPACT_MAX
        assert tile_map.layer_impact[Layer.STRATEGIC, tile] == IMPACT_MAX

    def test_civilization_impact(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(10, 8)
        tile_map.place_impact_and_ripples(tile, Layer.CIVILIZATION)
        civ = tile_map.layer_impact[Layer.CIVILIZATION]
        assert civ[tile] == CIVILIZATION_IMPACT
        assert tile_map.player_collision[tile]
        assert all(civ[t] == 97 for t in grid.tiles_at_distance(tile, 1))
        assert all(civ[t] == 95 for t in grid.tiles_at_distance(tile, 2))
        assert all(tile_map.layer_impact[Layer.CITY_STATE, t] == 1 for t in grid.tiles_at_distance(tile, 6))

    def test_overlapping_civilizations(self, make_tile_map):
        tile_map = make_tile_map(width=30, height=24)
        grid = tile_map.grid
        a = grid.offset_to_index(8, 12)
        b = grid.offset_to_index(14, 12)
        ripples = dict(enumerate(CIVILIZATION_RIPPLES, start=1))
        ripples[0] = CIVILIZATION_IMPACT

        expected = {}
        for tile in range(tile_map.size):
            first = ripples.get(grid.distance(a, tile), 0)
            second = grid.distance(b, tile)
            if second == 0:
                expected[tile] = CIVILIZATION_IMPACT
            elif second in ripples and first != 0:
                expected[tile] = min(97, int(max(first, ripples[second]) * 1.2))
            else:
                expected[tile] = ripples.get(second, first)

        tile_map.place_impact_and_ripples(a, Layer.CIVILIZATION)
        tile_map.place_impact_and_ripples(b, Layer.CIVILIZATION)
        civ = tile_map.layer_impact[Layer.CIVILIZATION]
        assert {tile: int(civ[tile]) for tile in range(tile_map.size)} == expected
        # The first start sits inside the second one's ripples
        assert civ[a] == 97
        assert civ[b] == CIVILIZATION_IMPACT


class TestPlacementHelpers:
    """Test the resource placement helpers."""

    @pytest.fixture
    def tile_map(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=16)
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 16, 12), TerrainType.FLATLAND, BaseTerrain.PLAIN)
        return tile_map

    def test_specific_number_respects_spacing(self, tile_map):
        tiles = rectangle_tiles(tile_map, 2, 2, 16, 12)
        tile_map.rng.shuffle(tiles)
        left = tile_map.place_specific_number_of_resources(
            Resource.WINE, 1, 5, 1.0, Layer.LUXURY, 1, 1, tiles
        )
        placed = [t for t in tiles if tile_map.get_resource(t) == Resource.WINE]
        assert left == 5 - len(placed)
        assert len(placed) == 5
        for i, a in enumerate(placed):
            for b in placed[i + 1:]:
                assert tile_map.grid.distance(a, b) >= 2

    def test_specific_number_with_empty_list(self, tile_map):
        left = tile_map.place_specific_number_of_resources(Resource.WINE, 1, 3, 1.0, Layer.LUXURY, 0, 0, [])
        assert left == 3

    def test_process_resource_list_frequency(self, tile_map):
        tiles = rectangle_tiles(tile_map, 2, 2, 16, 12)
        tile_map.rng.shuffle(tiles)
        items = [ResourceToPlace(Resource.WHEAT, 1, 1, 1, 1)]
        tile_map.process_resource_list(8, Layer.BONUS, tiles, items)
        placed = [t for t in tiles if tile_map.has_resource(t)]
        assert 0 < len(placed) <= len(tiles) // 8
        for tile in placed:
            assert tile_map.layer_impact[Layer.BONUS, tile] >= IMPACT_MAX

    def test_process_resource_list_rejects_luxury_layer(self, tile_map):
        items = [ResourceToPlace(Resource.WINE, 1, 1, 0, 0)]
        with pytest.raises(AssertionError):
            tile_map.process_resource_list(4, Layer.LUXURY, [0, 1], items)

    def test_attempt_to_place_hill(self, tile_map):
        tile = tile_map.grid.offset_to_index(5, 5)
        assert tile_map.attempt_to_place_hill_at_tile(tile)
        assert tile_map.terrain_type[tile] == TerrainType.HILL
        assert not tile_map.attempt_to_place_hill_at_tile(0)

    def test_attempt_to_place_bonus(self, tile_map):
        tile = tile_map.grid.offset_to_index(5, 5)
        placed, oasis = tile_map.attempt_to_place_bonus_resource_at_tile(tile, allow_oasis=False)
        assert placed and not oasis
        assert tile_map.get_resource(tile) == Resource.WHEAT

    def test_clear_ice_near_city_site(self, tile_map):
        grid = tile_map.grid
        site = grid.offset_to_index(10, 8)
        near = grid.tiles_at_distance(site, 2)[0]
        tile_map.set_feature(near, Feature.ICE)
        tile_map.clear_ice_near_city_site(site, 3)
        assert tile_map.get_feature(near) is None
