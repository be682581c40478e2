"""
Tests for terrain features.

Tests cover:
- Cluster scoring
- Terrain restrictions of every placed feature
- Polar ice and floodplains
- Atolls around small islands
"""

import numpy as np
import pytest

from py_civmap.core.areas import recalculate_areas
from py_civmap.core.features import ICE_LATITUDE, FeatureGenerator, cluster_score
from py_civmap.core.hex_grid import Direction
from py_civmap.core.tile_map import BaseTerrain, Feature, TerrainType

from map_helpers import paint, rectangle_tiles


class TestClusterScore:
    """Test the clumping score."""

    @pytest.mark.parametrize(
        "neighbors,expected",
        [(0, 300), (1, 350), (2, 450), (3, 450), (4, 250), (5, 100), (6, 100)],
    )
    def test_score(self, neighbors, expected):
        assert cluster_score(neighbors) == expected


class TestFeatureGenerator:
    """Test feature placement on a painted map."""

    @pytest.fixture
    def world(self, make_tile_map):
        tile_map = make_tile_map(width=30, height=24, seed=3)
        paint(tile_map, rectangle_tiles(tile_map, 3, 4, 24, 16))
        paint(tile_map, rectangle_tiles(tile_map, 3, 4, 8, 5), TerrainType.FLATLAND, BaseTerrain.DESERT)
        paint(tile_map, rectangle_tiles(tile_map, 19, 4, 8, 5), TerrainType.FLATLAND, BaseTerrain.TUNDRA)
        paint(tile_map, rectangle_tiles(tile_map, 12, 10, 6, 3), TerrainType.HILL, BaseTerrain.PLAIN)
        paint(tile_map, rectangle_tiles(tile_map, 8, 15, 2, 2), TerrainType.MOUNTAIN, BaseTerrain.GRASSLAND)
        recalculate_areas(tile_map)
        return tile_map

    def test_features_respect_terrain(self, world):
        FeatureGenerator(world).generate()
        rules = world.ruleset.features
        placed = np.flatnonzero(world.feature >= 0)
        assert len(placed) > 0
        for tile in placed:
            feature = Feature(int(world.feature[tile]))
            assert rules[feature].can_occur(world.terrain_type[tile], world.base_terrain[tile])

    def test_mountains_stay_bare(self, world):
        FeatureGenerator(world).generate()
        mountains = world.terrain_type == TerrainType.MOUNTAIN
        assert (world.feature[mountains] < 0).all()

    def test_jungle_near_equator_only(self, world):
        FeatureGenerator(world).generate()
        grid = world.grid
        for tile in np.flatnonzero(world.feature == Feature.JUNGLE):
            assert grid.latitude(int(tile)) <= 0.06 + 1e-9

    def test_river_desert_becomes_floodplain(self, world):
        tile = world.grid.offset_to_index(6, 6)
        world.add_river_edge([], tile, Direction.E)
        FeatureGenerator(world).generate()
        assert world.get_feature(tile) == Feature.FLOODPLAIN

    def test_reproducible(self, make_tile_map):
        def build():
            tile_map = make_tile_map(width=30, height=24, seed=11)
            paint(tile_map, rectangle_tiles(tile_map, 3, 4, 24, 16))
            recalculate_areas(tile_map)
            FeatureGenerator(tile_map).generate()
            return tile_map

        np.testing.assert_array_equal(build().feature, build().feature)


class TestIce:
    """Test polar ice."""

    def test_ice_only_near_poles(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=24, seed=5)
        recalculate_areas(tile_map)
        FeatureGenerator(tile_map).generate()
        grid = tile_map.grid
        ice = np.flatnonzero(tile_map.feature == Feature.ICE)
        assert len(ice) > 0
        for tile in ice:
            assert tile_map.terrain_type[tile] == TerrainType.WATER
            assert grid.latitude(int(tile)) > ICE_LATITUDE


class TestAtolls:
    """Test atolls on the coast of single tile islands."""

    @pytest.fixture
    def archipelago(self, make_tile_map):
        tile_map = make_tile_map(width=30, height=20, seed=8)
        grid = tile_map.grid
        for x, y in ((5, 5), (15, 5), (5, 14), (25, 14)):
            island = grid.offset_to_index(x, y)
            paint(tile_map, grid.neighbors(island), TerrainType.WATER, BaseTerrain.COAST)
            paint(tile_map, [island])
        recalculate_areas(tile_map)
        return tile_map

    def test_atolls_on_coast(self, archipelago):
        FeatureGenerator(archipelago).add_atolls()
        atolls = np.flatnonzero(archipelago.feature == Feature.ATOLL)
        # 24 candidates in the smallest bucket, a quarter of which may be used
        assert len(atolls) == 6
        for tile in atolls:
            assert archipelago.base_terrain[tile] == BaseTerrain.COAST

    def test_no_atolls_without_open_sea(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=16)
        paint(tile_map, tile_map.all_tiles())
        grid = tile_map.grid
        paint(tile_map, [grid.offset_to_index(10, 8)], TerrainType.WATER, BaseTerrain.COAST)
        recalculate_areas(tile_map)
        FeatureGenerator(tile_map).add_atolls()
        assert not (tile_map.feature == Feature.ATOLL).any()
