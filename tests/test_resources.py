"""Tests for strategic, bonus and luxury resource helpers."""

import numpy as np
import pytest

from py_civmap.config.map_parameters import Rectangle, ResourceSetting, WorldSize
from py_civmap.core.luxuries import (
    DRY_GRASS_FLAT_NO_FEATURE,
    FOREST_FLAT,
    FRESH_GRASS_FLAT_NO_FEATURE,
    HILL_COVERED,
    HILL_FOREST,
    HILL_OPEN,
    LUXURY_CITY_STATE_WEIGHTS,
    SEA_LUXURIES,
    LuxuryRoleAssigner,
    land_plot_lists_for_tile,
    region_luxury_targets,
)
from py_civmap.core.regions import Region
from py_civmap.core.resources import (
    bonus_multiplier,
    fix_sugar_jungles,
    major_strategic_quantities,
    placed_resource_count,
    small_strategic_quantities,
)
from py_civmap.core.tile_map import BaseTerrain, Feature, RegionType, Resource, TerrainType

from map_helpers import paint, rectangle_tiles


class TestQuantities:
    """Test per-setting tables."""

    def test_major_quantities(self):
        standard = major_strategic_quantities(ResourceSetting.STANDARD)
        assert standard[Resource.IRON] == 6
        assert major_strategic_quantities(ResourceSetting.ABUNDANT)[Resource.IRON] == 9
        assert major_strategic_quantities(ResourceSetting.SPARSE)[Resource.URANIUM] == 2
        assert major_strategic_quantities(ResourceSetting.LEGENDARY_START) == standard

    def test_small_quantities(self):
        assert small_strategic_quantities(ResourceSetting.STANDARD)[Resource.OIL] == 3
        assert small_strategic_quantities(ResourceSetting.SPARSE)[Resource.HORSES] == 1

    def test_bonus_multiplier(self):
        assert bonus_multiplier(ResourceSetting.SPARSE) == 1.5
        assert bonus_multiplier(ResourceSetting.STANDARD) == 1.0
        assert bonus_multiplier(ResourceSetting.ABUNDANT) < 1.0

    def test_placed_resource_count(self, make_tile_map):
        tile_map = make_tile_map()
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 6, 6))
        grid = tile_map.grid
        tile_map.place_resource(grid.offset_to_index(3, 3), Resource.IRON, 6)
        tile_map.place_resource(grid.offset_to_index(6, 6), Resource.IRON, 2)
        assert placed_resource_count(tile_map, Resource.IRON) == 8
        assert placed_resource_count(tile_map, Resource.COAL) == 0


class TestFixSugarJungles:
    """Test the sugar clean up pass."""

    def test_sugar_in_jungle_becomes_marsh(self, make_tile_map):
        tile_map = make_tile_map()
        grid = tile_map.grid
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 6, 6), TerrainType.HILL, BaseTerrain.PLAIN)
        jungle = grid.offset_to_index(4, 4)
        marsh = grid.offset_to_index(6, 4)
        tile_map.set_feature(jungle, Feature.JUNGLE)
        tile_map.set_resource(jungle, Resource.SUGAR, 1)
        tile_map.set_feature(marsh, Feature.MARSH)
        tile_map.set_resource(marsh, Resource.SUGAR, 1)
        fix_sugar_jungles(tile_map)
        assert tile_map.terrain_type[jungle] == TerrainType.FLATLAND
        assert tile_map.base_terrain[jungle] == BaseTerrain.GRASSLAND
        assert tile_map.get_feature(jungle) == Feature.MARSH
        assert tile_map.get_resource(jungle) == Resource.SUGAR
        assert tile_map.terrain_type[marsh] == TerrainType.HILL

    def test_no_sugar_no_change(self, make_tile_map):
        tile_map = make_tile_map()
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 6, 6))
        tile_map.set_feature(tile_map.grid.offset_to_index(4, 4), Feature.JUNGLE)
        before = tile_map.feature.copy()
        fix_sugar_jungles(tile_map)
        np.testing.assert_array_equal(before, tile_map.feature)


class TestLuxuryPlotLists:
    """Test plot list membership."""

    @pytest.fixture
    def tile_map(self, make_tile_map):
        tile_map = make_tile_map()
        paint(tile_map, rectangle_tiles(tile_map, 2, 2, 10, 8))
        return tile_map

    def test_grassland(self, tile_map):
        tile = tile_map.grid.offset_to_index(5, 5)
        assert land_plot_lists_for_tile(tile_map, tile, fresh=False) == [DRY_GRASS_FLAT_NO_FEATURE]
        assert land_plot_lists_for_tile(tile_map, tile, fresh=True) == [FRESH_GRASS_FLAT_NO_FEATURE]

    def test_forest_and_hills(self, tile_map):
        grid = tile_map.grid
        forest = grid.offset_to_index(5, 5)
        tile_map.set_feature(forest, Feature.FOREST)
        assert FOREST_FLAT in land_plot_lists_for_tile(tile_map, forest, fresh=False)
        hill = grid.offset_to_index(7, 5)
        paint(tile_map, [hill], TerrainType.HILL, BaseTerrain.PLAIN)
        assert land_plot_lists_for_tile(tile_map, hill, fresh=False) == [HILL_OPEN]
        tile_map.set_feature(hill, Feature.FOREST)
        assert land_plot_lists_for_tile(tile_map, hill, fresh=False) == [HILL_FOREST, HILL_COVERED]

    def test_unusable_tiles(self, tile_map):
        grid = tile_map.grid
        mountain = grid.offset_to_index(5, 5)
        paint(tile_map, [mountain], TerrainType.MOUNTAIN)
        assert land_plot_lists_for_tile(tile_map, mountain, fresh=False) == []
        snow = grid.offset_to_index(7, 5)
        paint(tile_map, [snow], TerrainType.FLATLAND, BaseTerrain.SNOW)
        assert land_plot_lists_for_tile(tile_map, snow, fresh=False) == []


class TestLuxuryRoles:
    """Test luxury role assignment."""

    @pytest.fixture
    def tile_map(self, make_tile_map):
        tile_map = make_tile_map(width=24, height=16, civilization_num=4)
        for index in range(4):
            region = Region(
                rectangle=Rectangle(west_x=index * 6, south_y=0, width=6, height=16),
                area_id=None,
                fertility=np.full((16, 6), 3, dtype=np.int32),
                region_type=RegionType.GRASSLAND,
            )
            tile_map.region_list.append(region)
        return tile_map

    def test_every_region_gets_a_luxury(self, tile_map):
        LuxuryRoleAssigner(tile_map).assign_luxury_roles()
        luxuries = [region.luxury_resource for region in tile_map.region_list]
        assert all(luxury is not None for luxury in luxuries)
        # Up to eight civilizations never share a regional luxury
        assert len(set(luxuries)) == 4
        assert not set(luxuries) & set(SEA_LUXURIES)

    def test_roles_are_disjoint(self, tile_map):
        LuxuryRoleAssigner(tile_map).assign_luxury_roles()
        role = tile_map.luxury_resource_role
        regional = set(role.luxury_assigned_to_regions)
        city_state = set(role.luxury_assigned_to_city_state)
        random = set(role.luxury_assigned_to_random)
        assert len(role.luxury_assigned_to_city_state) == 3
        assert role.luxury_assigned_to_special_case == [Resource.MARBLE]
        assert not regional & city_state
        assert not random & (regional | city_state)
        assert regional | city_state | random == {luxury for luxury, _ in LUXURY_CITY_STATE_WEIGHTS}

    def test_region_counts(self, tile_map):
        LuxuryRoleAssigner(tile_map).assign_luxury_roles()
        counts = tile_map.luxury_assign_to_region_count
        assert sum(counts.values()) == 4
        assert max(counts.values()) == 1


class TestLuxuryTargets:
    """Test regional luxury targets."""

    def test_duel_targets(self):
        assert all(target == 1 for target in region_luxury_targets(WorldSize.DUEL))

    @pytest.mark.parametrize("world_size", list(WorldSize))
    def test_every_civilization_count_covered(self, world_size):
        assert len(region_luxury_targets(world_size)) >= 22
