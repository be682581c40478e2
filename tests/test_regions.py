"""Tests for region generation and civilization starting tiles."""

import numpy as np
import pytest

from py_civmap.config.map_parameters import Rectangle, RegionDivideMethod, Wrap
from py_civmap.core.areas import recalculate_areas
from py_civmap.core.biomes import generate_base_terrains
from py_civmap.core.hex_grid import Direction
from py_civmap.core.regions import (
    Region,
    RegionGenerator,
    StartingTileSelector,
    _span,
    choose_civilization_starting_tiles,
    fertility_map,
    generate_regions,
)
from py_civmap.core.tile_map import BaseTerrain, Layer, RegionType, TerrainType

from map_helpers import paint, rectangle_tiles


class TestFertility:
    """Test the start placement fertility map."""

    @pytest.fixture
    def tile_map(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=12)
        grid = tile_map.grid
        paint(tile_map, rectangle_tiles(tile_map, 4, 2, 12, 8))
        paint(tile_map, [grid.offset_to_index(8, 5)], TerrainType.FLATLAND, BaseTerrain.PLAIN)
        paint(tile_map, [grid.offset_to_index(10, 5)], TerrainType.HILL, BaseTerrain.PLAIN)
        paint(tile_map, [grid.offset_to_index(12, 5)], TerrainType.MOUNTAIN, BaseTerrain.GRASSLAND)
        paint(tile_map, [grid.offset_to_index(8, 8)], TerrainType.FLATLAND, BaseTerrain.SNOW)
        paint(tile_map, [grid.offset_to_index(3, 5)], TerrainType.WATER, BaseTerrain.COAST)
        return tile_map

    def test_base_values(self, tile_map):
        grid = tile_map.grid
        fertility = fertility_map(tile_map, check_coastal_land=False)
        assert fertility[grid.offset_to_index(6, 5)] == 3
        assert fertility[grid.offset_to_index(8, 5)] == 4
        assert fertility[grid.offset_to_index(10, 5)] == 5
        assert fertility[grid.offset_to_index(12, 5)] == -2
        assert fertility[grid.offset_to_index(8, 8)] == -1
        assert fertility[grid.offset_to_index(3, 5)] == 2
        assert fertility[grid.offset_to_index(0, 0)] == 0

    def test_coastal_land_bonus(self, tile_map):
        grid = tile_map.grid
        shore = grid.offset_to_index(4, 5)
        without = fertility_map(tile_map, check_coastal_land=False)
        with_coast = fertility_map(tile_map, check_coastal_land=True)
        assert with_coast[shore] == without[shore] + 2
        assert with_coast[grid.offset_to_index(6, 5)] == without[grid.offset_to_index(6, 5)]

    def test_river_and_freshwater_bonus(self, tile_map):
        grid = tile_map.grid
        tile = grid.offset_to_index(6, 7)
        before = fertility_map(tile_map, check_coastal_land=False)[tile]
        tile_map.add_river_edge([], tile, Direction.E)
        after = fertility_map(tile_map, check_coastal_land=False)[tile]
        assert after == before + 2


class TestRegion:
    """Test region bookkeeping."""

    def test_remove_dead_rows_and_columns(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=12)
        fertility = np.zeros((6, 8), dtype=np.int32)
        fertility[2:4, 3:6] = 3
        region = Region(rectangle=Rectangle(west_x=2, south_y=1, width=8, height=6), area_id=None, fertility=fertility)
        region.remove_dead_rows_and_columns(tile_map.grid)
        assert region.rectangle == Rectangle(west_x=5, south_y=3, width=3, height=2)
        assert region.fertility.shape == (2, 3)
        assert region.fertility_sum == 18

    def test_all_zero_region_is_kept(self, make_tile_map):
        tile_map = make_tile_map(width=20, height=12)
        rectangle = Rectangle(west_x=0, south_y=0, width=4, height=4)
        region = Region(rectangle=rectangle, area_id=None, fertility=np.zeros((4, 4), dtype=np.int32))
        region.remove_dead_rows_and_columns(tile_map.grid)
        assert region.rectangle == rectangle
        assert region.average_fertility == 0.0

    def test_region_type_from_statistics(self):
        region = Region(
            rectangle=Rectangle(west_x=0, south_y=0, width=4, height=4),
            area_id=None,
            fertility=np.ones((4, 4), dtype=np.int32),
        )
        region.terrain_statistic.terrain_type_num[TerrainType.FLATLAND] = 100
        region.terrain_statistic.base_terrain_num[BaseTerrain.DESERT] = 40
        region.terrain_statistic.base_terrain_num[BaseTerrain.GRASSLAND] = 60
        region.determine_region_type()
        assert region.region_type == RegionType.DESERT

        region.terrain_statistic.base_terrain_num[BaseTerrain.DESERT] = 0
        region.terrain_statistic.base_terrain_num[BaseTerrain.TUNDRA] = 35
        region.determine_region_type()
        assert region.region_type == RegionType.TUNDRA

    def test_span_wraps_around(self):
        occupied = np.array([True, True, False, False, False, True])
        assert _span(occupied, wraps=True) == (5, 3)
        assert _span(occupied, wraps=False) == (0, 6)
        assert _span(np.array([False, True, True, False]), wraps=True) == (1, 2)


class TestRegionGenerator:
    """Test the divide methods."""

    @pytest.fixture
    def grassland(self, make_tile_map):
        def factory(civilization_num, method=RegionDivideMethod.WHOLE_MAP_RECTANGLE, **kwargs):
            tile_map = make_tile_map(
                width=24, height=16, civilization_num=civilization_num, region_divide_method=method, **kwargs
            )
            paint(tile_map, tile_map.all_tiles())
            recalculate_areas(tile_map)
            return tile_map

        return factory

    @pytest.mark.parametrize("civilization_num", [1, 2, 3, 4, 5, 6, 7, 8])
    def test_one_region_per_civilization(self, grassland, civilization_num):
        tile_map = grassland(civilization_num)
        regions = generate_regions(tile_map)
        assert len(regions) == civilization_num
        assert sum(region.tile_count for region in regions) == tile_map.size
        assert sum(region.fertility_sum for region in regions) == 3 * tile_map.size

    def test_even_split(self, grassland):
        tile_map = grassland(2)
        first, second = generate_regions(tile_map)
        assert first.fertility_sum == second.fertility_sum
        assert first.rectangle.height == second.rectangle.height == 16

    def test_region_types(self, grassland):
        tile_map = grassland(4)
        for region in generate_regions(tile_map):
            assert region.region_type == RegionType.GRASSLAND
            assert region.area_id is None

    def test_custom_rectangle(self, grassland):
        rectangle = Rectangle(west_x=4, south_y=2, width=10, height=8)
        tile_map = grassland(2, RegionDivideMethod.CUSTOM_RECTANGLE, custom_rectangle=rectangle)
        regions = generate_regions(tile_map)
        assert sum(region.tile_count for region in regions) == 80
        for region in regions:
            for tile in region.tile_indices(tile_map.grid).ravel():
                assert rectangle.contains(tile_map.grid, int(tile))

    def test_continents_split_between_islands(self, make_tile_map):
        tile_map = make_tile_map(width=40, height=20, civilization_num=2)
        paint(tile_map, rectangle_tiles(tile_map, 2, 3, 14, 14))
        paint(tile_map, rectangle_tiles(tile_map, 24, 3, 14, 14))
        recalculate_areas(tile_map)
        regions = generate_regions(tile_map)
        assert len(regions) == 2
        assert regions[0].area_id != regions[1].area_id

    def test_pangaea_uses_biggest_landmass(self, make_tile_map):
        tile_map = make_tile_map(width=40, height=20, civilization_num=2, region_divide_method=RegionDivideMethod.PANGAEA)
        paint(tile_map, rectangle_tiles(tile_map, 2, 3, 20, 14))
        paint(tile_map, rectangle_tiles(tile_map, 28, 3, 8, 8))
        recalculate_areas(tile_map)
        big = tile_map.area_id[tile_map.grid.offset_to_index(10, 10)]
        regions = generate_regions(tile_map)
        assert len(regions) == 2
        assert all(region.area_id == big for region in regions)

    def test_landmass_boundaries_wrap(self, make_tile_map):
        tile_map = make_tile_map(width=30, height=16, wrap=Wrap.X)
        paint(tile_map, rectangle_tiles(tile_map, 24, 4, 6, 8))
        paint(tile_map, rectangle_tiles(tile_map, 0, 4, 6, 8))
        recalculate_areas(tile_map)
        area = int(tile_map.area_id[tile_map.grid.offset_to_index(2, 8)])
        rectangle = RegionGenerator(tile_map).landmass_boundaries(area)
        assert rectangle.west_x == 24
        assert rectangle.width == 12


class TestStartingTiles:
    """Test civilization start selection."""

    @pytest.fixture
    def continent(self, make_tile_map):
        tile_map = make_tile_map(width=40, height=24, seed=2, civilization_num=2)
        paint(tile_map, rectangle_tiles(tile_map, 3, 3, 34, 18))
        paint(tile_map, rectangle_tiles(tile_map, 10, 8, 4, 4), TerrainType.HILL, BaseTerrain.PLAIN)
        generate_base_terrains(tile_map)
        recalculate_areas(tile_map)
        generate_regions(tile_map)
        return tile_map

    def test_every_region_gets_a_start(self, continent):
        choose_civilization_starting_tiles(continent)
        starts = [region.starting_tile for region in continent.region_list]
        assert all(start is not None for start in starts)
        assert len(set(starts)) == len(starts)
        for start in starts:
            assert continent.terrain_type[start] in (TerrainType.FLATLAND, TerrainType.HILL)
            assert continent.player_collision[start]
            assert continent.layer_impact[Layer.CIVILIZATION, start] > 0

    def test_regions_sorted_poorest_first(self, continent):
        choose_civilization_starting_tiles(continent)
        averages = [region.average_fertility for region in continent.region_list]
        assert averages == sorted(averages)

    def test_measure_single_tile(self, continent):
        selector = StartingTileSelector(continent)
        region = continent.region_list[0]
        grid = continent.grid
        assert selector.measure_single_tile(grid.offset_to_index(11, 9), region)[1]
        assert selector.measure_single_tile(grid.offset_to_index(0, 0), region) == (False, False, False, False)

    def test_bias_rectangles_nest(self, continent):
        selector = StartingTileSelector(continent)
        rectangle = Rectangle(west_x=0, south_y=0, width=12, height=9)
        center, middle = selector.bias_rectangles(rectangle)
        assert center.width < middle.width < rectangle.width
        assert center.height < middle.height < rectangle.height
