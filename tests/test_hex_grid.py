"""Tests for hex grid geometry."""

import pytest

from py_civmap.config.map_parameters import HexOrientation, Offset
from py_civmap.core.hex_grid import Direction, HexGrid


class TestHexGrid:
    """Test neighbours, rings and distances."""

    @pytest.fixture
    def wrapped(self):
        return HexGrid(10, 8, HexOrientation.FLAT, Offset.ODD, wrap_x=True, wrap_y=False)

    @pytest.fixture
    def bounded(self):
        return HexGrid(10, 8, HexOrientation.POINTY, Offset.EVEN, wrap_x=False, wrap_y=False)

    def test_index_round_trip(self, wrapped):
        for index in (0, 9, 10, 37, 79):
            x, y = wrapped.index_to_offset(index)
            assert wrapped.offset_to_index(x, y) == index
            assert wrapped.axial_to_index(*wrapped.index_to_axial(index)) == index

    def test_interior_tile_has_six_neighbors(self, wrapped, bounded):
        tile = wrapped.offset_to_index(4, 4)
        assert len(wrapped.neighbors(tile)) == 6
        assert len(bounded.neighbors(tile)) == 6

    def test_neighbors_are_symmetric(self, bounded):
        for tile in range(bounded.size):
            for neighbor in bounded.neighbors(tile):
                assert tile in bounded.neighbors(neighbor)
                assert bounded.distance(tile, neighbor) == 1

    def test_wrap_x_connects_left_and_right_edges(self, wrapped):
        left = wrapped.offset_to_index(0, 3)
        right = wrapped.offset_to_index(9, 3)
        assert len(wrapped.neighbors(left)) == 6
        assert wrapped.distance(left, right) == 1

    def test_no_lookup_crosses_a_non_wrapping_edge(self, wrapped, bounded):
        # Bottom row of the X-wrapped grid loses its southern neighbours
        bottom = wrapped.offset_to_index(4, 0)
        assert len(wrapped.neighbors(bottom)) < 6
        for neighbor in wrapped.neighbors(bottom):
            assert wrapped.index_to_offset(neighbor)[1] <= 1

        corner = bounded.offset_to_index(0, 0)
        assert len(bounded.neighbors(corner)) <= 3
        for neighbor in bounded.neighbors(corner):
            x, y = bounded.index_to_offset(neighbor)
            assert x <= 1 and y <= 1

    def test_neighbor_by_direction(self, wrapped):
        tile = wrapped.offset_to_index(4, 4)
        north = wrapped.neighbor(tile, Direction.N)
        assert north == wrapped.offset_to_index(4, 5)
        assert wrapped.neighbor(north, Direction.S) == tile

    def test_edge_direction_orders(self, wrapped, bounded):
        assert len(wrapped.edge_directions) == 6
        assert Direction.N in wrapped.edge_directions
        assert Direction.E not in wrapped.edge_directions
        assert Direction.E in bounded.edge_directions
        assert Direction.N not in bounded.edge_directions

    def test_ring_sizes(self, wrapped):
        tile = wrapped.offset_to_index(5, 4)
        assert wrapped.tiles_at_distance(tile, 0) == [tile]
        assert len(wrapped.tiles_at_distance(tile, 1)) == 6
        assert len(wrapped.tiles_at_distance(tile, 2)) == 12
        for ring_tile in wrapped.tiles_at_distance(tile, 2):
            assert wrapped.distance(tile, ring_tile) == 2

    def test_tiles_in_distance_starts_at_center(self, wrapped):
        tile = wrapped.offset_to_index(5, 4)
        tiles = list(wrapped.tiles_in_distance(tile, 2))
        assert tiles[0] == tile
        assert len(tiles) == 19
        assert len(set(tiles)) == 19

    def test_latitude(self, wrapped):
        assert wrapped.latitude(wrapped.offset_to_index(0, 4)) == 0.0
        assert wrapped.latitude(wrapped.offset_to_index(0, 0)) == 1.0
        assert 0.0 < wrapped.latitude(wrapped.offset_to_index(0, 6)) < 1.0

    def test_neighbor_table_marks_missing_neighbors(self, bounded):
        table = bounded.neighbor_table
        assert table.shape == (bounded.size, 6)
        assert (table[bounded.offset_to_index(0, 0)] == -1).any()
        assert (table[bounded.offset_to_index(5, 4)] >= 0).all()
