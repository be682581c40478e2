"""Helpers for painting terrain onto test maps."""

from py_civmap.core.tile_map import BaseTerrain, TerrainType


def paint(tile_map, tiles, terrain_type=TerrainType.FLATLAND, base_terrain=BaseTerrain.GRASSLAND):
    """Set terrain type and base terrain on a collection of tiles."""
    for tile in tiles:
        tile_map.terrain_type[tile] = terrain_type
        tile_map.base_terrain[tile] = base_terrain


def rectangle_tiles(tile_map, x0, y0, width, height):
    """Tile indices of an offset rectangle, row by row."""
    return [
        tile_map.grid.offset_to_index(x, y)
        for y in range(y0, y0 + height)
        for x in range(x0, x0 + width)
    ]
