"""
Core map generation functionality.
"""

from .alea_prng import AleaPRNG
from .hex_grid import Direction, HexGrid
from .tile_map import (
    BaseTerrain,
    Feature,
    Layer,
    NaturalWonder,
    RegionType,
    Resource,
    TerrainType,
    TileMap,
)

__all__ = ['AleaPRNG', 'Direction', 'HexGrid', 'BaseTerrain', 'Feature', 'Layer',
           'NaturalWonder', 'RegionType', 'Resource', 'TerrainType', 'TileMap']
