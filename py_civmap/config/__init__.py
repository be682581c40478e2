"""
Configuration modules for map generation.
"""

from .config import Settings, settings
from .map_parameters import (
    WORLD_SIZE_TABLE,
    HexOrientation,
    MapParameters,
    MapType,
    Offset,
    Rainfall,
    Rectangle,
    RegionDivideMethod,
    ResourceSetting,
    SeaLevel,
    Temperature,
    WorldAge,
    WorldSize,
    WorldSizeInfo,
    Wrap,
)

__all__ = ['Settings', 'settings', 'WORLD_SIZE_TABLE', 'HexOrientation', 'MapParameters',
           'MapType', 'Offset', 'Rainfall', 'Rectangle', 'RegionDivideMethod',
           'ResourceSetting', 'SeaLevel', 'Temperature', 'WorldAge', 'WorldSize',
           'WorldSizeInfo', 'Wrap']
