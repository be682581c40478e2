"""
Map generation parameters.

MapParameters is the single configuration record consumed by the
pipeline. World-size dependent values (dimensions, fractal grain, plate
count, civilization capacity) come from a static lookup table so that a
record only needs to name a world size.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import ConfigurationError

MAX_CIVILIZATIONS = 21


class MapType(str, Enum):
    FRACTAL = "Fractal"
    PANGAEA = "Pangaea"


class WorldSize(str, Enum):
    DUEL = "Duel"
    TINY = "Tiny"
    SMALL = "Small"
    STANDARD = "Standard"
    LARGE = "Large"
    HUGE = "Huge"


class Wrap(str, Enum):
    NONE = "None"
    X = "X"
    Y = "Y"
    BOTH = "Both"


class HexOrientation(str, Enum):
    FLAT = "Flat"
    POINTY = "Pointy"


class Offset(str, Enum):
    ODD = "Odd"
    EVEN = "Even"


class WorldAge(str, Enum):
    OLD = "Old"
    NORMAL = "Normal"
    NEW = "New"


class SeaLevel(str, Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    RANDOM = "Random"


class Temperature(str, Enum):
    COOL = "Cool"
    NORMAL = "Normal"
    HOT = "Hot"


class Rainfall(str, Enum):
    ARID = "Arid"
    NORMAL = "Normal"
    WET = "Wet"
    RANDOM = "Random"


class RegionDivideMethod(str, Enum):
    PANGAEA = "Pangaea"
    CONTINENT = "Continent"
    WHOLE_MAP_RECTANGLE = "WholeMapRectangle"
    CUSTOM_RECTANGLE = "CustomRectangle"


class ResourceSetting(str, Enum):
    SPARSE = "Sparse"
    STANDARD = "Standard"
    ABUNDANT = "Abundant"
    LEGENDARY_START = "LegendaryStart"
    STRATEGIC_BALANCE = "StrategicBalance"


@dataclass(frozen=True)
class WorldSizeInfo:
    """Static per-world-size settings."""
    width: int
    height: int
    grain: int  # Grain of the mountains/hills fractals
    num_plates: int  # Ridge seeds for the hills fractal
    tiles_per_civ: int  # Minimum map tiles per civilization
    civilization_num: int  # Default civilization count
    city_state_num: int  # Default city-state count


WORLD_SIZE_TABLE = {
    WorldSize.DUEL: WorldSizeInfo(40, 24, 3, 6, 120, 4, 6),
    WorldSize.TINY: WorldSizeInfo(56, 36, 3, 9, 168, 4, 8),
    WorldSize.SMALL: WorldSizeInfo(66, 42, 4, 12, 198, 6, 12),
    WorldSize.STANDARD: WorldSizeInfo(80, 52, 4, 18, 208, 8, 16),
    WorldSize.LARGE: WorldSizeInfo(104, 64, 5, 24, 277, 10, 20),
    WorldSize.HUGE: WorldSizeInfo(128, 80, 5, 30, 320, 12, 24),
}


class Rectangle(BaseModel):
    """Axis-aligned block of offset coordinates, possibly wrapping around the map edge."""

    west_x: int = Field(description="Offset x of the west column")
    south_y: int = Field(description="Offset y of the south row")
    width: int = Field(ge=0, description="Number of columns")
    height: int = Field(ge=0, description="Number of rows")

    def iter_tiles(self, grid) -> Iterator[int]:
        """Yield tile indices row by row, south to north."""
        for y in range(self.south_y, self.south_y + self.height):
            for x in range(self.west_x, self.west_x + self.width):
                yield grid.offset_to_index(x % grid.width, y % grid.height)

    def contains(self, grid, tile: int) -> bool:
        x, y = grid.index_to_offset(tile)
        rel_x = (x - self.west_x) % grid.width
        rel_y = (y - self.south_y) % grid.height
        return rel_x < self.width and rel_y < self.height


class MapParameters(BaseModel):
    """Configuration record for one map generation run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=False)

    map_type: MapType = Field(default=MapType.FRACTAL, description="Terrain type strategy")
    world_size: WorldSize = Field(default=WorldSize.STANDARD, description="World size preset")
    width: Optional[int] = Field(default=None, description="Map width; world-size default when unset")
    height: Optional[int] = Field(default=None, description="Map height; world-size default when unset")
    wrap: Wrap = Field(default=Wrap.X, description="Wrapping axes")
    hex_orientation: HexOrientation = Field(default=HexOrientation.FLAT, description="Hex orientation")
    offset: Offset = Field(default=Offset.ODD, description="Offset parity of shoved rows/columns")
    world_age: WorldAge = Field(default=WorldAge.NORMAL, description="Controls mountain/hill amount")
    sea_level: SeaLevel = Field(default=SeaLevel.NORMAL, description="Controls water percentage")
    temperature: Temperature = Field(default=Temperature.NORMAL, description="Shifts biome latitudes")
    rainfall: Rainfall = Field(default=Rainfall.NORMAL, description="Shifts feature caps")
    civilization_num: Optional[int] = Field(default=None, description="Number of civilizations")
    city_state_num: Optional[int] = Field(default=None, description="Number of city states")
    natural_wonder_num: Optional[int] = Field(default=None, description="Upper bound on natural wonders")
    lake_max_area_size: int = Field(default=9, description="Largest water area turned into a lake")
    large_lake_num: int = Field(default=2, description="Lakes allowed to grow past one tile")
    coast_expand_chance: List[float] = Field(
        default_factory=lambda: [0.25, 0.25], description="Per-sweep chance to widen the coast"
    )
    seed: int = Field(default=0, description="Seed of the random stream")
    region_divide_method: RegionDivideMethod = Field(
        default=RegionDivideMethod.CONTINENT, description="How the map is split into regions"
    )
    custom_rectangle: Optional[Rectangle] = Field(
        default=None, description="Rectangle used by the CustomRectangle divide method"
    )
    civilization_starting_tile_must_be_coastal_land: bool = Field(
        default=False, description="Force civilization starts onto coastal land"
    )
    resource_setting: ResourceSetting = Field(
        default=ResourceSetting.STANDARD, description="Resource abundance"
    )

    @model_validator(mode="after")
    def _fill_world_size_defaults(self):
        info = WORLD_SIZE_TABLE[self.world_size]
        if self.width is None:
            self.width = info.width
        if self.height is None:
            self.height = info.height
        if self.civilization_num is None:
            self.civilization_num = info.civilization_num
        if self.city_state_num is None:
            self.city_state_num = info.city_state_num
        return self

    @classmethod
    def from_settings(cls, settings=None, **overrides) -> "MapParameters":
        """
        Build parameters whose world size and seed default to the process settings.

        Args:
            settings: Settings instance; defaults to the process-wide singleton
            **overrides: Any MapParameters field

        Returns:
            MapParameters instance
        """
        if settings is None:
            from .config import settings
        overrides.setdefault("world_size", settings.default_world_size)
        overrides.setdefault("seed", settings.default_seed)
        return cls(**overrides)

    @property
    def world_size_info(self) -> WorldSizeInfo:
        return WORLD_SIZE_TABLE[self.world_size]

    @property
    def grain(self) -> int:
        return self.world_size_info.grain

    @property
    def num_plates(self) -> int:
        return self.world_size_info.num_plates

    @property
    def tiles_per_civ(self) -> int:
        return self.world_size_info.tiles_per_civ

    @property
    def wrap_x(self) -> bool:
        return self.wrap in (Wrap.X, Wrap.BOTH)

    @property
    def wrap_y(self) -> bool:
        return self.wrap in (Wrap.Y, Wrap.BOTH)

    def validate_parameters(self, ruleset=None) -> None:
        """
        Check parameter ranges before any generation work starts.

        Args:
            ruleset: Optional Ruleset; when given, nation and city-state counts are checked

        Raises:
            ConfigurationError: If any parameter is out of range
        """
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(f"Map size must be positive, got {self.width}x{self.height}")
        if self.civilization_num < 1:
            raise ConfigurationError("At least one civilization is required")
        capacity = min(MAX_CIVILIZATIONS, max(1, self.width * self.height // self.tiles_per_civ))
        if self.civilization_num > capacity:
            raise ConfigurationError(
                f"{self.civilization_num} civilizations exceed the {capacity} regions "
                f"available on a {self.width}x{self.height} map"
            )
        if self.city_state_num < 0:
            raise ConfigurationError("city_state_num must not be negative")
        if self.lake_max_area_size < 1:
            raise ConfigurationError("lake_max_area_size must be at least 1")
        if self.large_lake_num < 0:
            raise ConfigurationError("large_lake_num must not be negative")
        if self.natural_wonder_num is not None and self.natural_wonder_num < 0:
            raise ConfigurationError("natural_wonder_num must not be negative")
        if any(not 0.0 <= chance <= 1.0 for chance in self.coast_expand_chance):
            raise ConfigurationError("coast_expand_chance values must lie in [0, 1]")
        if self.region_divide_method == RegionDivideMethod.CUSTOM_RECTANGLE:
            rectangle = self.custom_rectangle
            if rectangle is None:
                raise ConfigurationError("CustomRectangle divide method needs custom_rectangle")
            if (
                rectangle.width < 1
                or rectangle.height < 1
                or rectangle.width > self.width
                or rectangle.height > self.height
                or not 0 <= rectangle.west_x < self.width
                or not 0 <= rectangle.south_y < self.height
            ):
                raise ConfigurationError(f"custom_rectangle {rectangle} lies outside the map")
        if ruleset is not None:
            nation_count = len(ruleset.civilization_nations())
            if self.civilization_num > nation_count:
                raise ConfigurationError(
                    f"Ruleset only defines {nation_count} civilizations, "
                    f"{self.civilization_num} requested"
                )
            city_state_count = len(ruleset.city_state_nations())
            if self.city_state_num > city_state_count:
                raise ConfigurationError(
                    f"Ruleset only defines {city_state_count} city states, "
                    f"{self.city_state_num} requested"
                )
