"""
Ruleset catalogue for map generation.

This module implements:
- Pydantic models mirroring the ruleset JSON (base terrains, features,
  natural wonders, resources, nations)
- Ruleset: the loaded catalogue with every name resolved once to the
  integer IDs used by the tile store, plus side tables keyed by ID
- Parsing of natural wonder placement uniques
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config.config import settings
from .core.tile_map import (
    BaseTerrain,
    Feature,
    NaturalWonder,
    RegionType,
    Resource,
    ResourceClass,
    TerrainType,
)
from .exceptions import RulesetError

logger = structlog.get_logger()

DEFAULT_RULESET_PATH = Path(__file__).resolve().parent / "data" / "ruleset.json"

_UNIQUE_PARAM = re.compile(r"\[([^\]]*)\]")


class TerrainTypeInfo(BaseModel):
    name: str


class BaseTerrainInfo(BaseModel):
    name: str


class FeatureInfo(BaseModel):
    """Feature entry with the terrain it may grow on."""

    name: str
    impassable: bool = False
    occurs_on_type: List[str] = Field(default_factory=list)
    occurs_on_base: List[str] = Field(default_factory=list)


class NaturalWonderInfo(BaseModel):
    """Natural wonder entry with eligibility and terrain conversion rules."""

    name: str
    impassable: bool = False
    is_fresh_water: bool = False
    occurs_on_type: List[str] = Field(default_factory=list)
    occurs_on_base: List[str] = Field(default_factory=list)
    turns_into_type: Optional[str] = None
    turns_into_base: Optional[str] = None
    uniques: List[str] = Field(default_factory=list)


class ResourceInfo(BaseModel):
    name: str
    resource_type: str = Field(description="Bonus, Strategic or Luxury")


class NationInfo(BaseModel):
    """Nation entry; a non-empty ``city_state_type`` marks a city state."""

    name: str
    city_state_type: str = ""
    along_ocean: bool = False
    along_river: bool = False
    region_type_priority: List[str] = Field(default_factory=list)
    avoid_region_type: List[str] = Field(default_factory=list)


class RulesetData(BaseModel):
    """Raw ruleset document."""

    model_config = ConfigDict(extra="ignore")

    terrain_types: List[TerrainTypeInfo]
    base_terrains: List[BaseTerrainInfo]
    features: List[FeatureInfo]
    natural_wonders: List[NaturalWonderInfo]
    resources: List[ResourceInfo]
    nations: List[NationInfo]


@dataclass(frozen=True)
class WonderUnique:
    """Parsed placement rule such as ``Must be adjacent to [0] [Coast] tiles``."""
    placeholder: str
    params: Tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "WonderUnique":
        return cls(_UNIQUE_PARAM.sub("[]", text), tuple(_UNIQUE_PARAM.findall(text)))


@dataclass
class FeatureRule:
    occurs_on_type: FrozenSet[TerrainType]
    occurs_on_base: FrozenSet[BaseTerrain]
    impassable: bool

    def can_occur(self, terrain_type: int, base_terrain: int) -> bool:
        return terrain_type in self.occurs_on_type and base_terrain in self.occurs_on_base


@dataclass
class WonderRule:
    wonder: NaturalWonder
    name: str
    occurs_on_type: FrozenSet[TerrainType]
    occurs_on_base: FrozenSet[BaseTerrain]
    is_fresh_water: bool
    impassable: bool
    turns_into_type: Optional[TerrainType]
    turns_into_base: Optional[BaseTerrain]
    uniques: List[WonderUnique] = field(default_factory=list)


@dataclass
class NationRule:
    """Start bias of one nation."""
    name: str
    is_city_state: bool
    along_ocean: bool
    along_river: bool
    region_type_priority: List[RegionType]
    avoid_region_type: List[RegionType]


def _resolve(enum_cls, name: str, context: str):
    try:
        return enum_cls.from_name(name)
    except KeyError:
        raise RulesetError(f"{context}: unknown {enum_cls.__name__} '{name}'") from None


class Ruleset:
    """
    Read-only catalogue consumed by the generator.

    Names are resolved to enum IDs once at construction; every lookup the
    generation passes make afterwards goes through the ID-keyed side tables.
    """

    def __init__(self, data: RulesetData):
        self.data = data

        self._terrain_type_names = self._name_table(TerrainType, data.terrain_types, "terrain_types")
        self._base_terrain_names = self._name_table(BaseTerrain, data.base_terrains, "base_terrains")
        self._feature_names = self._name_table(Feature, data.features, "features")
        self._wonder_names = self._name_table(NaturalWonder, data.natural_wonders, "natural_wonders")
        self._resource_names = self._name_table(Resource, data.resources, "resources")

        self.features: Dict[Feature, FeatureRule] = {}
        self.feature_impassable = np.zeros(len(Feature), dtype=bool)
        for info in data.features:
            feature = Feature.from_name(info.name)
            context = f"Feature '{info.name}'"
            self.features[feature] = FeatureRule(
                occurs_on_type=frozenset(_resolve(TerrainType, n, context) for n in info.occurs_on_type),
                occurs_on_base=frozenset(_resolve(BaseTerrain, n, context) for n in info.occurs_on_base),
                impassable=info.impassable,
            )
            self.feature_impassable[feature] = info.impassable

        self.natural_wonders: Dict[NaturalWonder, WonderRule] = {}
        self.wonder_impassable = np.zeros(len(NaturalWonder), dtype=bool)
        for info in data.natural_wonders:
            wonder = NaturalWonder.from_name(info.name)
            context = f"Natural wonder '{info.name}'"
            self.natural_wonders[wonder] = WonderRule(
                wonder=wonder,
                name=info.name,
                occurs_on_type=frozenset(_resolve(TerrainType, n, context) for n in info.occurs_on_type),
                occurs_on_base=frozenset(_resolve(BaseTerrain, n, context) for n in info.occurs_on_base),
                is_fresh_water=info.is_fresh_water,
                impassable=info.impassable,
                turns_into_type=(
                    _resolve(TerrainType, info.turns_into_type, context) if info.turns_into_type else None
                ),
                turns_into_base=(
                    _resolve(BaseTerrain, info.turns_into_base, context) if info.turns_into_base else None
                ),
                uniques=[WonderUnique.parse(text) for text in info.uniques],
            )
            self.wonder_impassable[wonder] = info.impassable

        self.resource_class: Dict[Resource, ResourceClass] = {}
        for info in data.resources:
            resource = Resource.from_name(info.name)
            self.resource_class[resource] = _resolve(
                ResourceClass, info.resource_type, f"Resource '{info.name}'"
            )

        self.nations: List[NationRule] = []
        for info in data.nations:
            context = f"Nation '{info.name}'"
            self.nations.append(NationRule(
                name=info.name,
                is_city_state=bool(info.city_state_type),
                along_ocean=info.along_ocean,
                along_river=info.along_river,
                region_type_priority=[_resolve(RegionType, n, context) for n in info.region_type_priority],
                avoid_region_type=[_resolve(RegionType, n, context) for n in info.avoid_region_type],
            ))
        self._nations_by_name = {nation.name: nation for nation in self.nations}

        logger.info(
            "Ruleset loaded",
            features=len(self.features),
            natural_wonders=len(self.natural_wonders),
            resources=len(self.resource_class),
            nations=len(self.nations),
        )

    @staticmethod
    def _name_table(enum_cls, entries, section: str) -> Dict[int, str]:
        """Map every enum member to its display name; every member must be present."""
        table = {}
        for info in entries:
            member = _resolve(enum_cls, info.name, section)
            if member in table:
                raise RulesetError(f"{section}: duplicate entry '{info.name}'")
            table[member] = info.name
        missing = [member.name for member in enum_cls if member not in table]
        if missing:
            raise RulesetError(f"{section}: missing entries for {', '.join(missing)}")
        return table

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "Ruleset":
        """
        Load a ruleset JSON document.

        Args:
            path: JSON file; defaults to ``settings.ruleset_path`` or the bundled ruleset

        Returns:
            Ruleset with all names resolved

        Raises:
            RulesetError: If the document is malformed or names unknown entities
        """
        if path is None:
            path = settings.ruleset_path or DEFAULT_RULESET_PATH
        path = Path(path)
        logger.info("Loading ruleset", path=str(path))
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        try:
            data = RulesetData.model_validate(raw)
        except ValidationError as e:
            raise RulesetError(f"Malformed ruleset {path}: {e}") from e
        return cls(data)

    # Nations

    def civilization_nations(self) -> List[str]:
        return [nation.name for nation in self.nations if not nation.is_city_state]

    def city_state_nations(self) -> List[str]:
        return [nation.name for nation in self.nations if nation.is_city_state]

    def nation(self, name: str) -> NationRule:
        return self._nations_by_name[name]

    # Display names

    def terrain_type_name(self, terrain_type: TerrainType) -> str:
        return self._terrain_type_names[terrain_type]

    def base_terrain_name(self, base_terrain: BaseTerrain) -> str:
        return self._base_terrain_names[base_terrain]

    def feature_name(self, feature: Feature) -> str:
        return self._feature_names[feature]

    def wonder_name(self, wonder: NaturalWonder) -> str:
        return self._wonder_names[wonder]

    def resource_name(self, resource: Resource) -> str:
        return self._resource_names[resource]

    def matches_filter(self, name: str, terrain_type: int, base_terrain: int, feature: int) -> bool:
        """Whether a tile matches a ruleset filter word (``Land``, ``Elevated`` or an entity name)."""
        if name == "Elevated":
            return terrain_type in (TerrainType.MOUNTAIN, TerrainType.HILL)
        if name == "Land":
            return terrain_type != TerrainType.WATER
        if self._terrain_type_names[terrain_type] == name or self._base_terrain_names[base_terrain] == name:
            return True
        return feature >= 0 and self._feature_names[feature] == name
