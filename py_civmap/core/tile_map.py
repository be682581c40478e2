"""
Tile store for generated maps.

This module implements:
- Canonical integer IDs for terrain types, base terrains, features,
  natural wonders and resources
- TileMap: flat NumPy arrays of per-tile attributes indexed by tile index
- Placement layers with "impact and ripple" spacing fields
- Tile predicates shared by the generation passes (rivers, freshwater,
  coastal land, starting-tile eligibility)
- Small placement helpers used when balancing starts
"""

import math
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .alea_prng import AleaPRNG
from .hex_grid import Direction, HexGrid

logger = structlog.get_logger()

UNINITIALIZED = -1
NONE_ID = -1

# Impact written at a placement tile. Ripples never exceed it.
IMPACT_MAX = 100
CIVILIZATION_IMPACT = 99
CIVILIZATION_RIPPLES = (97, 95, 92, 89, 69, 57, 24, 15)

# Maximum distance a settler moves before founding
SETTLER_MOVEMENT = 2


class NamedIntEnum(IntEnum):
    """IntEnum whose members can be looked up by a ruleset display name."""

    @classmethod
    def from_name(cls, name: str):
        key = re.sub(r"[^a-z0-9]", "", name.lower())
        for member in cls:
            if member.name.replace("_", "").lower() == key:
                return member
        raise KeyError(f"Unknown {cls.__name__}: {name}")


class TerrainType(NamedIntEnum):
    WATER = 0
    FLATLAND = 1
    HILL = 2
    MOUNTAIN = 3


class BaseTerrain(NamedIntEnum):
    OCEAN = 0
    LAKE = 1
    COAST = 2
    GRASSLAND = 3
    DESERT = 4
    PLAIN = 5
    TUNDRA = 6
    SNOW = 7


class Feature(NamedIntEnum):
    ICE = 0
    FLOODPLAIN = 1
    OASIS = 2
    MARSH = 3
    JUNGLE = 4
    FOREST = 5
    ATOLL = 6


class NaturalWonder(NamedIntEnum):
    GREAT_BARRIER_REEF = 0
    ROCK_OF_GIBRALTAR = 1
    MOUNT_FUJI = 2
    OLD_FAITHFUL = 3
    GRAND_MESA = 4
    CERRO_DE_POTOSI = 5
    EL_DORADO = 6
    FOUNTAIN_OF_YOUTH = 7
    BARRINGER_CRATER = 8
    MOUNT_KAILASH = 9
    MOUNT_SINAI = 10
    SRI_PADA = 11
    ULURU = 12
    KING_SOLOMONS_MINES = 13


class Resource(NamedIntEnum):
    # Bonus
    WHEAT = 0
    CATTLE = 1
    SHEEP = 2
    DEER = 3
    BANANAS = 4
    FISH = 5
    STONE = 6
    BISON = 7
    # Strategic
    HORSES = 8
    IRON = 9
    COAL = 10
    OIL = 11
    ALUMINUM = 12
    URANIUM = 13
    # Luxury
    WHALES = 14
    PEARLS = 15
    GOLD_ORE = 16
    SILVER = 17
    GEMS = 18
    MARBLE = 19
    IVORY = 20
    FURS = 21
    DYES = 22
    SPICES = 23
    SILK = 24
    SUGAR = 25
    COTTON = 26
    WINE = 27
    INCENSE = 28
    COPPER = 29
    SALT = 30
    CITRUS = 31
    TRUFFLES = 32
    CRAB = 33
    COCOA = 34


class ResourceClass(NamedIntEnum):
    BONUS = 0
    STRATEGIC = 1
    LUXURY = 2


class Layer(IntEnum):
    """Placement layers, each with its own impact field."""

    STRATEGIC = 0
    LUXURY = 1
    BONUS = 2
    FISH = 3
    CITY_STATE = 4
    NATURAL_WONDER = 5
    MARBLE = 6
    CIVILIZATION = 7


class LandmassType(IntEnum):
    LAND = 0
    WATER = 1


class RegionType(NamedIntEnum):
    """Dominant terrain profile of a region, ordered as luxury assignment sorts them."""

    UNDEFINED = 0
    TUNDRA = 1
    JUNGLE = 2
    FOREST = 3
    DESERT = 4
    HILL = 5
    PLAIN = 6
    GRASSLAND = 7
    HYBRID = 8


RESOURCE_CLASS_LAYER = {
    ResourceClass.BONUS: Layer.BONUS,
    ResourceClass.STRATEGIC: Layer.STRATEGIC,
    ResourceClass.LUXURY: Layer.LUXURY,
}


@dataclass
class Area:
    """Connected tiles sharing passability and water state."""
    id: int
    size: int
    is_water: bool
    is_mountain: bool


@dataclass
class Landmass:
    """Connected tiles sharing water state."""
    id: int
    size: int
    landmass_type: LandmassType


@dataclass(frozen=True)
class RiverEdge:
    """One river segment on an edge owned by ``tile``."""
    tile: int
    flow_direction: Direction


@dataclass
class LuxuryResourceRole:
    """How each luxury type is used by the current map."""
    luxury_assigned_to_regions: List[Resource] = field(default_factory=list)
    luxury_assigned_to_city_state: List[Resource] = field(default_factory=list)
    luxury_assigned_to_special_case: List[Resource] = field(default_factory=list)
    luxury_assigned_to_random: List[Resource] = field(default_factory=list)
    luxury_not_being_used: List[Resource] = field(default_factory=list)


class TileMap:
    """
    Flat per-tile storage plus the shared state every pass reads and writes.

    All arrays have length ``width * height`` and are indexed by tile index.
    Optional attributes (feature, natural wonder, resource) use -1 for "none".
    """

    def __init__(self, parameters, ruleset, rng: AleaPRNG, grid: Optional[HexGrid] = None):
        """
        Initialize an empty tile map.

        Args:
            parameters: MapParameters of this run
            ruleset: Loaded Ruleset with pre-resolved IDs
            rng: Seeded random stream shared by all passes
            grid: Optional grid; built from the parameters when omitted
        """
        self.parameters = parameters
        self.ruleset = ruleset
        self.rng = rng
        self.grid = grid or HexGrid.from_parameters(parameters)
        self.width = self.grid.width
        self.height = self.grid.height
        self.size = self.grid.size

        n = self.size
        self.terrain_type = np.full(n, TerrainType.WATER, dtype=np.int8)
        self.base_terrain = np.full(n, BaseTerrain.OCEAN, dtype=np.int8)
        self.feature = np.full(n, NONE_ID, dtype=np.int16)
        self.natural_wonder = np.full(n, NONE_ID, dtype=np.int16)
        self.resource = np.full(n, NONE_ID, dtype=np.int16)
        self.resource_quantity = np.zeros(n, dtype=np.int16)
        self.area_id = np.full(n, UNINITIALIZED, dtype=np.int32)
        self.landmass_id = np.full(n, UNINITIALIZED, dtype=np.int32)
        self.layer_impact = np.zeros((len(Layer), n), dtype=np.uint8)
        self.player_collision = np.zeros(n, dtype=bool)
        # river_flow[i, e] is the flow Direction on owned edge e (< 3), or -1
        self.river_flow = np.full((n, 3), NONE_ID, dtype=np.int8)
        # Tiles converted to lakes by add_lakes
        self.added_lake = np.zeros(n, dtype=bool)

        self.river_list: List[List[RiverEdge]] = []
        self.area_list: List[Area] = []
        self.landmass_list: List[Landmass] = []
        self.region_list = []
        self.starting_tile_and_civilization: Dict[int, str] = {}
        self.starting_tile_and_city_state: Dict[int, str] = {}
        self.city_state_starting_tile_and_region_index: List[Tuple[int, Optional[int]]] = []
        self.luxury_resource_role = LuxuryResourceRole()
        self.luxury_assign_to_region_count: Dict[Resource, int] = {}

    def all_tiles(self) -> Iterator[int]:
        return iter(range(self.size))

    # Attribute access

    def get_feature(self, tile: int) -> Optional[Feature]:
        value = int(self.feature[tile])
        return Feature(value) if value >= 0 else None

    def set_feature(self, tile: int, feature: Optional[Feature]) -> None:
        self.feature[tile] = NONE_ID if feature is None else int(feature)

    def get_natural_wonder(self, tile: int) -> Optional[NaturalWonder]:
        value = int(self.natural_wonder[tile])
        return NaturalWonder(value) if value >= 0 else None

    def get_resource(self, tile: int) -> Optional[Resource]:
        value = int(self.resource[tile])
        return Resource(value) if value >= 0 else None

    def has_resource(self, tile: int) -> bool:
        return self.resource[tile] >= 0

    def set_resource(self, tile: int, resource: Resource, quantity: int) -> None:
        """Store a resource; a tile holds at most one."""
        assert quantity > 0, "Resource quantity must be positive"
        assert self.resource[tile] < 0, f"Tile {tile} already holds a resource"
        self.resource[tile] = int(resource)
        self.resource_quantity[tile] = quantity

    def clear_resource(self, tile: int) -> None:
        self.resource[tile] = NONE_ID
        self.resource_quantity[tile] = 0

    def resource_class(self, resource: Resource) -> ResourceClass:
        return self.ruleset.resource_class[resource]

    def place_resource(self, tile: int, resource: Resource, quantity: int) -> None:
        """Store a resource and mark its placement tile in its class layer."""
        self.set_resource(tile, resource, quantity)
        layer = RESOURCE_CLASS_LAYER[self.resource_class(resource)]
        self.layer_impact[layer, tile] = IMPACT_MAX

    # Tile predicates

    def is_water(self, tile: int) -> bool:
        return self.terrain_type[tile] == TerrainType.WATER

    def water_mask(self) -> np.ndarray:
        return self.terrain_type == TerrainType.WATER

    def impassable_mask(self) -> np.ndarray:
        """Mountains plus tiles whose feature or natural wonder is impassable."""
        mask = self.terrain_type == TerrainType.MOUNTAIN
        has_feature = self.feature >= 0
        if has_feature.any():
            mask |= has_feature & self.ruleset.feature_impassable[np.where(has_feature, self.feature, 0)]
        has_wonder = self.natural_wonder >= 0
        if has_wonder.any():
            mask |= has_wonder & self.ruleset.wonder_impassable[np.where(has_wonder, self.natural_wonder, 0)]
        return mask

    def is_impassable(self, tile: int) -> bool:
        if self.terrain_type[tile] == TerrainType.MOUNTAIN:
            return True
        feature = self.feature[tile]
        if feature >= 0 and self.ruleset.feature_impassable[feature]:
            return True
        wonder = self.natural_wonder[tile]
        return bool(wonder >= 0 and self.ruleset.wonder_impassable[wonder])

    def has_river_in_direction(self, tile: int, direction: Direction) -> bool:
        """Whether the edge of ``tile`` facing ``direction`` carries a river."""
        edge = self.grid.edge_index(direction)
        if edge < 3:
            return bool(self.river_flow[tile, edge] >= 0)
        neighbor = self.grid.neighbor(tile, direction)
        if neighbor is None:
            return False
        return bool(self.river_flow[neighbor, edge - 3] >= 0)

    def has_river(self, tile: int) -> bool:
        if (self.river_flow[tile] >= 0).any():
            return True
        table = self.grid.neighbor_table
        for edge in range(3, 6):
            neighbor = table[tile, edge]
            if neighbor >= 0 and self.river_flow[neighbor, edge - 3] >= 0:
                return True
        return False

    def river_mask(self) -> np.ndarray:
        """Tiles bordering at least one river edge."""
        own = (self.river_flow >= 0).any(axis=1)
        mask = own.copy()
        table = self.grid.neighbor_table
        for edge in range(3, 6):
            neighbors = table[:, edge]
            valid = neighbors >= 0
            mask[valid] |= self.river_flow[neighbors[valid], edge - 3] >= 0
        return mask

    def add_river_edge(self, river: List[RiverEdge], tile: int, flow: Direction) -> None:
        edge = self.grid.edge_index(self.grid.edge_direction_for_flow(flow))
        assert edge < 3, "River edges are stored on the owning tile"
        self.river_flow[tile, edge] = int(flow)
        river.append(RiverEdge(tile, flow))

    def is_freshwater(self, tile: int) -> bool:
        """Dry tile next to a lake or oasis, or on a river."""
        if self.terrain_type[tile] == TerrainType.WATER:
            return False
        for neighbor in self.grid.neighbors(tile):
            if self.base_terrain[neighbor] == BaseTerrain.LAKE or self.feature[neighbor] == Feature.OASIS:
                return True
        return self.has_river(tile)

    def is_coastal_land(self, tile: int) -> bool:
        if self.terrain_type[tile] == TerrainType.WATER:
            return False
        return any(self.base_terrain[n] == BaseTerrain.COAST for n in self.grid.neighbors(tile))

    def neighbor_any(self, mask: np.ndarray) -> np.ndarray:
        """For every tile, whether any existing neighbour is set in ``mask``."""
        table = self.grid.neighbor_table
        valid = table >= 0
        return (valid & mask[np.where(valid, table, 0)]).any(axis=1)

    def coastal_land_mask(self) -> np.ndarray:
        return ~self.water_mask() & self.neighbor_any(self.base_terrain == BaseTerrain.COAST)

    def freshwater_mask(self) -> np.ndarray:
        fresh_neighbor = self.neighbor_any(
            (self.base_terrain == BaseTerrain.LAKE) | (self.feature == Feature.OASIS)
        )
        return ~self.water_mask() & (fresh_neighbor | self.river_mask())

    def can_be_civilization_starting_tile(self, tile: int) -> bool:
        """
        Flatland or hill that is either coastal or well away from any coast.

        Tiles one or two steps inland are rejected so a start never has to
        choose between settling in place and moving to the sea.
        """
        if self.terrain_type[tile] not in (TerrainType.FLATLAND, TerrainType.HILL):
            return False
        if self.is_coastal_land(tile):
            return True
        if self.parameters.civilization_starting_tile_must_be_coastal_land:
            return False
        return all(
            self.base_terrain[t] != BaseTerrain.COAST
            for t in self.grid.tiles_in_distance(tile, SETTLER_MOVEMENT)
        )

    def can_be_city_state_starting_tile(self, tile: int, region=None) -> bool:
        if self.terrain_type[tile] not in (TerrainType.FLATLAND, TerrainType.HILL):
            return False
        if region is not None and region.area_id is not None and self.area_id[tile] != region.area_id:
            return False
        return (
            self.base_terrain[tile] != BaseTerrain.SNOW
            and self.layer_impact[Layer.CITY_STATE, tile] == 0
            and not self.player_collision[tile]
        )

    # Impact and ripples

    def place_impact_and_ripples(self, tile: int, layer: Layer, radius: int = 0) -> None:
        """
        Stamp spacing values around an element placed at ``tile``.

        Args:
            tile: Placement tile
            layer: Layer of the placed element
            radius: Ripple radius; only used by the resource layers
        """
        if layer in (Layer.STRATEGIC, Layer.LUXURY, Layer.BONUS, Layer.FISH):
            self._place_resource_impact(tile, layer, radius)
        elif layer == Layer.CITY_STATE:
            self._place_resource_impact(tile, Layer.CITY_STATE, 4)
            self._place_resource_impact(tile, Layer.LUXURY, 3)
            self._place_resource_impact(tile, Layer.STRATEGIC, 0)
            self._place_resource_impact(tile, Layer.BONUS, 3)
            self._place_resource_impact(tile, Layer.FISH, 3)
            self._place_resource_impact(tile, Layer.MARBLE, 3)
        elif layer == Layer.NATURAL_WONDER:
            self._place_resource_impact(tile, Layer.NATURAL_WONDER, self.height // 5)
            wonder = self.get_natural_wonder(tile)
            if wonder is None:
                return
            radius = 0 if wonder == NaturalWonder.MOUNT_FUJI else 1
            for resource_layer in (Layer.STRATEGIC, Layer.LUXURY, Layer.BONUS, Layer.CITY_STATE):
                self._place_resource_impact(tile, resource_layer, radius)
            self._place_resource_impact(tile, Layer.MARBLE, 1)
            if wonder == NaturalWonder.GREAT_BARRIER_REEF:
                self._place_resource_impact(tile, Layer.FISH, 1)
        elif layer == Layer.MARBLE:
            self._place_resource_impact(tile, Layer.LUXURY, 1)
            self._place_resource_impact(tile, Layer.MARBLE, 6)
        else:
            self._place_civilization_impact(tile)

    def _place_resource_impact(self, tile: int, layer: Layer, radius: int) -> None:
        assert layer != Layer.CIVILIZATION
        impact = self.layer_impact[layer]
        center = 1 if layer in (Layer.FISH, Layer.MARBLE) else IMPACT_MAX
        impact[tile] = center

        if radius <= 0 or radius >= self.height / 2:
            return

        for distance in range(1, radius + 1):
            ring = np.asarray(self.grid.tiles_at_distance(tile, distance), dtype=np.int64)
            if ring.size == 0:
                continue
            ripple = radius - distance + 1
            current = impact[ring].astype(np.int32)
            if layer in (Layer.CITY_STATE, Layer.MARBLE):
                updated = np.ones_like(current)
            else:
                cap, step = (10, 1) if layer == Layer.FISH else (50, 2)
                overlap = np.minimum(cap, np.maximum(current, ripple) + step)
                updated = np.where(current != 0, overlap, ripple)
            impact[ring] = updated.astype(np.uint8)

    def _place_civilization_impact(self, tile: int) -> None:
        self._place_resource_impact(tile, Layer.LUXURY, 3)
        self._place_resource_impact(tile, Layer.STRATEGIC, 0)
        self._place_resource_impact(tile, Layer.BONUS, 3)
        self._place_resource_impact(tile, Layer.FISH, 3)
        self._place_resource_impact(tile, Layer.NATURAL_WONDER, 4)

        civ = self.layer_impact[Layer.CIVILIZATION]
        city_state = self.layer_impact[Layer.CITY_STATE]
        civ[tile] = CIVILIZATION_IMPACT
        self.player_collision[tile] = True
        city_state[tile] = 1

        for index, ripple in enumerate(CIVILIZATION_RIPPLES):
            distance = index + 1
            ring = np.asarray(self.grid.tiles_at_distance(tile, distance), dtype=np.int64)
            if ring.size == 0:
                continue
            current = civ[ring].astype(np.int32)
            overlap = np.minimum(97, (np.maximum(current, ripple) * 1.2).astype(np.int32))
            updated = np.where(current != 0, overlap, ripple)
            civ[ring] = updated.astype(np.uint8)
            if distance <= 6:
                city_state[ring] = 1

    # Placement helpers

    def attempt_to_place_hill_at_tile(self, tile: int) -> bool:
        if (
            not self.has_resource(tile)
            and self.terrain_type[tile] != TerrainType.WATER
            and self.feature[tile] != Feature.FOREST
            and not self.has_river(tile)
        ):
            self.terrain_type[tile] = TerrainType.HILL
            self.feature[tile] = NONE_ID
            self.natural_wonder[tile] = NONE_ID
            return True
        return False

    def attempt_to_place_bonus_resource_at_tile(self, tile: int, allow_oasis: bool) -> Tuple[bool, bool]:
        """
        Put a food bonus on ``tile`` if its terrain supports one.

        Returns:
            (placed, placed_oasis)
        """
        if self.has_resource(tile):
            return False, False
        terrain_type = self.terrain_type[tile]
        base = self.base_terrain[tile]
        feature = self.get_feature(tile)
        if base == BaseTerrain.SNOW or feature == Feature.OASIS:
            return False, False

        if terrain_type == TerrainType.WATER:
            if base == BaseTerrain.COAST and feature is None:
                self.place_resource(tile, Resource.FISH, 1)
                return True, False
        elif terrain_type in (TerrainType.FLATLAND, TerrainType.HILL):
            if feature == Feature.FOREST:
                self.place_resource(tile, Resource.DEER, 1)
                return True, False
            if feature == Feature.JUNGLE:
                self.place_resource(tile, Resource.BANANAS, 1)
                return True, False
            if feature is not None:
                return False, False
            if terrain_type == TerrainType.HILL:
                self.place_resource(tile, Resource.SHEEP, 1)
                return True, False
            if base == BaseTerrain.GRASSLAND:
                self.place_resource(tile, Resource.CATTLE, 1)
                return True, False
            if base == BaseTerrain.PLAIN:
                self.place_resource(tile, Resource.WHEAT, 1)
                return True, False
            if base == BaseTerrain.TUNDRA:
                self.place_resource(tile, Resource.DEER, 1)
                return True, False
            if base == BaseTerrain.DESERT:
                if self.is_freshwater(tile):
                    self.place_resource(tile, Resource.WHEAT, 1)
                    return True, False
                if allow_oasis:
                    self.feature[tile] = Feature.OASIS
                    return True, True
        return False, False

    def attempt_to_place_small_strategic_at_tile(self, tile: int) -> bool:
        """Place a small Horses or Iron deposit on featureless flatland."""
        if (
            self.has_resource(tile)
            or self.terrain_type[tile] != TerrainType.FLATLAND
            or self.feature[tile] >= 0
        ):
            return False
        if self.base_terrain[tile] in (BaseTerrain.GRASSLAND, BaseTerrain.PLAIN):
            resource = Resource.IRON if self.rng.gen_range(0, 4) == 2 else Resource.HORSES
        else:
            resource = Resource.IRON
        self.place_resource(tile, resource, 2)
        return True

    def attempt_to_place_stone_at_grass_tile(self, tile: int) -> bool:
        if (
            not self.has_resource(tile)
            and self.terrain_type[tile] == TerrainType.FLATLAND
            and self.base_terrain[tile] == BaseTerrain.GRASSLAND
            and self.feature[tile] < 0
        ):
            self.place_resource(tile, Resource.STONE, 1)
            return True
        return False

    def place_specific_number_of_resources(
        self,
        resource: Resource,
        quantity: int,
        amount: int,
        ratio: float,
        layer: Optional[Layer],
        min_radius: int,
        max_radius: int,
        tile_list: Sequence[int],
    ) -> int:
        """
        Place up to ``amount`` copies of one resource from a shuffled candidate list.

        Args:
            resource: Resource to place
            quantity: Units per tile
            amount: Number of tiles that should receive the resource
            ratio: Share of ``tile_list`` that may be used, in (0, 1]
            layer: Impact layer consulted and stamped; None ignores spacing
            min_radius: Smallest ripple radius
            max_radius: Largest ripple radius
            tile_list: Shuffled candidate tiles

        Returns:
            Number of copies that could not be placed
        """
        assert max_radius >= min_radius, "max_radius must not be below min_radius"
        if not tile_list:
            return amount

        has_impact = layer in (Layer.STRATEGIC, Layer.LUXURY, Layer.BONUS, Layer.FISH)
        left_to_place = amount
        num_resources = min(amount, math.ceil(ratio * len(tile_list)))

        for _ in range(num_resources):
            for tile in tile_list:
                if has_impact and self.layer_impact[layer, tile] != 0:
                    continue
                if self.has_resource(tile):
                    continue
                self.place_resource(tile, resource, quantity)
                left_to_place -= 1
                if has_impact:
                    radius = self.rng.gen_range_inclusive(min_radius, max_radius)
                    self.place_impact_and_ripples(tile, layer, radius)
                break

        return left_to_place

    def process_resource_list(
        self,
        frequency: float,
        layer: Layer,
        tile_list: Sequence[int],
        resource_list_to_place: Sequence["ResourceToPlace"],
    ) -> None:
        """
        Place bonus or strategic resources at one per ``frequency`` candidate tiles.

        The caller shuffles ``tile_list``. Tiles with zero impact are taken in
        list order; once none is left, the lowest impact below 98 is used.
        """
        assert layer in (Layer.BONUS, Layer.STRATEGIC, Layer.FISH), (
            "process_resource_list only places bonus or strategic resources"
        )
        if not tile_list:
            return

        weights = [item.weight for item in resource_list_to_place]
        num_to_place = math.ceil(len(tile_list) / frequency)
        impact = self.layer_impact[layer]
        position = 0

        for _ in range(num_to_place):
            item = resource_list_to_place[self.rng.weighted_index(weights)]
            radius = self.rng.gen_range_inclusive(item.min_radius, item.max_radius)

            chosen = None
            while position < len(tile_list):
                tile = tile_list[position]
                position += 1
                if impact[tile] == 0 and not self.has_resource(tile):
                    chosen = tile
                    break

            if chosen is None:
                best_value = None
                for tile in tile_list:
                    value = int(impact[tile])
                    if value < 98 and not self.has_resource(tile) and (best_value is None or value < best_value):
                        best_value = value
                        chosen = tile
            if chosen is None:
                continue

            self.place_resource(chosen, item.resource, item.quantity)
            self.place_impact_and_ripples(chosen, layer, radius)

    def clear_ice_near_city_site(self, city_site: int, radius: int) -> None:
        for distance in range(1, radius + 1):
            for tile in self.grid.tiles_at_distance(city_site, distance):
                if self.feature[tile] == Feature.ICE:
                    self.feature[tile] = NONE_ID

    # Result surface

    def to_records(self) -> Dict[str, list]:
        """
        Flatten the map into row-major per-tile records plus area and landmass lists.

        Returns:
            Dict with "tiles", "area_list" and "landmass_list"
        """
        ruleset = self.ruleset
        tiles = []
        for tile in self.all_tiles():
            x, y = self.grid.index_to_offset(tile)
            feature = self.get_feature(tile)
            wonder = self.get_natural_wonder(tile)
            resource = self.get_resource(tile)
            tiles.append({
                "index": tile,
                "x": x,
                "y": y,
                "terrain_type": ruleset.terrain_type_name(TerrainType(int(self.terrain_type[tile]))),
                "base_terrain": ruleset.base_terrain_name(BaseTerrain(int(self.base_terrain[tile]))),
                "feature": ruleset.feature_name(feature) if feature is not None else None,
                "natural_wonder": ruleset.wonder_name(wonder) if wonder is not None else None,
                "resource": (
                    [ruleset.resource_name(resource), int(self.resource_quantity[tile])]
                    if resource is not None else None
                ),
                "river_edges": [
                    self.grid.edge_directions[edge].name
                    for edge in range(3)
                    if self.river_flow[tile, edge] >= 0
                ],
                "area_id": int(self.area_id[tile]),
                "landmass_id": int(self.landmass_id[tile]),
            })
        return {
            "tiles": tiles,
            "area_list": [
                {"id": a.id, "size": a.size, "is_water": a.is_water, "is_mountain": a.is_mountain}
                for a in self.area_list
            ],
            "landmass_list": [
                {"id": m.id, "size": m.size, "landmass_type": m.landmass_type.name}
                for m in self.landmass_list
            ],
        }


@dataclass
class ResourceToPlace:
    """Weighted entry for process_resource_list."""
    resource: Resource
    quantity: int  # Units per tile
    weight: int  # Relative draw weight
    min_radius: int
    max_radius: int
