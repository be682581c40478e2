"""
Civilization start balancing and city states.

This module implements:
- Ring surveys of a city site (food, production and bonus potential)
- Start normalisation: hills, small strategics, food bonuses and stone
  added around weak civilization starts
- Assignment of civilizations to starts honouring each nation's start bias
- City-state allocation to regions and uninhabited landmasses, and their
  placement
- City-state normalisation after resources are placed
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import structlog

from ..config.map_parameters import RegionDivideMethod, ResourceSetting
from .regions import Region, StartLocationCondition
from .resources import major_strategic_quantities
from .tile_map import BaseTerrain, Feature, Layer, RegionType, Resource, TerrainType, TileMap

logger = structlog.get_logger()

# City states per region by city-state/civilization ratio, highest threshold first
CITY_STATES_PER_REGION = ((14.0, 10), (11.0, 8), (8.0, 6), (5.7, 4), (4.35, 3), (2.7, 2), (1.35, 1))

# Centre share of a region that keeps city states away from the civilization
CITY_STATE_CENTER_BIAS = 2.0 / 3.0


@dataclass
class RingSurvey:
    """Early-game potential of one ring of tiles around a city site."""
    four_food: int = 0
    three_food: int = 0
    two_food: int = 0
    native_two_food: int = 0  # Food tiles that need no bonus resource
    hill: int = 0
    forest: int = 0
    one_hammer: int = 0
    ocean: int = 0
    can_have_bonus: int = 0
    bad: int = 0
    grassland: int = 0
    plain: int = 0
    forest_count: int = 0
    jungle_count: int = 0
    river: bool = False
    mountain: bool = False
    lake: bool = False

    @property
    def food_score(self) -> int:
        return 4 * self.four_food + 2 * self.three_food + self.two_food


def _survey_flatland(survey: RingSurvey, base: int, feature: Optional[Feature], fresh: bool) -> None:
    if base == BaseTerrain.GRASSLAND:
        if fresh:
            survey.four_food += 1
        else:
            survey.three_food += 1
        survey.grassland += 1
        if feature != Feature.MARSH:
            survey.can_have_bonus += 1
        if feature == Feature.FOREST:
            survey.forest += 1
        if feature is None:
            survey.native_two_food += 1
    elif base == BaseTerrain.DESERT:
        survey.can_have_bonus += 1
        if fresh and feature == Feature.FLOODPLAIN:
            survey.four_food += 1
            survey.native_two_food += 1
        else:
            survey.bad += 1
    elif base == BaseTerrain.PLAIN:
        if fresh:
            survey.three_food += 1
        else:
            survey.two_food += 1
        survey.can_have_bonus += 1
        survey.plain += 1
        if feature == Feature.FOREST:
            survey.forest += 1
        else:
            survey.one_hammer += 1
    elif base == BaseTerrain.TUNDRA:
        survey.can_have_bonus += 1
        if fresh:
            survey.three_food += 1
        if feature == Feature.FOREST:
            survey.forest += 1
        elif not fresh:
            survey.bad += 1
    elif base == BaseTerrain.SNOW:
        survey.bad += 1


def survey_ring(tile_map: TileMap, tiles: Sequence[int]) -> RingSurvey:
    """
    Count what ``tiles`` offer a city before any improvement.

    4 food: flood plains, grassland on fresh water. 3 food: dry grassland,
    plains or tundra on fresh water, oasis. 2 food: dry plains, lakes, jungle.
    """
    survey = RingSurvey()
    for tile in tiles:
        terrain_type = tile_map.terrain_type[tile]
        base = tile_map.base_terrain[tile]
        feature = tile_map.get_feature(tile)

        if terrain_type == TerrainType.MOUNTAIN:
            survey.mountain = True
            survey.bad += 1
            continue
        if terrain_type == TerrainType.WATER:
            if feature == Feature.ICE:
                survey.bad += 1
            elif base == BaseTerrain.LAKE:
                survey.lake = True
                survey.two_food += 1
                survey.native_two_food += 1
            else:
                survey.ocean += 1
                survey.can_have_bonus += 1
            continue

        if feature == Feature.JUNGLE:
            survey.jungle_count += 1
            survey.native_two_food += 1
        elif feature == Feature.FOREST:
            survey.forest_count += 1
        if tile_map.has_river(tile):
            survey.river = True

        if terrain_type == TerrainType.HILL:
            survey.hill += 1
            if feature == Feature.JUNGLE:
                survey.two_food += 1
                survey.can_have_bonus += 1
            elif feature == Feature.FOREST:
                survey.can_have_bonus += 1
            elif base == BaseTerrain.GRASSLAND:
                survey.grassland += 1
            elif base == BaseTerrain.PLAIN:
                survey.plain += 1
        elif feature == Feature.OASIS:
            survey.three_food += 1
            survey.native_two_food += 1
        else:
            _survey_flatland(survey, base, feature, tile_map.is_freshwater(tile))
    return survey


def food_bonus_needed(inner: RingSurvey, outer: RingSurvey) -> int:
    """Number of food bonuses a civilization start should receive."""
    inner_food = inner.food_score
    total_food = inner_food + outer.food_score
    native = inner.native_two_food + outer.native_two_food

    if total_food < 4 and inner_food == 0:
        return 5
    if total_food < 6:
        return 4
    if total_food < 8:
        return 3
    if total_food < 12 and inner_food < 5:
        return 3
    if total_food < 17 and inner_food < 9:
        return 2
    if native <= 1:
        return 2
    if total_food < 24 and inner_food < 11:
        return 1
    if native == 2 or inner.native_two_food == 0:
        return 1
    if total_food < 20:
        return 1
    return 0


def place_food_bonuses(
    tile_map: TileMap,
    rings: Sequence[Sequence[int]],
    needed: int,
    inner_can_have_bonus: int,
    outer_can_have_bonus: int,
    inner_limit: int,
    total_limit: int,
) -> int:
    """
    Add food bonuses ring by ring, inner ring first.

    Args:
        tile_map: Tile store
        rings: Shuffled tiles of the first, second and optionally third ring
        needed: Bonuses wanted
        inner_can_have_bonus: First-ring tiles able to take a bonus
        outer_can_have_bonus: Second-ring tiles able to take a bonus
        inner_limit: Most bonuses allowed in the first ring
        total_limit: Most bonuses allowed in the first two rings

    Returns:
        Bonuses that could not be placed
    """
    positions = [0] * len(rings)
    allow_oasis = True  # At most one oasis per site
    inner_placed = outer_placed = 0

    def place_next(ring_index: int) -> bool:
        nonlocal allow_oasis
        ring = rings[ring_index]
        while positions[ring_index] < len(ring):
            tile = ring[positions[ring_index]]
            positions[ring_index] += 1
            placed, placed_oasis = tile_map.attempt_to_place_bonus_resource_at_tile(tile, allow_oasis)
            if placed:
                if placed_oasis:
                    allow_oasis = False
                return True
        return False

    def has_more(ring_index: int) -> bool:
        return ring_index < len(rings) and positions[ring_index] < len(rings[ring_index])

    while needed > 0:
        if inner_placed < inner_limit and inner_can_have_bonus > 0 and has_more(0):
            if place_next(0):
                inner_placed += 1
                inner_can_have_bonus -= 1
                needed -= 1
        elif inner_placed + outer_placed < total_limit and outer_can_have_bonus > 0 and has_more(1):
            if place_next(1):
                outer_placed += 1
                outer_can_have_bonus -= 1
                needed -= 1
        elif has_more(2):
            if place_next(2):
                needed -= 1
        else:
            break
    return needed


class StartBalancer:
    """Normalises every civilization start and matches nations to starts."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.rng = tile_map.rng
        self.ruleset = tile_map.ruleset
        self.resource_setting = tile_map.parameters.resource_setting

    def balance_and_assign(self) -> Dict[int, str]:
        tile_map = self.tile_map
        logger.info("Balancing civilization starts", regions=len(tile_map.region_list))

        civilizations = sorted(self.ruleset.civilization_nations())
        self.rng.shuffle(civilizations)
        civilizations = civilizations[:tile_map.parameters.civilization_num]

        for region in tile_map.region_list:
            region.start_location_condition = self.normalize_start_location(region)

        self.assign_civilizations(civilizations)
        logger.info("Civilizations assigned", civilizations=len(tile_map.starting_tile_and_civilization))
        return tile_map.starting_tile_and_civilization

    # Start normalisation

    def normalize_start_location(self, region: Region) -> StartLocationCondition:
        """
        Improve the surroundings of ``region``'s start and describe them.

        Adds a hill when production is scarce, a small Horses or Iron deposit
        when early production is scarce, food bonuses by the food score of the
        two inner rings, and stone on grass-heavy starts.
        """
        tile_map = self.tile_map
        rng = self.rng
        start = region.starting_tile
        assert start is not None, "Region has no starting tile"

        tile_map.clear_ice_near_city_site(start, 1)

        first_ring = list(self.grid.neighbors(start))
        second_ring = list(self.grid.tiles_at_distance(start, 2))
        inner = survey_ring(tile_map, first_ring)
        outer = survey_ring(tile_map, second_ring)

        condition = StartLocationCondition(
            along_ocean=tile_map.is_coastal_land(start),
            next_to_lake=inner.lake or outer.lake,
            is_river=tile_map.has_river(start),
            near_river=inner.river or outer.river,
            near_mountain=inner.mountain or outer.mountain,
            forest_count=inner.forest_count + outer.forest_count,
            jungle_count=inner.jungle_count + outer.jungle_count,
        )

        inner_hammer = 4 * inner.hill + 2 * inner.forest + inner.one_hammer
        outer_hammer = 2 * outer.hill + outer.forest + outer.one_hammer
        early_hammer = 2 * inner.forest + outer.forest + inner.one_hammer + outer.one_hammer

        if (outer_hammer < 8 and inner_hammer < 2) or inner_hammer == 0:
            rng.shuffle(first_ring)
            for tile in first_ring:
                if tile_map.attempt_to_place_hill_at_tile(tile):
                    inner_hammer += 4
                    break

        if self.resource_setting == ResourceSetting.STRATEGIC_BALANCE:
            self.add_strategic_balance_resources(start)

        if inner_hammer < 3 and early_hammer < 6:
            rng.shuffle(second_ring)
            for tile in second_ring:
                if tile_map.attempt_to_place_small_strategic_at_tile(tile):
                    break

        self._add_food(start, first_ring, second_ring, inner, outer)
        self._add_stone(first_ring, second_ring, inner.grassland + outer.grassland, inner.plain + outer.plain)
        return condition

    def _add_food(
        self,
        start: int,
        first_ring: List[int],
        second_ring: List[int],
        inner: RingSurvey,
        outer: RingSurvey,
    ) -> None:
        tile_map = self.tile_map
        rng = self.rng
        legendary = self.resource_setting == ResourceSetting.LEGENDARY_START

        needed = food_bonus_needed(inner, outer)
        if legendary:
            needed += 2

        if inner.native_two_food + outer.native_two_food == 0 and needed < 3:
            # Turn one bare plain into grassland, or ask for a third bonus
            plains = [
                tile for tile in first_ring + second_ring
                if not tile_map.has_resource(tile)
                and tile_map.terrain_type[tile] == TerrainType.FLATLAND
                and tile_map.base_terrain[tile] == BaseTerrain.PLAIN
                and tile_map.feature[tile] < 0
            ]
            if plains:
                conversion = rng.choice(plains)
                tile_map.base_terrain[conversion] = BaseTerrain.GRASSLAND
                tile_map.place_impact_and_ripples(conversion, Layer.STRATEGIC, 0)
            else:
                needed = 3

        if needed <= 0:
            return

        rng.shuffle(first_ring)
        rng.shuffle(second_ring)
        third_ring = list(self.grid.tiles_at_distance(start, 3))
        rng.shuffle(third_ring)
        place_food_bonuses(
            tile_map,
            (first_ring, second_ring, third_ring),
            needed,
            inner.can_have_bonus,
            outer.can_have_bonus,
            inner_limit=3 if legendary else 2,
            total_limit=5,
        )

    def _add_stone(self, first_ring: List[int], second_ring: List[int], grassland: int, plain: int) -> None:
        """Grass-heavy starts without plains get stone for early production."""
        if grassland >= 9 and plain == 0:
            needed = 2
        elif grassland >= 6 and plain <= 4:
            needed = 1
        else:
            return

        tile_map = self.tile_map
        self.rng.shuffle(first_ring)
        self.rng.shuffle(second_ring)
        # At most one stone in the first ring
        for tile in first_ring:
            if tile_map.attempt_to_place_stone_at_grass_tile(tile):
                needed -= 1
                break
        for tile in second_ring:
            if needed == 0:
                break
            if tile_map.attempt_to_place_stone_at_grass_tile(tile):
                needed -= 1

    def add_strategic_balance_resources(self, start: int) -> None:
        """Guarantee Iron, Horses and Oil within three rings of ``start``."""
        tile_map = self.tile_map
        candidates: Dict[Resource, List[int]] = {Resource.IRON: [], Resource.HORSES: [], Resource.OIL: []}
        fallbacks: Dict[Resource, List[int]] = {Resource.IRON: [], Resource.HORSES: [], Resource.OIL: []}

        for distance in range(1, 4):
            for tile in self.grid.tiles_at_distance(start, distance):
                preferred = candidates if distance < 3 else fallbacks
                terrain_type = tile_map.terrain_type[tile]
                base = tile_map.base_terrain[tile]
                feature = tile_map.get_feature(tile)
                if terrain_type == TerrainType.HILL:
                    preferred[Resource.IRON].append(tile)
                    if base != BaseTerrain.SNOW and feature is None:
                        fallbacks[Resource.HORSES].append(tile)
                elif terrain_type != TerrainType.FLATLAND:
                    continue
                elif feature is None:
                    if base in (BaseTerrain.PLAIN, BaseTerrain.GRASSLAND):
                        preferred[Resource.HORSES].append(tile)
                        fallbacks[Resource.IRON].append(tile)
                        fallbacks[Resource.OIL].append(tile)
                    elif base in (BaseTerrain.TUNDRA, BaseTerrain.DESERT):
                        preferred[Resource.OIL].append(tile)
                        fallbacks[Resource.IRON].append(tile)
                        fallbacks[Resource.HORSES].append(tile)
                    elif base == BaseTerrain.SNOW:
                        preferred[Resource.OIL].append(tile)
                elif feature == Feature.MARSH:
                    preferred[Resource.OIL].append(tile)
                    fallbacks[Resource.IRON].append(tile)
                elif feature == Feature.FLOODPLAIN:
                    fallbacks[Resource.HORSES].append(tile)
                    fallbacks[Resource.OIL].append(tile)
                elif feature in (Feature.JUNGLE, Feature.FOREST):
                    fallbacks[Resource.IRON].append(tile)
                    fallbacks[Resource.OIL].append(tile)

        quantities = major_strategic_quantities(self.resource_setting)
        placed: Set[Resource] = set()
        for resource in (Resource.IRON, Resource.HORSES, Resource.OIL):
            tiles = candidates[resource]
            if tiles:
                self.rng.shuffle(tiles)
                left = tile_map.place_specific_number_of_resources(
                    resource, quantities[resource], 1, 1.0, None, 0, 0, tiles
                )
                if left == 0:
                    placed.add(resource)
        for resource in (Resource.IRON, Resource.HORSES, Resource.OIL):
            tiles = fallbacks[resource]
            if resource not in placed and tiles:
                self.rng.shuffle(tiles)
                tile_map.place_specific_number_of_resources(
                    resource, quantities[resource], 1, 1.0, None, 0, 0, tiles
                )

    # Start bias

    def _give(self, civilization: str, region_index: int, available: Set[int]) -> None:
        start = self.tile_map.region_list[region_index].starting_tile
        self.tile_map.starting_tile_and_civilization[start] = civilization
        available.discard(region_index)

    def _give_in_order(self, civilizations: List[str], region_indices: List[int], available: Set[int]) -> List[str]:
        """Zip civilizations with regions; return the civilizations left without one."""
        remaining = max(0, len(civilizations) - len(region_indices))
        assigned = len(civilizations) - remaining
        for civilization, region_index in zip(civilizations[:assigned], region_indices):
            self._give(civilization, region_index, available)
        return civilizations[assigned:]

    def assign_civilizations(self, civilizations: List[str]) -> None:
        """
        Match civilizations to starts.

        Nations wanting the coast are served first (lake starts stand in for
        missing coastal ones), then river nations, then region-type priority,
        then region-type avoidance. Everyone left is placed at random.
        """
        tile_map = self.tile_map
        rng = self.rng
        regions = tile_map.region_list
        available: Set[int] = set(range(len(regions)))

        def condition(index: int) -> StartLocationCondition:
            return regions[index].start_location_condition

        coastal: List[str] = []
        river: List[str] = []
        priority: List[str] = []
        avoid: List[str] = []
        for civilization in civilizations:
            nation = self.ruleset.nation(civilization)
            if nation.along_ocean:
                coastal.append(civilization)
            elif nation.along_river:
                river.append(civilization)
            elif nation.region_type_priority:
                priority.append(civilization)
            elif nation.avoid_region_type:
                avoid.append(civilization)

        # Coastal nations only fall back to river starts when some coastal start existed
        coastal_remaining = 0
        if coastal:
            coastal_regions = [i for i in sorted(available) if condition(i).along_ocean]
            lake_regions = []
            if len(coastal_regions) < len(coastal):
                lake_regions = [
                    i for i in sorted(available)
                    if condition(i).next_to_lake and not condition(i).along_ocean
                ]
            if coastal_regions or lake_regions:
                rng.shuffle(coastal)
                rng.shuffle(coastal_regions)
                rng.shuffle(lake_regions)
                coastal = self._give_in_order(coastal, coastal_regions + lake_regions, available)
                coastal_remaining = len(coastal)

        if river or coastal_remaining > 0:
            river_regions, near_river_regions = self._river_regions(available)
            if river_regions or near_river_regions:
                rng.shuffle(river)
                rng.shuffle(river_regions)
                rng.shuffle(near_river_regions)
                river = self._give_in_order(river, river_regions + near_river_regions, available)

            if coastal_remaining > 0 and len(river) < len(river_regions) + len(near_river_regions):
                river_regions, near_river_regions = self._river_regions(available)
                if river_regions or near_river_regions:
                    rng.shuffle(coastal)
                    rng.shuffle(river_regions)
                    rng.shuffle(near_river_regions)
                    coastal = self._give_in_order(coastal, river_regions + near_river_regions, available)

        if priority:
            self._assign_priority(priority, available)

        if avoid:
            avoid.sort(key=lambda civilization: len(self.ruleset.nation(civilization).avoid_region_type))
            for civilization in reversed(avoid):
                avoided = self.ruleset.nation(civilization).avoid_region_type
                candidates = [i for i in sorted(available) if regions[i].region_type not in avoided]
                if candidates:
                    self._give(civilization, rng.choice(candidates), available)

        assigned = set(tile_map.starting_tile_and_civilization.values())
        leftover = [civilization for civilization in civilizations if civilization not in assigned]
        rng.shuffle(leftover)
        for civilization, region_index in zip(leftover, sorted(available)):
            self._give(civilization, region_index, available)

    def _river_regions(self, available: Set[int]) -> Tuple[List[int], List[int]]:
        regions = self.tile_map.region_list
        river = [i for i in sorted(available) if regions[i].start_location_condition.is_river]
        near = [
            i for i in sorted(available)
            if regions[i].start_location_condition.near_river
            and not regions[i].start_location_condition.is_river
        ]
        return river, near

    def _assign_priority(self, civilizations: List[str], available: Set[int]) -> None:
        regions = self.tile_map.region_list
        rng = self.rng
        nation = self.ruleset.nation

        single = [c for c in civilizations if len(nation(c).region_type_priority) == 1]
        multi = [c for c in civilizations if len(nation(c).region_type_priority) > 1]
        unmatched: List[str] = []

        single.sort(key=lambda c: int(nation(c).region_type_priority[0]))
        for civilization in single:
            wanted = nation(civilization).region_type_priority[0]
            candidates = [i for i in sorted(available) if regions[i].region_type == wanted]
            if candidates:
                self._give(civilization, rng.choice(candidates), available)
            else:
                unmatched.append(civilization)

        multi.sort(key=lambda c: len(nation(c).region_type_priority))
        for civilization in multi:
            wanted = nation(civilization).region_type_priority
            candidates = [i for i in sorted(available) if regions[i].region_type in wanted]
            if candidates:
                self._give(civilization, rng.choice(candidates), available)

        for civilization in unmatched:
            region_index = self.find_fallback_for_unmatched_region_priority(
                nation(civilization).region_type_priority[0], available
            )
            if region_index is not None:
                self._give(civilization, region_index, available)

    def find_fallback_for_unmatched_region_priority(
        self, region_type: RegionType, available: Set[int]
    ) -> Optional[int]:
        """Available region with the most terrain of ``region_type``, first one on ties."""
        best = None
        most = 0
        tundra_forest_best = None
        tundra_forest_most = 0

        for index in sorted(available):
            statistic = self.tile_map.region_list[index].terrain_statistic
            terrain = statistic.terrain_type_num
            base = statistic.base_terrain_num
            feature = statistic.feature_num

            if region_type == RegionType.TUNDRA:
                amount = base[BaseTerrain.TUNDRA] + base[BaseTerrain.SNOW]
                if feature[Feature.FOREST] > tundra_forest_most and feature[Feature.JUNGLE] == 0:
                    tundra_forest_best = index
                    tundra_forest_most = feature[Feature.FOREST]
            elif region_type == RegionType.JUNGLE:
                amount = feature[Feature.JUNGLE]
            elif region_type == RegionType.FOREST:
                amount = feature[Feature.FOREST]
            elif region_type == RegionType.DESERT:
                amount = base[BaseTerrain.DESERT] + feature[Feature.FLOODPLAIN] + feature[Feature.OASIS]
            elif region_type == RegionType.HILL:
                amount = terrain[TerrainType.HILL] + terrain[TerrainType.MOUNTAIN]
            elif region_type == RegionType.PLAIN:
                amount = base[BaseTerrain.PLAIN]
            elif region_type == RegionType.GRASSLAND:
                amount = base[BaseTerrain.GRASSLAND] + feature[Feature.MARSH]
            elif region_type == RegionType.HYBRID:
                amount = base[BaseTerrain.GRASSLAND] + base[BaseTerrain.PLAIN]
            else:
                return None
            if amount > most:
                best, most = index, amount

        if best is None and region_type == RegionType.TUNDRA:
            return tundra_forest_best
        return best


def balance_and_assign(tile_map: TileMap) -> Dict[int, str]:
    return StartBalancer(tile_map).balance_and_assign()


class CityStatePlacer:
    """Distributes city states over regions and uninhabited land."""

    def __init__(self, tile_map: TileMap):
        self.tile_map = tile_map
        self.grid = tile_map.grid
        self.rng = tile_map.rng
        self.parameters = tile_map.parameters
        self.uninhabited_coastal: List[int] = []
        self.uninhabited_inland: List[int] = []

    def place_city_states(self) -> None:
        tile_map = self.tile_map
        rng = self.rng
        logger.info("Placing city states", city_states=self.parameters.city_state_num)

        assignments = self.assign_city_states_to_regions_or_uninhabited_landmasses()

        names = sorted(tile_map.ruleset.city_state_nations())
        rng.shuffle(names)
        names = names[:self.parameters.city_state_num]

        uninhabited_candidates = len(self.uninhabited_coastal) + len(self.uninhabited_inland)
        discarded = 0
        for region_index in assignments:
            if region_index is None and uninhabited_candidates > 0:
                uninhabited_candidates -= 1
                tile = self.get_city_state_start_tile(
                    self.uninhabited_coastal, self.uninhabited_inland, True, True
                )
            else:
                if region_index is None:
                    region_index = rng.gen_range(0, len(tile_map.region_list))
                coastal, inland = self.obtain_next_section_in_region(tile_map.region_list[region_index])
                tile = self.get_city_state_start_tile(coastal, inland, False, False)

            if tile is None:
                discarded += 1
                continue
            self.place_city_state(names.pop(), tile, region_index)

        if discarded > 0:
            last_chance = [
                tile for tile in tile_map.all_tiles()
                if tile_map.can_be_city_state_starting_tile(tile)
            ]
            rng.shuffle(last_chance)
            while names and last_chance:
                tile = self.get_city_state_start_tile(last_chance, [], True, True)
                if tile is None:
                    break
                self.place_city_state(names.pop(), tile, None)
                discarded -= 1

        if discarded > 0:
            logger.warning("City states could not be placed", discarded=discarded)
        logger.info("City states placed", city_states=len(tile_map.starting_tile_and_city_state))

    def place_city_state(self, name: str, tile: int, region_index: Optional[int]) -> None:
        tile_map = self.tile_map
        tile_map.starting_tile_and_city_state[tile] = name
        tile_map.city_state_starting_tile_and_region_index.append((tile, region_index))
        tile_map.clear_ice_near_city_site(tile, 1)
        tile_map.place_impact_and_ripples(tile, Layer.CITY_STATE)
        tile_map.player_collision[tile] = True

    def get_city_state_start_tile(
        self,
        coastal: Sequence[int],
        inland: Sequence[int],
        check_proximity: bool,
        check_collision: bool,
    ) -> Optional[int]:
        """
        Pick a site, coastal candidates first.

        With ``check_collision`` the candidates are shuffled and the first
        free one is taken (``check_proximity`` also requires no nearby city
        state); otherwise any candidate is taken at random.
        """
        tile_map = self.tile_map
        for candidates in (coastal, inland):
            if not candidates:
                continue
            if not check_collision:
                return self.rng.choice(candidates)
            shuffled = list(candidates)
            self.rng.shuffle(shuffled)
            for tile in shuffled:
                if tile_map.player_collision[tile]:
                    continue
                if check_proximity and tile_map.layer_impact[Layer.CITY_STATE, tile] != 0:
                    continue
                return tile
        return None

    def obtain_next_section_in_region(self, region: Region) -> Tuple[List[int], List[int]]:
        """
        Eligible coastal and inland sites of ``region`` away from its centre.

        Regions narrower than four tiles use every tile.
        """
        tile_map = self.tile_map
        grid = self.grid
        rectangle = region.rectangle
        reached_middle = rectangle.width < 4 or rectangle.height < 4

        center = None
        if not reached_middle:
            if rectangle.height > rectangle.width:
                margin = math.floor((1.0 - CITY_STATE_CENTER_BIAS) / 2.0 * rectangle.height)
                center = rectangle.model_copy(update={
                    "south_y": (rectangle.south_y + margin) % grid.height,
                    "height": rectangle.height - margin * 2,
                })
            else:
                margin = math.floor((1.0 - CITY_STATE_CENTER_BIAS) / 2.0 * rectangle.width)
                center = rectangle.model_copy(update={
                    "west_x": (rectangle.west_x + margin) % grid.width,
                    "width": rectangle.width - margin * 2,
                })

        coastal: List[int] = []
        inland: List[int] = []
        for tile in rectangle.iter_tiles(grid):
            if center is not None and center.contains(grid, tile):
                continue
            if not tile_map.can_be_city_state_starting_tile(tile, region):
                continue
            if tile_map.is_coastal_land(tile):
                coastal.append(tile)
            else:
                inland.append(tile)
        return coastal, inland

    def assign_city_states_to_regions_or_uninhabited_landmasses(self) -> List[Optional[int]]:
        """
        Decide where each city state goes.

        Returns:
            One entry per city state: a region index, or None for an
            uninhabited landmass
        """
        tile_map = self.tile_map
        parameters = self.parameters
        regions = tile_map.region_list
        city_state_num = parameters.city_state_num
        assignments: List[Optional[int]] = []

        ratio = city_state_num / parameters.civilization_num
        per_region = next((count for threshold, count in CITY_STATES_PER_REGION if ratio > threshold), 0)
        for _ in range(per_region):
            assignments.extend(range(len(regions)))
        unassigned = city_state_num - len(assignments)

        if parameters.region_divide_method != RegionDivideMethod.WHOLE_MAP_RECTANGLE:
            uninhabited = min(unassigned, self._collect_uninhabited_land())
            assignments.extend([None] * uninhabited)
            unassigned -= uninhabited

        if unassigned <= 0:
            return assignments

        # Civilizations sharing a luxury get a city state each
        shared = sorted(
            resource for resource, count in tile_map.luxury_assign_to_region_count.items() if count == 3
        )
        shared_regions = 3 * len(shared)
        if 0 < shared_regions <= unassigned:
            for resource in shared:
                for index, region in enumerate(regions):
                    if region.luxury_resource == resource:
                        assignments.append(index)
                        unassigned -= 1

        rounds, unassigned = divmod(unassigned, len(regions))
        for _ in range(rounds):
            assignments.extend(range(len(regions)))

        if unassigned > 0:
            def fertility_per_land_tile(index: int) -> int:
                statistic = regions[index].terrain_statistic.terrain_type_num
                land = int(statistic[TerrainType.FLATLAND] + statistic[TerrainType.HILL])
                return int(regions[index].fertility_sum / max(land, 1))

            poorest = sorted(range(len(regions)), key=fertility_per_land_tile)
            assignments.extend(poorest[:unassigned])
        return assignments

    def _collect_uninhabited_land(self) -> int:
        """Fill the uninhabited site lists; return how many city states they may take."""
        tile_map = self.tile_map
        parameters = self.parameters
        method = parameters.region_divide_method

        civ_tiles = 0
        uninhabited_tiles = 0
        area_tiles: Dict[int, List[int]] = {}
        for tile in tile_map.all_tiles():
            if tile_map.terrain_type[tile] not in (TerrainType.FLATLAND, TerrainType.HILL):
                continue
            if tile_map.base_terrain[tile] == BaseTerrain.SNOW:
                continue
            if method == RegionDivideMethod.CUSTOM_RECTANGLE:
                if parameters.custom_rectangle.contains(self.grid, tile):
                    civ_tiles += 1
                else:
                    uninhabited_tiles += 1
                    self._add_uninhabited_site(tile)
            else:
                area_tiles.setdefault(int(tile_map.area_id[tile]), []).append(tile)

        inhabited_areas = {region.area_id for region in tile_map.region_list if region.area_id is not None}
        for area, tiles in sorted(area_tiles.items()):
            if area in inhabited_areas:
                civ_tiles += len(tiles)
                continue
            uninhabited_tiles += len(tiles)
            # Tiny islands are not worth a city state
            if len(tiles) >= 4:
                for tile in tiles:
                    self._add_uninhabited_site(tile)

        if civ_tiles + uninhabited_tiles == 0:
            return 0
        city_state_num = parameters.city_state_num
        uninhabited_ratio = uninhabited_tiles / (civ_tiles + uninhabited_tiles)
        max_by_ratio = int(3 * uninhabited_ratio * city_state_num)
        divisor = 4 if method == RegionDivideMethod.PANGAEA else 2
        max_by_method = math.ceil(city_state_num / divisor)
        return min(max_by_ratio, max_by_method)

    def _add_uninhabited_site(self, tile: int) -> None:
        if self.tile_map.is_coastal_land(tile):
            self.uninhabited_coastal.append(tile)
        else:
            self.uninhabited_inland.append(tile)


def place_city_states(tile_map: TileMap) -> None:
    CityStatePlacer(tile_map).place_city_states()


def normalize_city_state(tile_map: TileMap, tile: int) -> None:
    """Give a city state a hill when it lacks production and up to two food bonuses."""
    rng = tile_map.rng
    grid = tile_map.grid
    first_ring = list(grid.neighbors(tile))
    second_ring = list(grid.tiles_at_distance(tile, 2))
    inner = survey_ring(tile_map, first_ring)
    outer = survey_ring(tile_map, second_ring)

    hammer_score = 4 * inner.hill + 2 * inner.forest + inner.one_hammer
    if hammer_score < 4:
        rng.shuffle(first_ring)
        for neighbor in first_ring:
            if tile_map.attempt_to_place_hill_at_tile(neighbor):
                break

    inner_food = inner.food_score
    total_food = inner_food + outer.food_score
    if total_food < 12 or inner_food < 4:
        needed = 2
    elif total_food < 16 and inner_food < 9:
        needed = 1
    else:
        return

    rng.shuffle(first_ring)
    rng.shuffle(second_ring)
    place_food_bonuses(
        tile_map,
        (first_ring, second_ring),
        needed,
        inner.can_have_bonus,
        outer.can_have_bonus,
        inner_limit=2,
        total_limit=4,
    )


def normalize_city_state_locations(tile_map: TileMap) -> None:
    logger.info("Normalizing city state locations", city_states=len(tile_map.starting_tile_and_city_state))
    for tile in list(tile_map.starting_tile_and_city_state):
        normalize_city_state(tile_map, tile)
