"""Tests for ruleset loading and ID resolution."""

import json

import pytest

from py_civmap.core.tile_map import (
    BaseTerrain,
    Feature,
    NaturalWonder,
    RegionType,
    Resource,
    ResourceClass,
    TerrainType,
)
from py_civmap.exceptions import RulesetError
from py_civmap.ruleset import DEFAULT_RULESET_PATH, Ruleset, WonderUnique


@pytest.fixture
def raw_ruleset():
    with open(DEFAULT_RULESET_PATH, encoding="utf-8") as f:
        return json.load(f)


def write_ruleset(tmp_path, raw):
    path = tmp_path / "ruleset.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    return path


class TestRuleset:
    """Test the bundled catalogue."""

    def test_every_entity_has_a_name(self, ruleset):
        for feature in Feature:
            assert ruleset.feature_name(feature)
        for wonder in NaturalWonder:
            assert ruleset.wonder_name(wonder)
        for resource in Resource:
            assert ruleset.resource_name(resource)
        assert ruleset.resource_name(Resource.GOLD_ORE) == "Gold Ore"

    def test_feature_rules_resolved_to_ids(self, ruleset):
        jungle = ruleset.features[Feature.JUNGLE]
        assert jungle.can_occur(TerrainType.FLATLAND, BaseTerrain.PLAIN)
        assert not jungle.can_occur(TerrainType.FLATLAND, BaseTerrain.DESERT)
        assert ruleset.feature_impassable[Feature.ICE]
        assert not ruleset.feature_impassable[Feature.FOREST]

    def test_resource_classes(self, ruleset):
        assert ruleset.resource_class[Resource.WHEAT] == ResourceClass.BONUS
        assert ruleset.resource_class[Resource.IRON] == ResourceClass.STRATEGIC
        assert ruleset.resource_class[Resource.MARBLE] == ResourceClass.LUXURY
        for resource in Resource:
            if resource >= Resource.WHALES:
                assert ruleset.resource_class[resource] == ResourceClass.LUXURY

    def test_wonder_rules(self, ruleset):
        fuji = ruleset.natural_wonders[NaturalWonder.MOUNT_FUJI]
        assert fuji.turns_into_type == TerrainType.MOUNTAIN
        assert TerrainType.FLATLAND in fuji.occurs_on_type
        placeholders = {unique.placeholder for unique in fuji.uniques}
        assert "Must not be on [] largest landmasses" in placeholders
        assert "Must be adjacent to [] to [] [] tiles" in placeholders
        assert ruleset.wonder_impassable[NaturalWonder.MOUNT_FUJI]
        assert not ruleset.wonder_impassable[NaturalWonder.EL_DORADO]

    def test_nations(self, ruleset):
        civilizations = ruleset.civilization_nations()
        city_states = ruleset.city_state_nations()
        assert len(civilizations) >= 21
        assert city_states
        assert not set(civilizations) & set(city_states)
        arabia = ruleset.nation("Arabia")
        assert arabia.region_type_priority == [RegionType.DESERT]
        assert RegionType.TUNDRA in arabia.avoid_region_type

    def test_matches_filter(self, ruleset):
        none = -1
        assert ruleset.matches_filter("Elevated", TerrainType.HILL, BaseTerrain.PLAIN, none)
        assert not ruleset.matches_filter("Elevated", TerrainType.FLATLAND, BaseTerrain.PLAIN, none)
        assert ruleset.matches_filter("Land", TerrainType.FLATLAND, BaseTerrain.DESERT, none)
        assert not ruleset.matches_filter("Land", TerrainType.WATER, BaseTerrain.COAST, none)
        assert ruleset.matches_filter("Coast", TerrainType.WATER, BaseTerrain.COAST, none)
        assert ruleset.matches_filter("Jungle", TerrainType.FLATLAND, BaseTerrain.PLAIN, Feature.JUNGLE)
        assert not ruleset.matches_filter("Jungle", TerrainType.FLATLAND, BaseTerrain.PLAIN, none)


class TestWonderUnique:
    """Test unique parsing."""

    def test_parse_single_count(self):
        unique = WonderUnique.parse("Must be adjacent to [0] [Coast] tiles")
        assert unique.placeholder == "Must be adjacent to [] [] tiles"
        assert unique.params == ("0", "Coast")

    def test_parse_range(self):
        unique = WonderUnique.parse("Must be adjacent to [2] to [6] [Hill] tiles")
        assert unique.placeholder == "Must be adjacent to [] to [] [] tiles"
        assert unique.params == ("2", "6", "Hill")


class TestRulesetErrors:
    """Test rejection of malformed documents."""

    def test_unknown_terrain_name(self, tmp_path, raw_ruleset):
        raw_ruleset["features"][0]["occurs_on_base"] = ["Lava"]
        with pytest.raises(RulesetError, match="Lava"):
            Ruleset.load(write_ruleset(tmp_path, raw_ruleset))

    def test_missing_entity(self, tmp_path, raw_ruleset):
        raw_ruleset["base_terrains"] = raw_ruleset["base_terrains"][:-1]
        with pytest.raises(RulesetError, match="missing"):
            Ruleset.load(write_ruleset(tmp_path, raw_ruleset))

    def test_malformed_document(self, tmp_path, raw_ruleset):
        del raw_ruleset["nations"]
        with pytest.raises(RulesetError, match="Malformed"):
            Ruleset.load(write_ruleset(tmp_path, raw_ruleset))

    def test_ruleset_error_is_value_error(self):
        assert issubclass(RulesetError, ValueError)
