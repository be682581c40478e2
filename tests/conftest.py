"""Shared fixtures for map generation tests."""

import pytest

from py_civmap.config.map_parameters import MapParameters, Wrap
from py_civmap.core.alea_prng import AleaPRNG
from py_civmap.core.tile_map import TileMap
from py_civmap.ruleset import Ruleset


@pytest.fixture(scope="session")
def ruleset():
    """The bundled ruleset, loaded once."""
    return Ruleset.load()


@pytest.fixture
def make_tile_map(ruleset):
    """Factory for small all-ocean tile maps without wrapping."""

    def factory(width=16, height=12, seed=1, **kwargs):
        kwargs.setdefault("wrap", Wrap.NONE)
        parameters = MapParameters(width=width, height=height, seed=seed, **kwargs)
        return TileMap(parameters, ruleset, AleaPRNG(str(seed)))

    return factory
