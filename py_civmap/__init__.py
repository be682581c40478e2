"""
py_civmap: procedural hex-grid world maps for Civilization-style strategy games.
"""

from .config.map_parameters import MapParameters
from .exceptions import ConfigurationError, RulesetError
from .generator import generate
from .ruleset import Ruleset

__version__ = "0.1.0"

__all__ = ['generate', 'MapParameters', 'Ruleset', 'ConfigurationError', 'RulesetError']
