"""
Error types raised by the map generator.
"""


class ConfigurationError(ValueError):
    """Map parameters are out of range or inconsistent with the ruleset."""


class RulesetError(ValueError):
    """The ruleset catalogue references an unknown terrain, feature or resource."""
