"""
Random number generation utilities.

The generator draws every random value from one Alea stream. Python's
random and NumPy's random are never used in map code, which keeps a
seed reproducible across platforms.
"""

from ..core.alea_prng import AleaPRNG

# Global PRNG instance
_prng = None


def set_random_seed(seed) -> AleaPRNG:
    """
    Reset the shared Alea PRNG from a seed.

    Args:
        seed: Integer or string seed; integers are mashed as their decimal text

    Returns:
        The freshly seeded AleaPRNG instance
    """
    global _prng
    _prng = AleaPRNG(str(seed))
    return _prng


def get_prng() -> AleaPRNG:
    """
    Get the current Alea PRNG instance.

    Returns:
        AleaPRNG instance
    """
    global _prng
    if _prng is None:
        _prng = AleaPRNG("default")
    return _prng
