"""
Seeded Alea pseudo-random generator used by every generation pass.

Based on Johannes Baagøe's Alea algorithm. All stochastic choices in the
pipeline draw from one instance in a fixed order, so a seed fully
determines the generated map.
"""

from typing import List, MutableSequence, Sequence, TypeVar

T = TypeVar("T")

_TWO_POW_MINUS_32 = 2.3283064365386963e-10


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class AleaPRNG:
    """
    Alea PRNG with the integer and sequence helpers the map passes need.

    ``random()`` yields floats in [0, 1); the ``gen_*`` helpers build on it
    so that every draw consumes exactly one value from the stream.
    """

    def __init__(self, seed):
        """Initialize with seed string or number."""
        self.call_count = 0

        if hasattr(seed, "__iter__") and not isinstance(seed, str):
            args = list(seed)
        else:
            args = [seed]

        mash_n = 0xEFC8249D

        def mash(data):
            nonlocal mash_n
            for char in str(data):
                mash_n = mash_n + ord(char)
                h = 0.02519603282416938 * mash_n
                mash_n = _uint32(h)
                h -= mash_n
                h *= mash_n
                mash_n = _uint32(h)
                h -= mash_n
                mash_n += h * 0x100000000
            return _uint32(mash_n) * _TWO_POW_MINUS_32

        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        for arg in args:
            self.s0 -= mash(arg)
            if self.s0 < 0:
                self.s0 += 1
            self.s1 -= mash(arg)
            if self.s1 < 0:
                self.s1 += 1
            self.s2 -= mash(arg)
            if self.s2 < 0:
                self.s2 += 1

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * _TWO_POW_MINUS_32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def gen_range(self, low: int, high: int) -> int:
        """Return an integer in the half-open range [low, high)."""
        if high <= low:
            raise ValueError(f"Empty range [{low}, {high})")
        return low + int(self.random() * (high - low))

    def gen_range_inclusive(self, low: int, high: int) -> int:
        """Return an integer in the closed range [low, high]."""
        return self.gen_range(low, high + 1)

    def gen_bool(self, probability: float) -> bool:
        """Return True with the given probability."""
        return self.random() < probability

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def shuffle(self, seq: MutableSequence) -> None:
        """Shuffle a sequence in place (Fisher-Yates, from the back)."""
        for i in range(len(seq) - 1, 0, -1):
            j = self.gen_range(0, i + 1)
            seq[i], seq[j] = seq[j], seq[i]

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        """
        Choose ``k`` distinct elements, keeping the order they were drawn in.

        Returns fewer than ``k`` elements when the sequence is shorter.
        """
        pool = list(seq)
        k = min(k, len(pool))
        for i in range(k):
            j = self.gen_range(i, len(pool))
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:k]

    def weighted_index(self, weights: Sequence[float]) -> int:
        """
        Draw an index with probability proportional to its weight.

        Args:
            weights: Non-negative weights, at least one of them positive

        Returns:
            Index into ``weights``
        """
        total = sum(weights)
        if total <= 0:
            raise ValueError("Weights must contain at least one positive value")
        target = self.random() * total
        cumulative = 0.0
        last_positive = 0
        for index, weight in enumerate(weights):
            if weight <= 0:
                continue
            cumulative += weight
            last_positive = index
            if target < cumulative:
                return index
        return last_positive
