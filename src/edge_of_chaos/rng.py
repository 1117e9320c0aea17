"""
Deterministic 32-bit pseudo-random stream.

All randomness in a simulation run comes from one Mulberry32 generator:
- one draw per entrant for its effort value
- one draw per step for the weighted reward winner

The generator uses only unsigned 32-bit multiply, xor and shift, so the
sequence for a given seed is identical on every platform.
"""

UINT32_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """Low 32 bits of the product of two 32-bit integers."""
    return (a * b) & UINT32_MASK


class Mulberry32:
    """
    Mulberry32 generator over a single 32-bit state word.

    Any integer seed is accepted; it is reduced modulo 2**32.

    Example:
        >>> rng = Mulberry32(7)
        >>> x = rng.next()
        >>> 0.0 <= x < 1.0
        True
    """

    def __init__(self, seed: int = 0):
        self.seed = seed & UINT32_MASK
        self._state = self.seed

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """Advance the state and return a float in [0, 1)."""
        self._state = (self._state + _INCREMENT) & UINT32_MASK
        t = self._state
        x = _imul(t ^ (t >> 15), 1 | t)
        x ^= (x + _imul(x ^ (x >> 7), 61 | x)) & UINT32_MASK
        return ((x ^ (x >> 14)) & UINT32_MASK) / _TWO_POW_32

    __call__ = next

    def reset(self, seed: int | None = None) -> None:
        """Rewind to the start of the stream, optionally with a new seed."""
        if seed is not None:
            self.seed = seed & UINT32_MASK
        self._state = self.seed
