from __future__ import annotations

import math
import time
from typing import Optional

MASK64 = (1 << 64) - 1
LCG_MULTIPLIER = 6364136223846793005
LCG_INCREMENT = 1
SEED_XOR = 0xDEADBEEF
FALLBACK_SEED = 123456789
UNIFORM_SCALE = float(1 << 32)
LOG_FLOOR = 1e-12


def seed_from_clock(now: Optional[float] = None) -> int:
    ts = int(time.time() if now is None else now)
    seed = (ts ^ SEED_XOR) & MASK64
    return seed or FALLBACK_SEED


class Lcg64:
    """
    64-bit linear congruential generator with a Box-Muller Gaussian sampler.

    Each instance owns its state, so independent simulations never
    interleave draws.
    """

    def __init__(self, seed: int) -> None:
        self.seed: int = int(seed) & MASK64
        self.state: int = self.seed

    @classmethod
    def from_clock(cls, now: Optional[float] = None) -> "Lcg64":
        return cls(seed_from_clock(now))

    def uniform(self) -> float:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) & MASK64
        return ((self.state >> 12) & 0xFFFFFFFF) / UNIFORM_SCALE

    def gaussian(self) -> float:
        u = self.uniform()
        v = self.uniform()
        if u < LOG_FLOOR:
            u = LOG_FLOOR
        return math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)
