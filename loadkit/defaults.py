from __future__ import annotations

import math

DEFAULT_BASE_LATENCY_MS = 50.0
DEFAULT_JITTER_MS = 15.0
DEFAULT_SPIKE_CHANCE = 0.05
SPIKE_SCALE = 8.0
SPIKE_OFFSET = 2.0
MIN_LATENCY_MS = 1.0

DEFAULT_ANOMALY_MULTIPLIER = 2.0
DEFAULT_MIN_CAPACITY = 1000
DEFAULT_CAPACITY_HEADROOM = 1.2


def default_capacity(clients: float, rps: float, duration_s: float) -> int:
    expected = float(clients) * float(rps) * float(duration_s) * DEFAULT_CAPACITY_HEADROOM
    return max(DEFAULT_MIN_CAPACITY, int(math.ceil(expected)))
