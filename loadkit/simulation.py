from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, MutableSequence, Optional

import numpy as np

from loadkit.defaults import (
    DEFAULT_BASE_LATENCY_MS,
    DEFAULT_JITTER_MS,
    DEFAULT_SPIKE_CHANCE,
    MIN_LATENCY_MS,
    SPIKE_OFFSET,
    SPIKE_SCALE,
)
from loadkit.results import INVALID_WRITE, BoundedWrite, bounded
from loadkit.rng import Lcg64

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LatencyProfile:
    """
    Shape of a single simulated latency sample.

    - base_latency_ms: center of the Gaussian body
    - jitter_ms:       full jitter width; the Gaussian uses jitter_ms / 2 as sigma
    - spike_chance:    probability in [0, 1] of adding a tail-latency spike
    """
    base_latency_ms: float = DEFAULT_BASE_LATENCY_MS
    jitter_ms: float = DEFAULT_JITTER_MS
    spike_chance: float = DEFAULT_SPIKE_CHANCE


DEFAULT_PROFILE = LatencyProfile()


def _round_half_away(x: float) -> int:
    return int(math.copysign(math.floor(abs(x) + 0.5), x))


def per_second_rate(clients: int, rps: float) -> int:
    return max(1, _round_half_away(float(clients) * float(rps)))


def expected_samples(clients: int, rps: float, duration_s: int) -> int:
    return max(0, int(duration_s)) * per_second_rate(clients, rps)


def sample_latency(rng: Lcg64, profile: LatencyProfile = DEFAULT_PROFILE) -> float:
    jitter = float(profile.jitter_ms)
    val = float(profile.base_latency_ms) + rng.gaussian() * (jitter / 2.0)
    if rng.uniform() < profile.spike_chance:
        val += abs(rng.gaussian()) * jitter * SPIKE_SCALE + jitter * SPIKE_OFFSET
    if val < MIN_LATENCY_MS:
        val = MIN_LATENCY_MS
    return val


def run_simulation_into(
    clients: int,
    rps: float,
    duration_s: int,
    out: Optional[MutableSequence[float]],
    max_samples: int,
    *,
    rng: Optional[Lcg64] = None,
    profile: Optional[LatencyProfile] = None,
) -> BoundedWrite:
    if out is None or max_samples <= 0:
        return INVALID_WRITE
    if rng is None:
        rng = Lcg64.from_clock()
    profile = profile or DEFAULT_PROFILE

    capacity = min(int(max_samples), len(out))
    per_second = per_second_rate(clients, rps)
    idx = 0
    for _ in range(max(0, int(duration_s))):
        if idx >= capacity:
            break
        for _ in range(min(per_second, capacity - idx)):
            out[idx] = sample_latency(rng, profile)
            idx += 1

    truncated = expected_samples(clients, rps, duration_s) > idx
    if truncated:
        logger.debug(
            "Simulation truncated at capacity=%d (clients=%s rps=%s duration=%ss)",
            capacity,
            clients,
            rps,
            duration_s,
        )
    return bounded(idx, truncated)


def run_simulation(
    clients: int,
    rps: float,
    duration_s: int,
    capacity: Optional[int] = None,
    *,
    rng: Optional[Lcg64] = None,
    profile: Optional[LatencyProfile] = None,
) -> np.ndarray:
    """Simulate a scenario and return the written samples as a new float64 array.

    ``capacity=None`` sizes the buffer to exactly what the scenario produces.
    """
    if capacity is None:
        capacity = expected_samples(clients, rps, duration_s)
    if capacity <= 0:
        return np.empty(0, dtype=np.float64)
    buf = np.zeros(int(capacity), dtype=np.float64)
    result = run_simulation_into(clients, rps, duration_s, buf, int(capacity), rng=rng, profile=profile)
    return buf[: result.written].copy()


def scenario_params(clients: int, rps: float, duration_s: int, profile: LatencyProfile) -> Dict[str, Any]:
    return {
        "clients": int(clients),
        "rps_per_client": float(rps),
        "duration_s": int(duration_s),
        "per_second": per_second_rate(clients, rps),
        "base_latency_ms": float(profile.base_latency_ms),
        "jitter_ms": float(profile.jitter_ms),
        "spike_chance": float(profile.spike_chance),
    }
