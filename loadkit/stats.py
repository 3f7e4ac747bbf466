from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, MutableSequence, Optional, Sequence, Tuple

import numpy as np

from loadkit.lexicon import METRIC_KEYS
from loadkit.results import INVALID_WRITE, BoundedWrite, bounded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metrics:
    mean: float
    p50: float
    p95: float
    throughput: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.mean, self.p50, self.p95, self.throughput)

    def as_array(self) -> np.ndarray:
        return np.array(self.as_tuple(), dtype=np.float64)

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(METRIC_KEYS, self.as_tuple()))


def nearest_rank(sorted_values: np.ndarray, q: float) -> float:
    """Pick ``sorted_values[floor((n - 1) * q)]``; no interpolation between ranks."""
    n = int(sorted_values.shape[0])
    return float(sorted_values[int(math.floor((n - 1) * q))])


def _head(buffer: Sequence[float], count: Optional[int]) -> np.ndarray:
    a = np.asarray(buffer, dtype=np.float64).ravel()
    n = a.size if count is None else min(int(count), a.size)
    return a[: max(0, n)]


def _sorted_copy(a: np.ndarray) -> np.ndarray:
    return np.sort(a, kind="quicksort")


def compute_metrics(buffer: Optional[Sequence[float]], count: Optional[int] = None) -> Optional[Metrics]:
    if buffer is None or (count is not None and count <= 0):
        return None
    a = _head(buffer, count)
    n = int(a.size)
    if n == 0:
        return None

    mean = float(np.sum(a)) / n
    try:
        ordered = _sorted_copy(a)
    except MemoryError:
        logger.warning("Could not allocate sort buffer for %d samples; returning mean only", n)
        return Metrics(mean=mean, p50=0.0, p95=0.0, throughput=0.0)

    return Metrics(
        mean=mean,
        p50=nearest_rank(ordered, 0.5),
        p95=nearest_rank(ordered, 0.95),
        throughput=float(n),
    )


def compute_metrics_into(
    buffer: Optional[Sequence[float]],
    count: int,
    out: Optional[MutableSequence[float]],
) -> BoundedWrite:
    if buffer is None or out is None or count <= 0 or len(out) < len(METRIC_KEYS):
        return INVALID_WRITE
    metrics = compute_metrics(buffer, count)
    if metrics is None:
        return INVALID_WRITE
    for idx, value in enumerate(metrics.as_tuple()):
        out[idx] = value
    return bounded(len(METRIC_KEYS), False)


def summarize_latency_ms(lat_ms: Iterable[float], duration_s: Optional[float] = None) -> Dict[str, float]:
    a = np.asarray(list(lat_ms), dtype=float)
    a = a[np.isfinite(a)]
    ordered = np.sort(a)
    has = ordered.size > 0
    rate = float("nan")
    if duration_s is not None and duration_s > 0:
        rate = float(a.size) / float(duration_s)
    return {
        "mean_ms": float(np.mean(a)) if has else float("nan"),
        "p50_ms": nearest_rank(ordered, 0.5) if has else float("nan"),
        "p90_ms": nearest_rank(ordered, 0.9) if has else float("nan"),
        "p95_ms": nearest_rank(ordered, 0.95) if has else float("nan"),
        "p99_ms": nearest_rank(ordered, 0.99) if has else float("nan"),
        "max_ms": float(ordered[-1]) if has else float("nan"),
        "n": float(a.size),
        "throughput_rps": rate,
    }
