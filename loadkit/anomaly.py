from __future__ import annotations

from typing import MutableSequence, Optional, Sequence

import numpy as np

from loadkit.results import INVALID_WRITE, BoundedWrite, bounded


def anomaly_threshold(buffer: Sequence[float], count: int, multiplier: float) -> float:
    a = np.asarray(buffer, dtype=np.float64).ravel()[: max(0, int(count))]
    if a.size == 0:
        return float("nan")
    return float(np.sum(a)) / a.size * float(multiplier)


def _exceeding(buffer: Sequence[float], count: int, multiplier: float) -> np.ndarray:
    a = np.asarray(buffer, dtype=np.float64).ravel()[: int(count)]
    threshold = anomaly_threshold(a, a.size, multiplier)
    # flatnonzero scans in buffer order, so indices come out ascending
    return np.flatnonzero(a > threshold).astype(np.int64)


def detect_anomalies_into(
    buffer: Optional[Sequence[float]],
    count: int,
    multiplier: float,
    out: Optional[MutableSequence[int]],
    max_out: int,
) -> BoundedWrite:
    if buffer is None or out is None or count <= 0 or max_out <= 0:
        return INVALID_WRITE
    if len(buffer) == 0:
        return INVALID_WRITE

    hits = _exceeding(buffer, count, multiplier)
    capacity = min(int(max_out), len(out))
    written = min(capacity, int(hits.size))
    for pos in range(written):
        out[pos] = int(hits[pos])
    return bounded(written, int(hits.size) > written)


def detect_anomalies(
    buffer: Optional[Sequence[float]],
    multiplier: float,
    count: Optional[int] = None,
    max_out: Optional[int] = None,
) -> np.ndarray:
    """Return indices whose value is strictly above ``mean * multiplier``.

    Growable counterpart of :func:`detect_anomalies_into`; invalid input gives
    an empty array.
    """
    empty = np.empty(0, dtype=np.int64)
    if buffer is None:
        return empty
    n = len(buffer) if count is None else min(int(count), len(buffer))
    if n <= 0 or (max_out is not None and max_out <= 0):
        return empty
    hits = _exceeding(buffer, n, multiplier)
    if max_out is not None:
        hits = hits[: int(max_out)]
    return hits
