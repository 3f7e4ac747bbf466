from __future__ import annotations

import csv
import math
from pathlib import Path
from typing import Tuple

import numpy as np


def load_samples_csv(path: Path, column: str = "latency_ms") -> np.ndarray:
    """
    Load one numeric column of a samples CSV into a float64 buffer.

    Rows whose value is empty are skipped; anything else that does not parse
    as a float raises ValueError with the offending row number.
    """
    values = []
    with Path(path).open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None or column not in reader.fieldnames:
            raise ValueError(f"{path}: missing column '{column}'")
        for row_no, row in enumerate(reader, start=2):
            raw = (row.get(column) or "").strip()
            if not raw:
                continue
            try:
                values.append(float(raw))
            except ValueError:
                raise ValueError(f"{path}:{row_no}: '{raw}' is not numeric") from None
    return np.asarray(values, dtype=np.float64)


def decimate_for_display(samples: np.ndarray, max_points: int) -> Tuple[np.ndarray, np.ndarray, int]:
    samples = np.asarray(samples, dtype=np.float64)
    n = int(samples.shape[0])
    if max_points <= 0 or n <= max_points:
        return np.arange(n, dtype=np.int64), samples, 1
    factor = int(math.ceil(n / max_points))
    idx = np.arange(0, n, factor, dtype=np.int64)
    return idx, samples[idx], factor
