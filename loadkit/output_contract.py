from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loadkit.common import ensure_dir, env_info, utc_stamp, write_json
from loadkit.lexicon import ART_ANOMALIES, ART_MANIFEST, ART_SAMPLES, ART_SUMMARY
from loadkit.stats import Metrics, summarize_latency_ms

SAMPLES_FIELDS = ["index", "latency_ms"]


def write_manifest_contract(
    out_dir: Path,
    *,
    scenario: Mapping[str, Any],
    seed: int,
    run_id: int,
    capacity: int,
    multiplier: float,
    extra: Optional[Dict[str, Any]] = None,
) -> Path:
    manifest = {
        "scenario": dict(scenario),
        "seed": int(seed),
        "run_id": int(run_id),
        "capacity": int(capacity),
        "anomaly_multiplier": float(multiplier),
        "timestamp_utc": utc_stamp(),
        "env": env_info(),
        "extra": extra or {},
    }
    path = Path(out_dir) / ART_MANIFEST
    write_json(path, manifest)
    return path


def _write_csv(path: Path, fieldnames: List[str], rows: Iterable[Mapping[str, Any]]) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def write_samples_csv(out_dir: Path, samples: Sequence[float]) -> Path:
    path = Path(out_dir) / ART_SAMPLES
    rows = ({"index": idx + 1, "latency_ms": f"{float(v):.6f}"} for idx, v in enumerate(samples))
    _write_csv(path, SAMPLES_FIELDS, rows)
    return path


def write_anomalies_csv(out_dir: Path, samples: Sequence[float], indices: Sequence[int]) -> Path:
    path = Path(out_dir) / ART_ANOMALIES
    rows = ({"index": int(i), "latency_ms": f"{float(samples[int(i)]):.6f}"} for i in indices)
    _write_csv(path, SAMPLES_FIELDS, rows)
    return path


def build_summary(
    samples: Sequence[float],
    metrics: Optional[Metrics],
    *,
    duration_s: float,
    anomaly_indices: Sequence[int],
    anomaly_threshold_ms: float,
    simulation_status: str,
    anomaly_status: str,
) -> Dict[str, Any]:
    summary: Dict[str, Any] = {}
    extended = summarize_latency_ms(samples, duration_s=duration_s)
    summary.update({k: extended[k] for k in ("p90_ms", "p99_ms", "max_ms", "throughput_rps")})
    if metrics is None:
        metrics = Metrics(mean=float("nan"), p50=float("nan"), p95=float("nan"), throughput=0.0)
    summary.update(metrics.as_dict())
    summary.update(
        {
            "anomaly_count": int(len(anomaly_indices)),
            "anomaly_threshold_ms": float(anomaly_threshold_ms),
            "simulation_status": simulation_status,
            "anomaly_status": anomaly_status,
        }
    )
    return summary


def write_run_summary(
    out_dir: Path,
    summary: Mapping[str, Any],
    *,
    extra: Optional[Dict[str, Any]] = None,
) -> Path:
    payload = dict(summary)
    payload.update(extra or {})
    path = Path(out_dir) / ART_SUMMARY
    write_json(path, payload)
    return path
