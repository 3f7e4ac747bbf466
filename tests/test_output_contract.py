from __future__ import annotations

import csv
import json
import math
from pathlib import Path

from loadkit.lexicon import METRIC_KEYS, STATUS_INVALID, STATUS_OK
from loadkit.output_contract import (
    build_summary,
    write_anomalies_csv,
    write_manifest_contract,
    write_run_summary,
    write_samples_csv,
)
from loadkit.stats import compute_metrics


def _rows(path: Path) -> list:
    with path.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def test_samples_csv_uses_one_based_index(tmp_path: Path) -> None:
    path = write_samples_csv(tmp_path, [50.0, 61.25])
    assert path.name == "samples.csv"
    assert _rows(path) == [
        {"index": "1", "latency_ms": "50.000000"},
        {"index": "2", "latency_ms": "61.250000"},
    ]


def test_anomalies_csv_uses_buffer_offsets(tmp_path: Path) -> None:
    path = write_anomalies_csv(tmp_path, [1.0, 2.0, 3.0, 4.0, 5.0], [3, 4])
    assert _rows(path) == [
        {"index": "3", "latency_ms": "4.000000"},
        {"index": "4", "latency_ms": "5.000000"},
    ]


def test_manifest_records_scenario(tmp_path: Path) -> None:
    path = write_manifest_contract(
        tmp_path,
        scenario={"clients": 3, "rps_per_client": 1.0},
        seed=7,
        run_id=1,
        capacity=100,
        multiplier=2.0,
    )
    manifest = json.loads(path.read_text(encoding="utf-8"))
    assert manifest["scenario"]["clients"] == 3
    assert manifest["seed"] == 7
    assert manifest["capacity"] == 100
    assert "numpy" in manifest["env"]


def test_summary_holds_metrics_and_anomalies(tmp_path: Path) -> None:
    samples = [float(x) for x in range(1, 11)]
    summary = build_summary(
        samples,
        compute_metrics(samples),
        duration_s=5,
        anomaly_indices=[8, 9],
        anomaly_threshold_ms=8.25,
        simulation_status=STATUS_OK,
        anomaly_status=STATUS_OK,
    )
    assert summary["mean_ms"] == 5.5
    assert summary["p50_ms"] == 5.0
    assert summary["p95_ms"] == 9.0
    assert summary["throughput"] == 10.0
    assert summary["throughput_rps"] == 2.0
    assert summary["anomaly_count"] == 2

    path = write_run_summary(tmp_path, summary, extra={"tag": "x"})
    loaded = json.loads(path.read_text(encoding="utf-8"))
    assert loaded["tag"] == "x"
    assert loaded["anomaly_threshold_ms"] == 8.25


def test_summary_without_samples() -> None:
    summary = build_summary(
        [],
        None,
        duration_s=0,
        anomaly_indices=[],
        anomaly_threshold_ms=float("nan"),
        simulation_status=STATUS_OK,
        anomaly_status=STATUS_INVALID,
    )
    assert all(k in summary for k in METRIC_KEYS)
    assert summary["throughput"] == 0.0
    assert math.isnan(summary["p50_ms"])
