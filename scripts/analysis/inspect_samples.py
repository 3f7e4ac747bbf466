from __future__ import annotations

import sys

import argparse
import json
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from loadkit.anomaly import anomaly_threshold, detect_anomalies
from loadkit.defaults import DEFAULT_ANOMALY_MULTIPLIER
from loadkit.loaders import decimate_for_display, load_samples_csv
from loadkit.stats import compute_metrics, summarize_latency_ms


def main() -> int:
    p = argparse.ArgumentParser(description="Compute metrics and anomalies for an existing samples CSV.")
    p.add_argument("--csv", type=Path, required=True)
    p.add_argument("--column", default="latency_ms")
    p.add_argument("--multiplier", type=float, default=DEFAULT_ANOMALY_MULTIPLIER)
    p.add_argument("--max-anomalies", type=int, default=None)
    p.add_argument("--duration-s", type=float, default=None, help="Window length for throughput_rps.")
    p.add_argument("--preview-points", type=int, default=0, help="Include a decimated preview series.")
    args = p.parse_args()

    samples = load_samples_csv(args.csv, args.column)
    metrics = compute_metrics(samples)
    if metrics is None:
        print(f"[FAIL] no samples in {args.csv}")
        return 1

    indices = detect_anomalies(samples, args.multiplier, max_out=args.max_anomalies)
    report = {
        "file": str(args.csv),
        "metrics": metrics.as_dict(),
        "extended": summarize_latency_ms(samples, duration_s=args.duration_s),
        "anomaly_threshold_ms": anomaly_threshold(samples, samples.size, args.multiplier),
        "anomaly_indices": [int(i) for i in indices],
    }
    if args.preview_points > 0:
        idx, values, factor = decimate_for_display(samples, args.preview_points)
        report["preview"] = {
            "factor": factor,
            "index": [int(i) for i in idx],
            "latency_ms": [float(v) for v in values],
        }

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
