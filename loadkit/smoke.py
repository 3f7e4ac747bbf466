from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import List, Optional, Tuple

from loadkit.defaults import MIN_LATENCY_MS
from loadkit.lexicon import METRIC_KEYS

REQUIRED_SUMMARY_KEYS = METRIC_KEYS + ("anomaly_count", "simulation_status", "anomaly_status")


def _read_csv_rows(path: Path) -> List[dict]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        return list(reader)


def validate_samples_csv(path: Path, max_rows: Optional[int] = None) -> Tuple[bool, str]:
    if not path.exists():
        return False, f"Missing samples.csv: {path}"
    rows = _read_csv_rows(path)
    if max_rows is not None and len(rows) > max_rows:
        return False, f"samples.csv rows={len(rows)} exceeds max={max_rows}"
    for idx, row in enumerate(rows):
        try:
            latency = float(row.get("latency_ms", "nan"))
        except ValueError:
            return False, f"samples.csv row {idx} latency_ms not numeric"
        if not latency >= MIN_LATENCY_MS:
            return False, f"samples.csv row {idx} latency_ms below {MIN_LATENCY_MS}"
    return True, "OK"


def validate_summary_json(path: Path, samples_csv: Optional[Path] = None) -> Tuple[bool, str]:
    if not path.exists():
        return False, f"Missing summary.json: {path}"
    try:
        summary = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        return False, f"summary.json not valid JSON: {exc}"
    missing = [k for k in REQUIRED_SUMMARY_KEYS if k not in summary]
    if missing:
        return False, f"summary.json missing keys: {', '.join(missing)}"
    if float(summary["p50_ms"]) > float(summary["p95_ms"]):
        return False, "summary.json p50_ms > p95_ms"
    if samples_csv is not None and samples_csv.exists():
        n_rows = len(_read_csv_rows(samples_csv))
        if int(summary["throughput"]) != n_rows:
            return False, f"summary.json throughput={summary['throughput']} but samples.csv rows={n_rows}"
    return True, "OK"


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate scenario run artifacts.")
    parser.add_argument("--samples-csv", type=Path, default=None)
    parser.add_argument("--summary-json", type=Path, default=None)
    parser.add_argument("--max-rows", type=int, default=None)
    args = parser.parse_args()

    if not args.samples_csv and not args.summary_json:
        raise SystemExit("Provide --samples-csv or --summary-json")

    if args.samples_csv:
        ok, msg = validate_samples_csv(args.samples_csv, args.max_rows)
        if not ok:
            print(f"[FAIL] {msg}")
            return 1
        print(f"[OK] {args.samples_csv}")

    if args.summary_json:
        ok, msg = validate_summary_json(args.summary_json, args.samples_csv)
        if not ok:
            print(f"[FAIL] {msg}")
            return 1
        print(f"[OK] {args.summary_json}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
