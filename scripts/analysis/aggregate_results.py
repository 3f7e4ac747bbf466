from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List


def iter_summary_files(out_root: Path) -> Iterable[Path]:
    for p in sorted(out_root.rglob("summary.json")):
        if "_aggregate" in p.parts:
            continue
        yield p


def flatten(d: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in d.items():
        kk = k if not prefix else f"{prefix}.{k}"
        if isinstance(v, dict):
            out.update(flatten(v, kk))
        else:
            out[kk] = v
    return out


def collect_rows(out_root: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for sf in iter_summary_files(out_root):
        try:
            obj = json.loads(sf.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            continue
        flat = flatten(obj)
        flat["_path"] = str(sf)
        manifest = sf.parent / "manifest.json"
        if manifest.exists():
            try:
                scenario = json.loads(manifest.read_text(encoding="utf-8")).get("scenario", {})
            except (OSError, json.JSONDecodeError):
                scenario = {}
            for k, v in flatten(scenario, "scenario").items():
                flat.setdefault(k, v)
        rows.append(flat)
    return rows


def main() -> None:
    p = argparse.ArgumentParser(description="Aggregate scenario summary.json files into a single CSV/JSONL.")
    p.add_argument("--out-root", type=Path, default=Path("outputs"))
    p.add_argument("--csv", type=Path, default=Path("outputs/_aggregate/summary.csv"))
    p.add_argument("--jsonl", type=Path, default=Path("outputs/_aggregate/summary.jsonl"))
    args = p.parse_args()

    rows = collect_rows(args.out_root)

    args.csv.parent.mkdir(parents=True, exist_ok=True)
    args.jsonl.parent.mkdir(parents=True, exist_ok=True)

    with args.jsonl.open("w", encoding="utf-8") as f:
        for r in rows:
            f.write(json.dumps(r, ensure_ascii=False) + "\n")

    keys: List[str] = sorted({k for r in rows for k in r.keys()})
    with args.csv.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=keys)
        w.writeheader()
        for r in rows:
            w.writerow({k: r.get(k, "") for k in keys})

    print(f"Wrote {args.csv} ({len(rows)} rows)")
    print(f"Wrote {args.jsonl}")


if __name__ == "__main__":
    main()
