from __future__ import annotations

import importlib.util
from pathlib import Path

import run_all

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "analysis" / "aggregate_results.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("aggregate_results", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_collect_rows_merges_summary_and_scenario(tmp_path: Path) -> None:
    out_root = tmp_path / "outputs"
    assert run_all.main(["--out-root", str(out_root), "--clients", "3", "--rps", "1.0",
                         "--durations", "2", "--runs", "1", "--seed", "1"]) == 0

    agg = _load_script()
    rows = agg.collect_rows(out_root)
    assert len(rows) == 1
    row = rows[0]
    assert row["throughput"] == 6
    assert row["scenario.clients"] == 3
    assert row["tag"] == "c3-rps1.0-dur2s-cap1000-m2.0-base50.0-jit15.0-spk0.05-seed1-run0"


def test_flatten_nested() -> None:
    agg = _load_script()
    assert agg.flatten({"a": {"b": 1, "c": {"d": 2}}, "e": 3}) == {"a.b": 1, "a.c.d": 2, "e": 3}
