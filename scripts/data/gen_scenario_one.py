from __future__ import annotations

import sys

import argparse
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from loadkit.defaults import (
    DEFAULT_BASE_LATENCY_MS,
    DEFAULT_JITTER_MS,
    DEFAULT_SPIKE_CHANCE,
    default_capacity,
)
from loadkit.output_contract import write_samples_csv
from loadkit.rng import Lcg64, seed_from_clock
from loadkit.simulation import LatencyProfile, run_simulation


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a single load scenario into samples.csv.")
    parser.add_argument("--clients", type=int, default=10)
    parser.add_argument("--rps", type=float, default=1.0)
    parser.add_argument("--duration-s", type=int, default=60)
    parser.add_argument("--capacity", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--base-latency-ms", type=float, default=DEFAULT_BASE_LATENCY_MS)
    parser.add_argument("--jitter-ms", type=float, default=DEFAULT_JITTER_MS)
    parser.add_argument("--spike-chance", type=float, default=DEFAULT_SPIKE_CHANCE)
    parser.add_argument("--out-dir", type=Path, default=REPO_ROOT / "data" / "_synth")
    parser.add_argument("--no-clobber", action="store_true")
    args = parser.parse_args()

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / "samples.csv"

    if out_path.exists() and args.no_clobber:
        print(f"Exists (no-clobber): {out_path}")
        return

    capacity = args.capacity
    if capacity is None:
        capacity = default_capacity(args.clients, args.rps, args.duration_s)
    if capacity <= 0:
        raise SystemExit(f"--capacity must be positive, got {capacity}")

    seed = args.seed if args.seed is not None else seed_from_clock()
    profile = LatencyProfile(args.base_latency_ms, args.jitter_ms, args.spike_chance)
    samples = run_simulation(
        args.clients, args.rps, args.duration_s, capacity, rng=Lcg64(seed), profile=profile
    )
    write_samples_csv(out_dir, samples)

    print(f"Wrote {out_path} samples={samples.size} seed={seed}")


if __name__ == "__main__":
    main()
