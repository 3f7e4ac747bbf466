from __future__ import annotations

import argparse
import csv
import hashlib
import json
import logging
import logging.handlers
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from loadkit.anomaly import anomaly_threshold, detect_anomalies_into
from loadkit.common import ensure_dir, utc_stamp
from loadkit.defaults import (
    DEFAULT_ANOMALY_MULTIPLIER,
    DEFAULT_BASE_LATENCY_MS,
    DEFAULT_JITTER_MS,
    DEFAULT_SPIKE_CHANCE,
    default_capacity,
)
from loadkit.lexicon import (
    ART_MANIFEST,
    ART_SAMPLES,
    ART_SUMMARY,
    JOB_FAIL,
    JOB_OK,
    JOB_SKIP,
    STATUS_OK,
)
from loadkit.output_contract import (
    build_summary,
    write_anomalies_csv,
    write_manifest_contract,
    write_run_summary,
    write_samples_csv,
)
from loadkit.rng import MASK64, Lcg64, seed_from_clock
from loadkit.simulation import LatencyProfile, run_simulation_into, scenario_params
from loadkit.stats import compute_metrics

JobOutcome = Tuple[str, Optional[str], Optional[str], float]


@dataclass
class Job:
    clients: int
    rps: float
    duration_s: int
    run_id: int
    seed: int
    capacity: int
    multiplier: float
    profile: LatencyProfile
    tag: str
    out_dir: Path
    job_id: str
    skip_reason: Optional[str] = None


def slugify(value: str) -> str:
    safe = []
    for ch in value:
        if ch.isalnum() or ch == ".":
            safe.append(ch)
        else:
            safe.append("-")
    out = "".join(safe).strip("-")
    while "--" in out:
        out = out.replace("--", "-")
    return out or "na"


def job_hash(payload: Dict[str, object]) -> str:
    blob = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha1(blob).hexdigest()[:16]


def build_tag(job: Dict[str, object]) -> str:
    parts = [
        f"c{job['clients']}",
        f"rps{job['rps']}",
        f"dur{job['duration_s']}s",
        f"cap{job['capacity']}",
        f"m{job['multiplier']}",
        f"base{job['base_latency_ms']}",
        f"jit{job['jitter_ms']}",
        f"spk{job['spike_chance']}",
        f"seed{job['seed']}",
        f"run{job['run_id']}",
    ]
    return slugify("_".join(str(p) for p in parts))


def derive_seed(base_seed: int, ordinal: int) -> int:
    return (int(base_seed) + int(ordinal)) & MASK64


def timings_header() -> List[str]:
    return [
        "timestamp_start",
        "timestamp_end",
        "duration_s",
        "status",
        "job_id",
        "clients",
        "rps",
        "sim_duration_s",
        "run_id",
        "seed",
        "capacity",
        "out_dir",
        "error_type",
        "error_message",
    ]


def is_done(out_dir: Path) -> bool:
    if not out_dir.exists():
        return False
    return all((out_dir / name).exists() for name in (ART_MANIFEST, ART_SUMMARY, ART_SAMPLES))


def run_scenario(job: Job) -> Dict[str, object]:
    rng = Lcg64(job.seed)
    buf = np.zeros(job.capacity, dtype=np.float64)
    sim = run_simulation_into(
        job.clients, job.rps, job.duration_s, buf, job.capacity, rng=rng, profile=job.profile
    )
    samples = buf[: sim.written]

    metrics = compute_metrics(samples, sim.written)
    indices = np.zeros(max(1, sim.written), dtype=np.int64)
    found = detect_anomalies_into(samples, sim.written, job.multiplier, indices, indices.size)
    threshold = anomaly_threshold(samples, sim.written, job.multiplier)
    anomalies = indices[: found.written]

    ensure_dir(job.out_dir)
    write_manifest_contract(
        job.out_dir,
        scenario=scenario_params(job.clients, job.rps, job.duration_s, job.profile),
        seed=job.seed,
        run_id=job.run_id,
        capacity=job.capacity,
        multiplier=job.multiplier,
        extra={"job_id": job.job_id},
    )
    write_samples_csv(job.out_dir, samples)
    write_anomalies_csv(job.out_dir, samples, anomalies)
    summary = build_summary(
        samples,
        metrics,
        duration_s=job.duration_s,
        anomaly_indices=anomalies,
        anomaly_threshold_ms=threshold,
        simulation_status=sim.status,
        anomaly_status=found.status,
    )
    write_run_summary(job.out_dir, summary, extra={"tag": job.tag})
    return summary


def run_job(job: Job, logger: logging.Logger, force: bool) -> JobOutcome:
    if job.skip_reason:
        logger.info("SKIP %s (%s)", job.job_id, job.skip_reason)
        return JOB_SKIP, "skip", job.skip_reason, 0.0

    if not force and is_done(job.out_dir):
        logger.info("SKIP %s (already completed)", job.job_id)
        return JOB_SKIP, "already_done", "Output exists", 0.0

    logger.info(
        "RUN %s clients=%s rps=%s dur=%ss cap=%s run=%s seed=%s -> %s",
        job.job_id,
        job.clients,
        job.rps,
        job.duration_s,
        job.capacity,
        job.run_id,
        job.seed,
        job.out_dir,
    )

    start = time.time()
    try:
        summary = run_scenario(job)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Job %s failed", job.job_id)
        return JOB_FAIL, type(exc).__name__, str(exc), time.time() - start
    elapsed = time.time() - start

    if summary["simulation_status"] != STATUS_OK:
        logger.warning(
            "Job %s simulation %s at %d samples",
            job.job_id,
            summary["simulation_status"],
            int(summary["throughput"]),
        )
    return JOB_OK, None, None, elapsed


def run_job_stamped(job: Job, logger: logging.Logger, force: bool) -> Tuple[str, JobOutcome]:
    start_ts = utc_stamp()
    return start_ts, run_job(job, logger, force)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Simulate latency load scenarios and summarize them.")
    p.add_argument("--out-root", type=Path, default=Path("outputs"))
    p.add_argument("--clients", nargs="+", type=int, default=[10, 50, 100])
    p.add_argument("--rps", nargs="+", type=float, default=[1.0, 5.0])
    p.add_argument("--durations", nargs="+", type=int, default=[10, 60])
    p.add_argument("--runs", type=int, default=3)
    p.add_argument("--seed", type=int, default=None, help="Base seed; defaults to a clock-derived seed.")
    p.add_argument("--capacity", type=int, default=None, help="Sample buffer capacity per job.")
    p.add_argument("--multiplier", type=float, default=DEFAULT_ANOMALY_MULTIPLIER)
    p.add_argument("--base-latency-ms", type=float, default=DEFAULT_BASE_LATENCY_MS)
    p.add_argument("--jitter-ms", type=float, default=DEFAULT_JITTER_MS)
    p.add_argument("--spike-chance", type=float, default=DEFAULT_SPIKE_CHANCE)
    p.add_argument("--force", action="store_true")
    p.add_argument("--max-parallel", type=int, default=1)
    return p.parse_args(argv)


def build_jobs(args: argparse.Namespace, base_seed: int) -> List[Job]:
    if not 0.0 <= args.spike_chance <= 1.0:
        raise SystemExit(f"--spike-chance must be within [0, 1], got {args.spike_chance}")
    profile = LatencyProfile(
        base_latency_ms=args.base_latency_ms,
        jitter_ms=args.jitter_ms,
        spike_chance=args.spike_chance,
    )
    jobs: List[Job] = []
    for clients in args.clients:
        for rps in args.rps:
            for duration_s in args.durations:
                for run_id in range(int(args.runs)):
                    capacity = args.capacity
                    if capacity is None:
                        capacity = default_capacity(clients, rps, duration_s)
                    seed = derive_seed(base_seed, len(jobs))
                    payload = {
                        "clients": clients,
                        "rps": rps,
                        "duration_s": duration_s,
                        "capacity": capacity,
                        "multiplier": args.multiplier,
                        "base_latency_ms": profile.base_latency_ms,
                        "jitter_ms": profile.jitter_ms,
                        "spike_chance": profile.spike_chance,
                        "seed": seed,
                        "run_id": run_id,
                    }
                    tag = build_tag(payload)
                    job = Job(
                        clients=clients,
                        rps=rps,
                        duration_s=duration_s,
                        run_id=run_id,
                        seed=seed,
                        capacity=capacity,
                        multiplier=args.multiplier,
                        profile=profile,
                        tag=tag,
                        out_dir=args.out_root / tag,
                        job_id=job_hash(payload),
                    )
                    if capacity <= 0:
                        job.skip_reason = f"capacity={capacity} (must be positive)"
                    jobs.append(job)
    return jobs


def setup_logger(log_path: Path) -> logging.Logger:
    logger = logging.getLogger("orchestrator")
    logger.setLevel(logging.INFO)
    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
    )
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)
    return logger


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    out_root = args.out_root
    orch_root = ensure_dir(out_root / "_orchestration")
    logger = setup_logger(orch_root / "orchestrator.log")

    base_seed = args.seed if args.seed is not None else seed_from_clock()
    jobs = build_jobs(args, base_seed)

    timings_path = orch_root / "timings.csv"
    if not timings_path.exists():
        with timings_path.open("w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(timings_header())

    total = len(jobs)
    logger.info("Starting %d jobs (base_seed=%d, max_parallel=%d)", total, base_seed, args.max_parallel)

    results: List[Tuple[Job, str, Optional[str], Optional[str], float]] = []

    def record(idx: int, job: Job, outcome: JobOutcome, start_ts: str) -> None:
        status, error_type, error_message, duration = outcome
        results.append((job, status, error_type, error_message, duration))
        with timings_path.open("a", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(
                [
                    start_ts,
                    utc_stamp(),
                    f"{duration:.3f}",
                    status,
                    job.job_id,
                    str(job.clients),
                    f"{job.rps}",
                    str(job.duration_s),
                    str(job.run_id),
                    str(job.seed),
                    str(job.capacity),
                    str(job.out_dir),
                    error_type or "",
                    error_message or "",
                ]
            )
        logger.info(
            "[%d/%d] %s clients=%s rps=%s dur=%ss run=%s elapsed=%.3fs",
            idx,
            total,
            status,
            job.clients,
            job.rps,
            job.duration_s,
            job.run_id,
            duration,
        )

    if args.max_parallel > 1:
        # each job owns its generator, so runs do not share draw sequences
        with ThreadPoolExecutor(max_workers=args.max_parallel) as ex:
            futs = {ex.submit(run_job_stamped, job, logger, args.force): job for job in jobs}
            for idx, fut in enumerate(as_completed(futs), start=1):
                start_ts, outcome = fut.result()
                record(idx, futs[fut], outcome, start_ts)
    else:
        for idx, job in enumerate(jobs, start=1):
            start_ts, outcome = run_job_stamped(job, logger, args.force)
            record(idx, job, outcome, start_ts)

    ok_count = sum(1 for _, status, *_ in results if status == JOB_OK)
    skip_count = sum(1 for _, status, *_ in results if status == JOB_SKIP)
    fail_count = sum(1 for _, status, *_ in results if status == JOB_FAIL)

    logger.info("Completed: OK=%d FAIL=%d SKIP=%d", ok_count, fail_count, skip_count)

    failures = [r for r in results if r[1] == JOB_FAIL]
    if failures:
        logger.error("Failing jobs:")
        for job, _, error_type, error_message, _ in failures:
            logger.error("  %s %s %s: %s", job.job_id, job.tag, error_type, error_message)

    return 1 if fail_count > 0 else 0


if __name__ == "__main__":
    raise SystemExit(main())
