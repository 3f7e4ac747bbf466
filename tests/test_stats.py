from __future__ import annotations

import math

import numpy as np
import pytest

import loadkit.stats as stats
from loadkit.lexicon import STATUS_INVALID, STATUS_OK
from loadkit.rng import Lcg64
from loadkit.simulation import run_simulation
from loadkit.stats import Metrics, compute_metrics, compute_metrics_into, nearest_rank, summarize_latency_ms


def test_metrics_for_one_to_ten() -> None:
    m = compute_metrics([float(x) for x in range(1, 11)], 10)
    assert m == Metrics(mean=5.5, p50=5.0, p95=9.0, throughput=10.0)
    assert m.as_tuple() == (5.5, 5.0, 9.0, 10.0)


def test_metrics_sort_a_copy() -> None:
    buf = np.array([9.0, 1.0, 7.0, 3.0, 5.0])
    m = compute_metrics(buf, 5)
    assert m.p50 == 5.0
    assert m.p95 == 7.0
    np.testing.assert_array_equal(buf, [9.0, 1.0, 7.0, 3.0, 5.0])


def test_nearest_rank_does_not_interpolate() -> None:
    ordered = np.array([10.0, 20.0])
    assert nearest_rank(ordered, 0.5) == 10.0
    assert nearest_rank(ordered, 0.95) == 10.0
    assert nearest_rank(np.array([4.0]), 0.95) == 4.0


def test_count_limits_the_window() -> None:
    m = compute_metrics([1.0, 2.0, 3.0, 1000.0], 3)
    assert m.mean == 2.0
    assert m.throughput == 3.0


def test_count_past_buffer_is_clamped() -> None:
    m = compute_metrics([2.0, 4.0], 10)
    assert m.throughput == 2.0
    assert m.mean == 3.0


def test_count_defaults_to_buffer_length() -> None:
    assert compute_metrics([1.0, 2.0, 3.0]).throughput == 3.0


@pytest.mark.parametrize("buffer, count", [(None, 3), ([1.0, 2.0], 0), ([1.0, 2.0], -1), ([], None)])
def test_no_result_for_invalid_input(buffer, count) -> None:
    assert compute_metrics(buffer, count) is None


def test_degraded_result_when_sort_buffer_unavailable(monkeypatch) -> None:
    def _no_memory(a: np.ndarray) -> np.ndarray:
        raise MemoryError

    monkeypatch.setattr(stats, "_sorted_copy", _no_memory)
    m = compute_metrics([float(x) for x in range(1, 11)], 10)
    assert m == Metrics(mean=5.5, p50=0.0, p95=0.0, throughput=0.0)


def test_compute_metrics_into_writes_fixed_order() -> None:
    out = [0.0] * 4
    result = compute_metrics_into([float(x) for x in range(1, 11)], 10, out)
    assert result.status == STATUS_OK
    assert result.written == 4
    assert out == [5.5, 5.0, 9.0, 10.0]


def test_compute_metrics_into_invalid_leaves_output() -> None:
    out = np.full(4, -1.0)
    assert compute_metrics_into(None, 3, out).status == STATUS_INVALID
    assert compute_metrics_into([1.0], 0, out).status == STATUS_INVALID
    assert compute_metrics_into([1.0], 1, None).status == STATUS_INVALID
    assert compute_metrics_into([1.0], 1, [0.0, 0.0]).status == STATUS_INVALID
    np.testing.assert_array_equal(out, [-1.0] * 4)


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5])
def test_p50_never_exceeds_p95(seed: int) -> None:
    samples = run_simulation(17, 1.3, 7, rng=Lcg64(seed))
    m = compute_metrics(samples, samples.size)
    assert m.p50 <= m.p95
    assert m.throughput == samples.size


def test_summarize_latency_ms_extended_percentiles() -> None:
    values = [float(x) for x in range(1, 101)] + [float("nan")]
    s = summarize_latency_ms(values, duration_s=10.0)
    assert s["n"] == 100.0
    assert s["p50_ms"] == 50.0
    assert s["p90_ms"] == 90.0
    assert s["p95_ms"] == 95.0
    assert s["p99_ms"] == 99.0
    assert s["max_ms"] == 100.0
    assert s["mean_ms"] == pytest.approx(50.5)
    assert s["throughput_rps"] == 10.0


def test_summarize_latency_ms_empty() -> None:
    s = summarize_latency_ms([])
    assert s["n"] == 0.0
    assert math.isnan(s["p50_ms"])
    assert math.isnan(s["throughput_rps"])
