"""
Project lexicon constants.

OK        = every requested value was written
TRUNCATED = output capacity was reached before the operation finished
INVALID   = nothing was written (missing buffer, non-positive count or capacity)
"""

# Bounded-write statuses
STATUS_OK        = "OK"
STATUS_TRUNCATED = "TRUNCATED"
STATUS_INVALID   = "INVALID_INPUT"

# Job statuses (orchestrator)
JOB_OK   = "OK"
JOB_FAIL = "FAIL"
JOB_SKIP = "SKIP"

# Metric order of the four-value metrics vector
METRIC_MEAN       = "mean_ms"
METRIC_P50        = "p50_ms"
METRIC_P95        = "p95_ms"
METRIC_THROUGHPUT = "throughput"

METRIC_KEYS = (METRIC_MEAN, METRIC_P50, METRIC_P95, METRIC_THROUGHPUT)

# Run artifacts
ART_MANIFEST  = "manifest.json"
ART_SUMMARY   = "summary.json"
ART_SAMPLES   = "samples.csv"
ART_ANOMALIES = "anomalies.csv"
