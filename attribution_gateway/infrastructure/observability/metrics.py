"""Prometheus metrics for monitoring match rates, store health, and matcher runs"""

from prometheus_client import Counter, Histogram

# Report metrics
report_counter = Counter(
    "attribution_report_total",
    "Attribution reports served",
    ["outcome"],  # fresh | stale
)

match_rate_bucket_counter = Counter(
    "attribution_match_rate_bucket",
    "Reports by truth-only match rate bucket",
    ["bucket"],  # 0-25%, 25-50%, 50-75%, 75-100%
)

# Store API metrics
store_fetch_failures_counter = Counter(
    "store_fetch_failures_total",
    "Failed remote store calls",
    ["kind"],  # network | server | validation
)

# Write path
confirmation_counter = Counter(
    "attribution_confirmations_total",
    "Manual mapping confirmations",
    ["outcome"],  # created | conflict | failed
)

duplicate_submission_counter = Counter(
    "attribution_duplicate_submissions_total",
    "Actions rejected because an identical one was in flight",
    ["action"],  # confirm | matcher_run
)

# Matcher metrics
matcher_latency_histogram = Histogram(
    "matcher_run_latency_seconds",
    "Remote matcher run duration",
    buckets=[1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0],
)

matcher_run_counter = Counter(
    "matcher_runs_total",
    "Remote matcher runs",
    ["outcome"],  # succeeded | failed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_report(match_rate_percent: float, stale: bool) -> None:
    """Record report metrics for monitoring attribution coverage"""
    report_counter.labels(outcome="stale" if stale else "fresh").inc()

    if match_rate_percent < 25:
        bucket = "0-25%"
    elif match_rate_percent < 50:
        bucket = "25-50%"
    elif match_rate_percent < 75:
        bucket = "50-75%"
    else:
        bucket = "75-100%"

    match_rate_bucket_counter.labels(bucket=bucket).inc()
