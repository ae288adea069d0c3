"""Prometheus metrics for scoring observability.

Counters and histograms at each engine stage.
Exposed via /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, make_asgi_app

# Engine counters
score_computations_total = Counter(
    "score_computations_total",
    "Total fresh (non-cached) score computations",
    ["kind"],  # kind: focus, crash_risk
)

score_cache_events_total = Counter(
    "score_cache_events_total",
    "Result cache lookups by outcome",
    ["kind", "outcome"],  # outcome: hit, miss, error
)

intake_validation_drops_total = Counter(
    "intake_validation_drops_total",
    "Intake records dropped by the validation gate",
    ["reason"],
)

# API counters
api_requests_total = Counter(
    "api_requests_total",
    "Total API requests",
    ["endpoint", "method", "status_code"],
)

# Histograms
score_computation_duration_seconds = Histogram(
    "score_computation_duration_seconds",
    "Duration of a fresh score computation",
    ["kind"],
)

api_response_duration_seconds = Histogram(
    "api_response_duration_seconds",
    "Duration of API responses",
    ["endpoint"],
)


def create_metrics_app():
    """Create ASGI app for /metrics endpoint."""
    return make_asgi_app()
