"""Application metrics using the Prometheus client library.

Every metric the service exposes is defined here; other modules import
the one they need and increment/observe it where the action happens.

  COUNTER   - only goes up (requests served, links generated)
  GAUGE     - goes up and down (in-flight requests, open portal sessions)
  HISTOGRAM - observations bucketed by value (request duration)

Prometheus scrapes GET /metrics and computes rates and percentiles on
its side, e.g.

  rate(assessment_autosave_total{result="failed"}[5m])
  histogram_quantile(0.95, rate(http_request_duration_seconds_bucket[5m]))
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Assessment metrics
# ---------------------------------------------------------------------------

LINKS_GENERATED = Counter(
    "assessment_links_generated_total",
    "Assessment links generated by language",
    ["language"],
)

LINK_CODE_COLLISIONS = Counter(
    "assessment_link_code_collisions_total",
    "Generated link codes rejected because the code already existed",
)

ASSIGNMENT_TRANSITIONS = Counter(
    "assessment_assignment_transitions_total",
    "Assignment status updates by target status",
    ["status"],  # pending|in_progress|paused|completed
)

AUTOSAVE_OPERATIONS = Counter(
    "assessment_autosave_total",
    "Session autosave attempts by result",
    ["result"],  # saved|retry|failed
)

SESSION_COMPLETIONS = Counter(
    "assessment_session_completions_total",
    "Portal sessions that reached the completed state",
    ["reason"],  # answered|timeout
)

ACTIVE_SESSIONS = Gauge(
    "assessment_active_sessions",
    "Portal session runtimes currently held in memory",
)
