"""Application metrics using the Prometheus client library.

This module defines all metrics in one place: a single inventory of
everything the service measures.  Other modules import specific metrics
and increment/observe them at the point of action.

HTTP METRICS
--------------
Populated by MetricsMiddleware for every request:
  http_requests_total            counter    method, endpoint, status_code
  http_request_duration_seconds  histogram  method, endpoint
  http_active_requests           gauge

ACCESS POLICY METRICS
-----------------------
Cross-tenant lookups are answered with 404 on purpose, so the HTTP
status code alone cannot tell an operator whether someone is probing
other tenants.  access_denials_total keeps the real reason:

  reason="cross_tenant"     target record belongs to another tenant
  reason="ownership"        record outside the principal's own-record scope
  reason="role"             role lacks the operation
  reason="include_deleted"  non-super-admin asked for deleted records
  reason="create_tenant"    create aimed at another tenant

A steady trickle of cross_tenant denials from one user is worth an alert:
   rate(access_denials_total{reason="cross_tenant"}[5m]) > 0
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
    # Listing endpoints issue two queries (count + page); 250ms covers
    # both on a warm connection pool.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Access policy metrics
# ---------------------------------------------------------------------------

ACCESS_DENIALS = Counter(
    "access_denials_total",
    "Requests refused by the tenant access policy, by internal reason",
    ["reason"],
)

LIST_QUERIES = Counter(
    "list_queries_total",
    "Paged list queries executed, by entity",
    ["entity"],
)
