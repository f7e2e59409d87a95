"""Prometheus scrape endpoint.

Plain-text exposition format, not JSON.  Besides the HTTP metrics, the
interesting series for this service are the access-policy counters:

  access_denials_total{reason="cross_tenant"} 3.0
  list_queries_total{entity="course"} 1432.0

Restrict /metrics to the Prometheus server in production: denial counts
by reason are exactly what someone probing tenant boundaries would like
to watch.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
