from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request

from cloudpulse.schemas.metrics import MetricListResponse
from cloudpulse.services import metrics_service
from cloudpulse.state import get_state

router = APIRouter(prefix="/api/metrics", tags=["Metrics"])


@router.get(
    "",
    response_model=MetricListResponse,
    summary="List metrics",
    description="List metric records newest first, optionally for one instance and/or one metric name.",
    operation_id="list_metrics",
)
async def list_metrics(
    request: Request,
    instance_id: Optional[str] = Query(default=None, alias="instanceId"),
    metric_name: Optional[str] = Query(default=None, alias="metricName", description="e.g. health_check_latency"),
    limit: int = Query(100, ge=1, le=1000),
) -> MetricListResponse:
    """List metric records."""
    state = get_state(request.app)
    items = await metrics_service.list_metrics(
        state.store,
        state.config.metrics_collection,
        instance_id=instance_id,
        metric_name=metric_name,
        limit=limit,
    )
    return MetricListResponse(items=items, total=len(items))
