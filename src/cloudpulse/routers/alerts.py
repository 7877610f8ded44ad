from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Path, Query, Request
from pydantic import ValidationError

from cloudpulse.schemas.alerts import AlertListResponse, AlertOut, AlertsQuery
from cloudpulse.schemas.common import ErrorResponse
from cloudpulse.services import alerts_service
from cloudpulse.state import get_state

router = APIRouter(prefix="/api/alerts", tags=["Alerts"])


@router.get(
    "",
    response_model=AlertListResponse,
    summary="List alerts",
    description="List alerts raised by the sentinel, newest first. Filters: instanceId, severity, status.",
    operation_id="list_alerts",
)
async def list_alerts(
    request: Request,
    instance_id: Optional[str] = Query(default=None, alias="instanceId"),
    severity: Optional[str] = Query(default=None, description="critical|high"),
    status_filter: Optional[str] = Query(default=None, alias="status", description="active|acknowledged|resolved"),
    limit: int = Query(100, ge=1, le=500),
) -> AlertListResponse:
    """List alerts with filters."""
    try:
        filters = AlertsQuery(instanceId=instance_id, severity=severity, status=status_filter, limit=limit)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"invalid alert filters: {exc.errors()[0].get('msg')}")
    state = get_state(request.app)
    items = await alerts_service.list_alerts(state.store, state.config.alerts_collection, filters)
    return AlertListResponse(items=items, total=len(items))


@router.get(
    "/{alert_id}",
    response_model=AlertOut,
    responses={404: {"model": ErrorResponse}},
    summary="Get alert",
    description="Fetch a single alert by id.",
    operation_id="get_alert",
)
async def get_alert(request: Request, alert_id: str = Path(..., description="Alert id")) -> AlertOut:
    """Get an alert by id."""
    state = get_state(request.app)
    alert = await alerts_service.get_alert(state.store, state.config.alerts_collection, alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="alert not found")
    return alert
