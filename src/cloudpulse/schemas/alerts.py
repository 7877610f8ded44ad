from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from cloudpulse.schemas.common import Severity

AlertType = Literal["instance_down", "performance_degradation"]
AlertStatus = Literal["active", "acknowledged", "resolved"]


class AlertOut(BaseModel):
    """Response model for an alert record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Alert id.")
    instance_id: str = Field(..., description="Instance this alert applies to.", alias="instanceId")
    alert_type: str = Field(..., description="instance_down | performance_degradation.", alias="alertType")
    severity: Severity = Field(..., description="critical for unhealthy instances, high for degraded.")
    message: str = Field(..., description="Human-readable alert message.")
    status: str = Field("active", description="Lifecycle status; the sentinel only creates 'active' alerts.")
    created_at: str = Field(..., description="ISO creation timestamp.", alias="createdAt")
    updated_at: str = Field(..., description="ISO last-update timestamp.", alias="updatedAt")
    resolved_at: Optional[str] = Field(default=None, description="ISO resolution timestamp.", alias="resolvedAt")


class AlertListResponse(BaseModel):
    """Envelope for listing alerts."""

    items: List[AlertOut] = Field(..., description="Alerts, newest first.")
    total: int = Field(..., ge=0, description="Total count returned.")


class AlertsQuery(BaseModel):
    """Filter/pagination model for listing alerts (used by router query params)."""

    model_config = ConfigDict(populate_by_name=True)

    instance_id: Optional[str] = Field(default=None, description="Filter by instanceId.", alias="instanceId")
    severity: Optional[Severity] = Field(default=None, description="Filter by severity.")
    status: Optional[AlertStatus] = Field(default=None, description="Filter by status.")
    limit: int = Field(100, ge=1, le=500, description="Max number of alerts to return.")
