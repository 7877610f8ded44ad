from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from cloudpulse.schemas.common import HealthState


class InstanceBase(BaseModel):
    """Registration fields for a monitored instance."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Friendly display name for the instance.")
    type: str = Field(..., description="Instance type (e.g. 'vultr-compute', 'aws-ec2', 'service').")
    region: str = Field(..., description="Region the instance runs in.")
    endpoint: Optional[str] = Field(
        default="",
        description="HTTP(S) URL probed by the sentinel; empty means no active probe.",
    )


class InstanceCreate(InstanceBase):
    """Request body for registering an instance."""

    id: Optional[str] = Field(
        default=None,
        description="Optional stable id (e.g. the provider's instance id); generated when omitted.",
    )
    status: HealthState = Field(HealthState.unknown, description="Initial health state.")


class InstanceOut(InstanceBase):
    """Response model representing a monitored instance."""

    id: str = Field(..., description="Stable instance identifier.")
    status: HealthState = Field(HealthState.unknown, description="Health state from the latest sentinel run.")
    last_health_check: Optional[str] = Field(
        default=None, description="ISO timestamp of the latest health check.", alias="lastHealthCheck"
    )
    created_at: Optional[str] = Field(default=None, description="ISO creation timestamp.", alias="createdAt")
    updated_at: Optional[str] = Field(default=None, description="ISO last-update timestamp.", alias="updatedAt")


class InstanceListResponse(BaseModel):
    """Envelope for listing instances."""

    items: List[InstanceOut] = Field(..., description="List of monitored instances.")
    total: int = Field(..., ge=0, description="Total number of instances returned.")
