from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RunResult(BaseModel):
    """
    Aggregate outcome of one sentinel run.

    Besides healthy/unhealthy/degraded/errors there is an `unknown` bucket for instances
    with neither an endpoint nor provider status, so that every instance lands in exactly
    one bucket. The four classic buckets sum to `total` only when `unknown` is 0.
    """

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(0, ge=0, description="Number of instances considered in the run.")
    healthy: int = Field(0, ge=0)
    unhealthy: int = Field(0, ge=0)
    degraded: int = Field(0, ge=0)
    unknown: int = Field(0, ge=0, description="Instances with neither an endpoint nor provider status.")
    errors: int = Field(0, ge=0, description="Instances whose processing raised an uncaught exception.")
    alerts_generated: int = Field(0, ge=0, alias="alertsGenerated")
    message: Optional[str] = Field(default=None, description="Summary message, e.g. 'No instances to monitor'.")
    started_at: Optional[str] = Field(default=None, alias="startedAt")
    finished_at: Optional[str] = Field(default=None, alias="finishedAt")


class SentinelSettingsResponse(BaseModel):
    """Effective sentinel configuration (no secrets) for troubleshooting."""

    provider_enabled: bool = Field(..., description="Whether a provider API key is configured.")
    provider_instance_type: str = Field(..., description="Instance type whose provider status is consulted.")
    notifications_enabled: bool = Field(..., description="Whether a notification topic is configured.")
    health_check_timeout_ms: int = Field(..., description="Per-probe timeout (ms).")
    health_check_max_redirects: int = Field(..., description="Redirect hops a probe will follow.")
    healthy_latency_ms: int = Field(..., description="Latency below which a probe counts as healthy.")
    degraded_latency_ms: int = Field(..., description="Latency at/above which a probe counts as very high latency.")
    realert_while_unhealthy: bool = Field(..., description="Whether persistently unhealthy instances re-alert each run.")
    loop_enabled: bool = Field(..., description="Whether the in-process periodic loop is running.")
    interval_sec: int = Field(..., description="Loop cadence (seconds).")
    timestamp: str = Field(..., description="UTC timestamp when the settings were produced (ISO string).")
