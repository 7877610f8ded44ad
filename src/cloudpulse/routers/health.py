from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from cloudpulse.schemas.common import HealthResponse, isoformat, utc_now
from cloudpulse.schemas.sentinel import SentinelSettingsResponse
from cloudpulse.state import get_state

router = APIRouter(tags=["Health"])


class StoreConnectivityResponse(BaseModel):
    """Response model for backend↔store connectivity diagnostics."""

    ok: bool = Field(..., description="Whether the backend can reach its store.")
    backend: str = Field(..., description="Configured store backend (mongo|memory).")
    mongo_uri_source: str = Field(..., description="Which source provided the effective MongoDB URI.")
    timestamp: str = Field(..., description="UTC timestamp when the check was performed (ISO string).")
    meta: Dict[str, Any] = Field(default_factory=dict, description="Optional debug metadata.")


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic service liveness check used by deployment and the dashboard.",
    operation_id="health_check",
)
def health_check() -> HealthResponse:
    """Return service liveness status."""
    return HealthResponse(status="ok", message="Healthy", timestamp=utc_now())


@router.get(
    "/api/health/store",
    response_model=StoreConnectivityResponse,
    summary="Store connectivity check",
    description="Pings the backing store and reports which backend is configured.",
    operation_id="store_connectivity_check",
)
async def store_connectivity_check(request: Request) -> StoreConnectivityResponse:
    """Connectivity check endpoint to validate backend↔store."""
    state = get_state(request.app)
    ok = await state.store.ping()
    return StoreConnectivityResponse(
        ok=ok,
        backend=state.config.store_backend,
        mongo_uri_source=state.config.mongo_uri_source,
        timestamp=isoformat(utc_now()),
        meta={"db": state.config.mongo_db_name},
    )


@router.get(
    "/api/health/sentinel",
    response_model=SentinelSettingsResponse,
    summary="Sentinel settings",
    description="Reports effective probe thresholds, alert policy and scheduling (no secrets).",
    operation_id="sentinel_settings",
)
def sentinel_settings(request: Request) -> SentinelSettingsResponse:
    """Return effective sentinel configuration."""
    cfg = get_state(request.app).config
    return SentinelSettingsResponse(
        provider_enabled=bool(cfg.vultr_api_key),
        provider_instance_type=cfg.provider_instance_type,
        notifications_enabled=bool(cfg.sns_topic_arn),
        health_check_timeout_ms=int(cfg.health_check_timeout_ms),
        health_check_max_redirects=int(cfg.health_check_max_redirects),
        healthy_latency_ms=int(cfg.healthy_latency_ms),
        degraded_latency_ms=int(cfg.degraded_latency_ms),
        realert_while_unhealthy=bool(cfg.realert_while_unhealthy),
        loop_enabled=bool(cfg.sentinel_loop_enabled),
        interval_sec=int(cfg.sentinel_interval_sec),
        timestamp=isoformat(utc_now()),
    )
