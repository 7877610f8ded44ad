from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cloudpulse.config import SentinelConfig, load_config
from cloudpulse.db.store import Store
from cloudpulse.routers import alerts, health, instances, metrics, sentinel
from cloudpulse.services.sentinel_loop import sentinel_loop
from cloudpulse.state import get_state, init_state

openapi_tags = [
    {"name": "Health", "description": "Service health, store connectivity and sentinel settings."},
    {"name": "Instances", "description": "Registration and health state of monitored instances."},
    {"name": "Metrics", "description": "Health-check latency and other stored metrics."},
    {"name": "Alerts", "description": "Alerts raised by the sentinel on unhealthy/degraded transitions."},
    {"name": "Sentinel", "description": "Trigger health-check runs and read the latest run summary."},
]

logger = logging.getLogger(__name__)


def _env_frontend_url() -> str | None:
    return os.getenv("FRONTEND_URL")


def _env_cors_extra_origins() -> List[str]:
    # Comma-separated list for preview deployments, etc.
    raw = os.getenv("CORS_ALLOW_ORIGINS") or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


def _allowed_origins() -> List[str]:
    origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    frontend_url = _env_frontend_url()
    if frontend_url:
        origins.append(frontend_url)
    origins.extend(_env_cors_extra_origins())
    # De-dupe while preserving order
    seen = set()
    return [o for o in origins if not (o in seen or seen.add(o))]


# PUBLIC_INTERFACE
def create_app(config: Optional[SentinelConfig] = None, store: Optional[Store] = None) -> FastAPI:
    """Build the API app; config defaults to the environment and store to the configured backend."""
    app = FastAPI(
        title="CloudPulse Sentinel API",
        description=(
            "Health-check engine for monitored cloud instances. Probes every instance's endpoint, "
            "combines the result with provider status, persists health metrics and instance status, "
            "and raises alerts on unhealthy or degraded transitions."
        ),
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    init_state(app, config or load_config(), store=store)

    @app.on_event("startup")
    async def _on_startup() -> None:
        """Startup hook: connect to Mongo, ensure indexes, and start the sentinel loop when enabled."""
        state = get_state(app)
        cfg = state.config

        if state.mongo is not None:
            # Connect + verify early so a misconfigured store doesn't silently break every run.
            state.mongo.connect()
            if not state.mongo.ping():
                raise RuntimeError("Mongo connectivity check failed during startup. Verify BACKEND_MONGO_URI.")
            state.mongo.init_indexes(
                instances=cfg.instances_collection,
                metrics=cfg.metrics_collection,
                alerts=cfg.alerts_collection,
            )

        if cfg.sentinel_loop_enabled:
            app.state._sentinel_shutdown = asyncio.Event()
            state.sentinel_task = asyncio.create_task(sentinel_loop(state, app.state._sentinel_shutdown))

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        """Shutdown hook: stop the sentinel loop and close Mongo connections."""
        state = get_state(app)

        sentinel_shutdown = getattr(app.state, "_sentinel_shutdown", None)
        if sentinel_shutdown is not None:
            sentinel_shutdown.set()
        task = state.sentinel_task
        if task is not None:
            try:
                await asyncio.wait_for(task, timeout=5.0)
            except Exception:
                logger.exception("Error stopping sentinel loop task")

        if state.mongo is not None:
            state.mongo.close()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(instances.router)
    app.include_router(metrics.router)
    app.include_router(alerts.router)
    app.include_router(sentinel.router)
    return app
