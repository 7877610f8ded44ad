from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI

from cloudpulse.config import SentinelConfig
from cloudpulse.db.mongo import MongoManager
from cloudpulse.db.store import InMemoryStore, MongoStore, Store
from cloudpulse.schemas.sentinel import RunResult
from cloudpulse.services.alert_lifecycle import AlertLifecycleManager, AlertPolicy
from cloudpulse.services.health_classifier import LatencyThresholds
from cloudpulse.services.health_probe import HealthProbe
from cloudpulse.services.instances_service import InstanceDirectory
from cloudpulse.services.notifier import NotificationChannel, Notifier, SnsChannel
from cloudpulse.services.provider_client import VultrClient
from cloudpulse.services.sentinel import Sentinel


@dataclass
class AppState:
    """Typed app.state container for shared collaborators."""

    config: SentinelConfig
    store: Store
    sentinel: Sentinel
    mongo: Optional[MongoManager] = None
    last_run: Optional[RunResult] = None
    sentinel_task: Optional[object] = None  # asyncio.Task, but kept loose to avoid import cycles


# PUBLIC_INTERFACE
def build_store(config: SentinelConfig) -> tuple[Store, Optional[MongoManager]]:
    """Create the configured Store (and its MongoManager when Mongo-backed)."""
    if config.store_backend == "memory":
        return InMemoryStore(), None
    assert config.mongo_uri is not None
    mongo = MongoManager(config.mongo_uri, config.mongo_db_name)
    return MongoStore(mongo), mongo


# PUBLIC_INTERFACE
def build_sentinel(
    config: SentinelConfig,
    store: Store,
    *,
    channel: Optional[NotificationChannel] = None,
    provider: Optional[VultrClient] = None,
    probe: Optional[HealthProbe] = None,
) -> Sentinel:
    """Wire a Sentinel from config; explicit collaborators override the config-derived ones."""
    if channel is None and config.sns_topic_arn:
        channel = SnsChannel(config.sns_topic_arn, region=config.aws_region)
    notifier = Notifier(channel)

    lifecycle = AlertLifecycleManager(
        store,
        notifier,
        instances_collection=config.instances_collection,
        metrics_collection=config.metrics_collection,
        alerts_collection=config.alerts_collection,
        policy=AlertPolicy(realert_while_unhealthy=config.realert_while_unhealthy),
    )
    return Sentinel(
        directory=InstanceDirectory(store, config.instances_collection),
        provider=provider
        or VultrClient(config.vultr_api_key, base_url=config.vultr_api_base, timeout_sec=config.vultr_timeout_sec),
        probe=probe
        or HealthProbe(timeout_ms=config.health_check_timeout_ms, max_redirects=config.health_check_max_redirects),
        lifecycle=lifecycle,
        notifier=notifier,
        thresholds=LatencyThresholds(healthy_ms=config.healthy_latency_ms, degraded_ms=config.degraded_latency_ms),
        provider_instance_type=config.provider_instance_type,
    )


# PUBLIC_INTERFACE
def init_state(app: FastAPI, config: SentinelConfig, store: Optional[Store] = None) -> AppState:
    """Initialize app.state with the store, the wired sentinel and config."""
    mongo: Optional[MongoManager] = None
    if store is None:
        store, mongo = build_store(config)
    state = AppState(config=config, store=store, sentinel=build_sentinel(config, store), mongo=mongo)
    app.state.state = state
    return state


# PUBLIC_INTERFACE
def get_state(app: FastAPI) -> AppState:
    """Fetch typed AppState from a FastAPI app."""
    return app.state.state  # type: ignore[attr-defined]
