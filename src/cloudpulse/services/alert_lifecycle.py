from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from cloudpulse.db.store import Store
from cloudpulse.schemas.common import HealthState, Outcome, Severity
from cloudpulse.schemas.metrics import HEALTH_CHECK_METRIC
from cloudpulse.services.notifier import Notifier

logger = logging.getLogger(__name__)

METRIC_SOURCE = "sentinel"


@dataclass(frozen=True)
class AlertPolicy:
    """
    When to raise an alert.

    A healthy -> unhealthy/degraded transition always alerts. With
    `realert_while_unhealthy` an unhealthy instance alerts on every run, whatever
    its previous state; without it only the first unhealthy run does.
    """

    realert_while_unhealthy: bool = True

    def should_alert(self, previous: Optional[str], new: HealthState) -> bool:
        if previous == HealthState.healthy.value and new in (HealthState.unhealthy, HealthState.degraded):
            return True
        if new == HealthState.unhealthy:
            return self.realert_while_unhealthy or previous != HealthState.unhealthy.value
        return False


@dataclass(frozen=True)
class LifecycleResult:
    alert_generated: bool
    alert: Optional[dict] = None
    metric_written: bool = True
    status_updated: bool = True


def build_health_metric(instance_id: str, latency_ms: int, state: HealthState, timestamp: str) -> dict:
    return {
        "id": f"{instance_id}-healthcheck-{uuid4().hex}",
        "instanceId": instance_id,
        "timestamp": timestamp,
        "metricName": HEALTH_CHECK_METRIC,
        "metricValue": latency_ms,
        "unit": "milliseconds",
        "tags": {"status": state.value, "source": METRIC_SOURCE},
        "createdAt": timestamp,
    }


def build_alert(instance: dict, state: HealthState, error_message: Optional[str], timestamp: str) -> dict:
    unhealthy = state == HealthState.unhealthy
    name = instance.get("name") or instance["id"]
    message = f"Instance {name} is {state.value}"
    if error_message:
        message = f"{message}: {error_message}"
    return {
        "id": f"alert-{instance['id']}-{uuid4().hex}",
        "instanceId": instance["id"],
        "alertType": "instance_down" if unhealthy else "performance_degradation",
        "severity": Severity.critical.value if unhealthy else Severity.high.value,
        "message": message,
        "status": "active",
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "resolvedAt": None,
    }


class AlertLifecycleManager:
    """Persists the outcome of one instance health check and raises alerts on qualifying transitions."""

    def __init__(
        self,
        store: Store,
        notifier: Notifier,
        *,
        instances_collection: str = "instances",
        metrics_collection: str = "metrics",
        alerts_collection: str = "alerts",
        policy: AlertPolicy = AlertPolicy(),
    ):
        self.store = store
        self.notifier = notifier
        self.instances_collection = instances_collection
        self.metrics_collection = metrics_collection
        self.alerts_collection = alerts_collection
        self.policy = policy

    async def record_metric(self, instance_id: str, latency_ms: int, state: HealthState, timestamp: str) -> Outcome[bool]:
        metric = build_health_metric(instance_id, latency_ms, state, timestamp)
        try:
            await self.store.put(self.metrics_collection, metric)
        except Exception as exc:
            logger.exception("Failed to store health check metric instanceId=%s", instance_id)
            return Outcome.soft_error(False, str(exc))
        return Outcome.success(True)

    async def update_status(self, instance_id: str, state: HealthState, timestamp: str) -> Outcome[bool]:
        try:
            updated = await self.store.update(
                self.instances_collection,
                instance_id,
                {"status": state.value, "lastHealthCheck": timestamp, "updatedAt": timestamp},
            )
        except Exception as exc:
            logger.exception("Failed to update instance status instanceId=%s", instance_id)
            return Outcome.soft_error(False, str(exc))
        if updated is None:
            logger.warning("Instance disappeared before status update instanceId=%s", instance_id)
            return Outcome.soft_error(False, "instance not found")
        logger.info("Updated instance status instanceId=%s status=%s", instance_id, state.value)
        return Outcome.success(True)

    async def raise_alert(
        self, instance: dict, state: HealthState, error_message: Optional[str], timestamp: str
    ) -> Outcome[Optional[dict]]:
        alert = build_alert(instance, state, error_message, timestamp)
        try:
            await self.store.put(self.alerts_collection, alert)
        except Exception as exc:
            logger.exception("Failed to generate alert instanceId=%s", instance["id"])
            return Outcome.soft_error(None, str(exc))

        logger.info("Alert generated instanceId=%s alertType=%s", instance["id"], alert["alertType"])

        # The alert is already committed; notification is best-effort on top of it.
        if state == HealthState.unhealthy and self.notifier.configured:
            name = instance.get("name") or instance["id"]
            await self.notifier.notify(
                f"Critical: Instance {name} Down",
                f"Instance {name} ({instance['id']}) is unhealthy.\n\nError: {error_message}\nTime: {timestamp}",
                Severity.critical.value,
            )
        return Outcome.success(alert)

    # PUBLIC_INTERFACE
    async def process_result(
        self,
        instance: dict,
        new_state: HealthState,
        error_message: Optional[str],
        latency_ms: int,
        timestamp: str,
    ) -> LifecycleResult:
        """
        Record a health-check outcome for one instance.

        Always appends a health metric and updates the instance's status fields, then
        creates an alert if the transition qualifies. Storage failures are logged and
        reflected in the result, never raised.
        """
        instance_id = instance["id"]
        previous = instance.get("status")

        metric = await self.record_metric(instance_id, latency_ms, new_state, timestamp)
        status = await self.update_status(instance_id, new_state, timestamp)

        if not self.policy.should_alert(previous, new_state):
            return LifecycleResult(alert_generated=False, metric_written=metric.ok, status_updated=status.ok)

        alert = await self.raise_alert(instance, new_state, error_message, timestamp)
        return LifecycleResult(
            alert_generated=alert.ok,
            alert=alert.value,
            metric_written=metric.ok,
            status_updated=status.ok,
        )
