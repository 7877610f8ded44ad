from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from cloudpulse.schemas.common import HealthState, Severity, isoformat, utc_now
from cloudpulse.schemas.sentinel import RunResult
from cloudpulse.services.alert_lifecycle import AlertLifecycleManager
from cloudpulse.services.health_classifier import Classification, LatencyThresholds, classify
from cloudpulse.services.health_probe import HealthProbe, is_probeable
from cloudpulse.services.instances_service import InstanceDirectory
from cloudpulse.services.notifier import Notifier
from cloudpulse.services.provider_client import VultrClient

logger = logging.getLogger(__name__)

NO_INSTANCES_MESSAGE = "No instances to monitor"


@dataclass(frozen=True)
class InstanceCheck:
    instance_id: str
    state: HealthState
    latency_ms: int
    error_message: Optional[str]
    alert_generated: bool


class Sentinel:
    """
    One health-check pass over every monitored instance.

    Collaborators are injected so each can be swapped for a fake. Instances are
    checked concurrently and independently: one instance failing never cancels or
    delays the others.
    """

    def __init__(
        self,
        directory: InstanceDirectory,
        provider: VultrClient,
        probe: HealthProbe,
        lifecycle: AlertLifecycleManager,
        notifier: Notifier,
        *,
        thresholds: LatencyThresholds = LatencyThresholds(),
        provider_instance_type: str = "vultr-compute",
    ):
        self.directory = directory
        self.provider = provider
        self.probe = probe
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.thresholds = thresholds
        self.provider_instance_type = provider_instance_type

    def _provider_status_for(self, instance: dict, provider_statuses: Dict[str, str]) -> Optional[str]:
        if instance.get("type") != self.provider_instance_type:
            return None
        return provider_statuses.get(instance["id"])

    async def _classify_instance(
        self, instance: dict, provider_status: Optional[str]
    ) -> tuple[Classification, int]:
        endpoint = instance.get("endpoint")
        if not is_probeable(endpoint):
            return classify(None, provider_status, False, self.thresholds), 0

        try:
            result = await self.probe.probe(endpoint)
        except Exception as exc:
            logger.exception("Health probe error instanceId=%s", instance["id"])
            return Classification(HealthState.unhealthy, str(exc) or type(exc).__name__), 0
        return classify(result, provider_status, True, self.thresholds), result.latency_ms

    # PUBLIC_INTERFACE
    async def check_instance(self, instance: dict, provider_statuses: Dict[str, str]) -> InstanceCheck:
        """Probe, classify and record one instance."""
        started = time.monotonic()
        timestamp = isoformat(utc_now())
        instance_id = instance["id"]
        logger.info("Performing health check for %s instanceId=%s", instance.get("name"), instance_id)

        provider_status = self._provider_status_for(instance, provider_statuses)
        classification, latency_ms = await self._classify_instance(instance, provider_status)

        outcome = await self.lifecycle.process_result(
            instance, classification.state, classification.error_message, latency_ms, timestamp
        )

        logger.info(
            "Health check completed instanceId=%s status=%s latencyMs=%s durationMs=%s",
            instance_id,
            classification.state.value,
            latency_ms,
            int((time.monotonic() - started) * 1000),
        )
        return InstanceCheck(
            instance_id=instance_id,
            state=classification.state,
            latency_ms=latency_ms,
            error_message=classification.error_message,
            alert_generated=outcome.alert_generated,
        )

    async def _check_all(self, instances: List[dict], provider_statuses: Dict[str, str]) -> RunResult:
        settled = await asyncio.gather(
            *(self.check_instance(inst, provider_statuses) for inst in instances),
            return_exceptions=True,
        )

        result = RunResult(total=len(instances))
        for inst, outcome in zip(instances, settled):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    # Cancellation / interpreter exit must not be swallowed.
                    raise outcome
                logger.error("Health check failed instanceId=%s error=%s", inst.get("id"), outcome)
                result.errors += 1
                continue
            if outcome.state == HealthState.healthy:
                result.healthy += 1
            elif outcome.state == HealthState.unhealthy:
                result.unhealthy += 1
            elif outcome.state == HealthState.degraded:
                result.degraded += 1
            else:
                result.unknown += 1
            if outcome.alert_generated:
                result.alerts_generated += 1
        return result

    async def _run(self) -> RunResult:
        started_at = isoformat(utc_now())

        instances = (await self.directory.list_instances()).value
        logger.info("Found %s instances to monitor", len(instances))
        if not instances:
            logger.warning(NO_INSTANCES_MESSAGE)
            return RunResult(message=NO_INSTANCES_MESSAGE, startedAt=started_at, finishedAt=isoformat(utc_now()))

        provider_statuses = (await self.provider.fetch_instance_statuses()).value

        result = await self._check_all(instances, provider_statuses)
        result.started_at = started_at
        result.finished_at = isoformat(utc_now())
        return result

    # PUBLIC_INTERFACE
    async def run(self) -> RunResult:
        """
        Run one sentinel pass and return the aggregate RunResult.

        Per-instance failures are counted in `errors`. Anything that escapes the run
        itself triggers a critical notification and is re-raised.
        """
        logger.info("Sentinel run started")
        try:
            result = await self._run()
        except Exception as exc:
            logger.exception("Sentinel run failed")
            await self.notifier.notify(
                "Sentinel Run Error",
                f"Critical error in Sentinel monitoring: {exc}",
                Severity.critical.value,
            )
            raise

        logger.info("Sentinel run completed results=%s", result.model_dump(by_alias=True, exclude_none=True))
        return result
