from __future__ import annotations

import pytest

from cloudpulse.db.store import InMemoryStore
from cloudpulse.schemas.common import HealthState
from cloudpulse.services.alert_lifecycle import AlertLifecycleManager, AlertPolicy
from cloudpulse.services.notifier import Notifier

from conftest import ALERTS, INSTANCES, METRICS, FlakyStore, RecordingChannel, make_instance

TS = "2026-10-19T12:00:00.000Z"


async def _seed(store, instance: dict) -> dict:
    await store.put(INSTANCES, instance)
    return instance


def _manager(store, channel=None, policy=AlertPolicy()) -> AlertLifecycleManager:
    return AlertLifecycleManager(store, Notifier(channel), policy=policy)


@pytest.mark.parametrize(
    "previous, new, expected",
    [
        ("healthy", HealthState.unhealthy, True),
        ("healthy", HealthState.degraded, True),
        ("healthy", HealthState.healthy, False),
        ("healthy", HealthState.unknown, False),
        ("degraded", HealthState.degraded, False),
        ("unknown", HealthState.degraded, False),
        ("unhealthy", HealthState.unhealthy, True),
        ("unknown", HealthState.unhealthy, True),
        ("degraded", HealthState.unhealthy, True),
        (None, HealthState.unhealthy, True),
    ],
)
def test_default_policy_transition_table(previous, new, expected):
    assert AlertPolicy().should_alert(previous, new) is expected


def test_policy_without_realert_alerts_only_on_first_unhealthy_run():
    policy = AlertPolicy(realert_while_unhealthy=False)
    assert policy.should_alert("unhealthy", HealthState.unhealthy) is False
    assert policy.should_alert("degraded", HealthState.unhealthy) is True
    assert policy.should_alert("healthy", HealthState.unhealthy) is True


@pytest.mark.anyio
async def test_healthy_to_unhealthy_creates_critical_instance_down_alert_and_notifies():
    store = InMemoryStore()
    channel = RecordingChannel()
    inst = await _seed(store, make_instance("i-1", status="healthy", name="web-1"))

    res = await _manager(store, channel).process_result(inst, HealthState.unhealthy, "Connection timeout", 5002, TS)

    assert res.alert_generated is True
    alerts = await store.list_all(ALERTS)
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert["alertType"] == "instance_down"
    assert alert["severity"] == "critical"
    assert alert["status"] == "active"
    assert alert["resolvedAt"] is None
    assert alert["message"] == "Instance web-1 is unhealthy: Connection timeout"

    assert len(channel.published) == 1
    subject, message, severity = channel.published[0]
    assert subject == "Critical: Instance web-1 Down"
    assert "Connection timeout" in message
    assert severity == "critical"


@pytest.mark.anyio
async def test_healthy_to_degraded_creates_high_performance_alert_without_notification():
    store = InMemoryStore()
    channel = RecordingChannel()
    inst = await _seed(store, make_instance("i-1", status="healthy"))

    res = await _manager(store, channel).process_result(inst, HealthState.degraded, "High latency: 1500ms", 1500, TS)

    assert res.alert_generated is True
    assert res.alert["alertType"] == "performance_degradation"
    assert res.alert["severity"] == "high"
    assert channel.published == []


@pytest.mark.anyio
async def test_metric_and_status_are_written_even_without_alert():
    store = InMemoryStore()
    inst = await _seed(store, make_instance("i-1", status="degraded"))

    res = await _manager(store).process_result(inst, HealthState.degraded, "High latency: 1200ms", 1200, TS)

    assert res.alert_generated is False
    assert await store.list_all(ALERTS) == []

    metrics = await store.list_all(METRICS)
    assert len(metrics) == 1
    m = metrics[0]
    assert m["instanceId"] == "i-1"
    assert m["metricName"] == "health_check_latency"
    assert m["metricValue"] == 1200
    assert m["unit"] == "milliseconds"
    assert m["tags"] == {"status": "degraded", "source": "sentinel"}

    updated = await store.get(INSTANCES, "i-1")
    assert updated["status"] == "degraded"
    assert updated["lastHealthCheck"] == TS
    assert updated["updatedAt"] == TS


@pytest.mark.anyio
async def test_zero_latency_metric_is_still_written():
    store = InMemoryStore()
    inst = await _seed(store, make_instance("i-1"))
    await _manager(store).process_result(inst, HealthState.unknown, "No endpoint or Vultr status available", 0, TS)
    metrics = await store.list_all(METRICS)
    assert [m["metricValue"] for m in metrics] == [0]


@pytest.mark.anyio
async def test_persistently_unhealthy_instance_realerts_every_run():
    store = InMemoryStore()
    inst = await _seed(store, make_instance("i-1", status="unhealthy"))
    manager = _manager(store)

    first = await manager.process_result(inst, HealthState.unhealthy, "HTTP 500", 10, TS)
    second = await manager.process_result(inst, HealthState.unhealthy, "HTTP 500", 10, TS)

    assert first.alert_generated and second.alert_generated
    alerts = await store.list_all(ALERTS)
    assert len({a["id"] for a in alerts}) == 2


@pytest.mark.anyio
async def test_alert_write_failure_reports_no_alert_and_does_not_raise():
    store = FlakyStore(fail_on={("put", ALERTS)})
    channel = RecordingChannel()
    inst = await _seed(store, make_instance("i-1", status="healthy"))

    res = await _manager(store, channel).process_result(inst, HealthState.unhealthy, "boom", 0, TS)

    assert res.alert_generated is False
    assert res.alert is None
    # Nothing was committed, so nothing is announced.
    assert channel.published == []
    # Status still reflects the new state.
    assert (await store.get(INSTANCES, "i-1"))["status"] == "unhealthy"


@pytest.mark.anyio
async def test_status_update_failure_is_best_effort():
    store = FlakyStore(fail_on={("update", INSTANCES)})
    inst = await _seed(store, make_instance("i-1", status="healthy"))

    res = await _manager(store).process_result(inst, HealthState.unhealthy, "down", 0, TS)

    assert res.status_updated is False
    assert res.metric_written is True
    assert res.alert_generated is True


@pytest.mark.anyio
async def test_notification_failure_keeps_committed_alert():
    store = InMemoryStore()
    inst = await _seed(store, make_instance("i-1", status="healthy"))

    res = await _manager(store, RecordingChannel(fail=True)).process_result(
        inst, HealthState.unhealthy, "down", 0, TS
    )

    assert res.alert_generated is True
    assert len(await store.list_all(ALERTS)) == 1
