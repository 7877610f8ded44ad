from __future__ import annotations

import os
from collections.abc import AsyncIterator
from dataclasses import replace
from typing import Dict, List, Optional, Tuple, Union

import httpx
import pytest

# Tests never talk to a real Mongo, Vultr or SNS.
os.environ["SENTINEL_STORE_BACKEND"] = "memory"
for _name in ("VULTR_API_KEY", "SNS_TOPIC_ARN", "SENTINEL_LOOP_ENABLED"):
    os.environ.pop(_name, None)

from cloudpulse.config import SentinelConfig, load_config  # noqa: E402
from cloudpulse.db.store import InMemoryStore  # noqa: E402
from cloudpulse.schemas.common import Outcome  # noqa: E402
from cloudpulse.services.health_probe import ProbeResult  # noqa: E402
from cloudpulse.state import build_sentinel  # noqa: E402

INSTANCES = "instances"
METRICS = "metrics"
ALERTS = "alerts"


class FakeProbe:
    """Returns canned ProbeResults (or raises canned exceptions) per endpoint."""

    def __init__(self, results: Optional[Dict[str, Union[ProbeResult, Exception]]] = None):
        self.results: Dict[str, Union[ProbeResult, Exception]] = dict(results or {})
        self.calls: List[str] = []

    async def probe(self, endpoint: str) -> ProbeResult:
        self.calls.append(endpoint)
        res = self.results.get(endpoint, ProbeResult(success=True, latency_ms=100, status_code=200))
        if isinstance(res, Exception):
            raise res
        return res


class FakeProvider:
    """Stands in for VultrClient with a fixed status map."""

    def __init__(self, statuses: Optional[Dict[str, str]] = None, error: Optional[Exception] = None):
        self.statuses = dict(statuses or {})
        self.error = error
        self.calls = 0

    async def fetch_instance_statuses(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return Outcome.success(dict(self.statuses))


class RecordingChannel:
    """Notification channel that records publishes (optionally failing)."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published: List[Tuple[str, str, str]] = []

    async def publish(self, subject: str, message: str, severity: str) -> None:
        if self.fail:
            raise RuntimeError("publish failed")
        self.published.append((subject, message, severity))


class FlakyStore(InMemoryStore):
    """InMemoryStore that raises on selected (operation, collection) pairs."""

    def __init__(self, fail_on: Optional[set] = None):
        super().__init__()
        self.fail_on = set(fail_on or ())

    def _maybe_fail(self, op: str, collection: str) -> None:
        if (op, collection) in self.fail_on:
            raise RuntimeError(f"store {op} failed for {collection}")

    async def list_all(self, collection):
        self._maybe_fail("list_all", collection)
        return await super().list_all(collection)

    async def put(self, collection, item):
        self._maybe_fail("put", collection)
        await super().put(collection, item)

    async def update(self, collection, item_id, fields):
        self._maybe_fail("update", collection)
        return await super().update(collection, item_id, fields)


def make_instance(
    instance_id: str,
    *,
    endpoint: str = "",
    status: str = "unknown",
    type: str = "service",
    name: Optional[str] = None,
) -> dict:
    return {
        "id": instance_id,
        "name": name or f"{instance_id}-name",
        "type": type,
        "status": status,
        "region": "ewr",
        "endpoint": endpoint,
        "lastHealthCheck": None,
        "createdAt": "2026-01-01T00:00:00.000Z",
        "updatedAt": "2026-01-01T00:00:00.000Z",
    }


@pytest.fixture
def config() -> SentinelConfig:
    """Memory-backed config with default thresholds and no provider/notification credentials."""
    return replace(load_config(), store_backend="memory", vultr_api_key=None, sns_topic_arn=None)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def make_sentinel(config, probe, provider, channel):
    """Factory wiring a Sentinel over the given store with fake probe/provider/channel."""

    def _make(store, **overrides):
        cfg = replace(config, **overrides) if overrides else config
        return build_sentinel(cfg, store, channel=channel, provider=provider, probe=probe)

    return _make


@pytest.fixture
def app(config, store):
    """FastAPI app over an in-memory store (startup hooks are not needed for the memory backend)."""
    from cloudpulse.main import create_app

    return create_app(config, store=store)


@pytest.fixture
async def async_client(app) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client bound to the FastAPI ASGI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def anyio_backend() -> str:
    """The code under test is asyncio-based; run anyio-marked tests on asyncio only."""
    return "asyncio"
