from __future__ import annotations

import logging
from typing import List, Optional
from uuid import uuid4

from cloudpulse.db.store import Store
from cloudpulse.schemas.common import HealthState, Outcome, isoformat, utc_now
from cloudpulse.schemas.instances import InstanceCreate, InstanceOut

logger = logging.getLogger(__name__)


class DuplicateInstanceError(Exception):
    """Raised when registering an instance id that already exists."""


def _state_of(doc: dict) -> HealthState:
    # Records written by ingestion may carry provider wording ("running", "active").
    try:
        return HealthState(doc.get("status") or HealthState.unknown.value)
    except ValueError:
        return HealthState.unknown


def _doc_to_out(doc: dict) -> InstanceOut:
    return InstanceOut(
        id=doc["id"],
        name=doc.get("name") or doc["id"],
        type=doc.get("type") or "unknown",
        region=doc.get("region") or "",
        endpoint=doc.get("endpoint") or "",
        status=_state_of(doc),
        lastHealthCheck=doc.get("lastHealthCheck"),
        createdAt=doc.get("createdAt"),
        updatedAt=doc.get("updatedAt"),
    )


class InstanceDirectory:
    """Reads the full set of monitored instances; a store failure yields an empty directory."""

    def __init__(self, store: Store, collection: str = "instances"):
        self.store = store
        self.collection = collection

    # PUBLIC_INTERFACE
    async def list_instances(self) -> Outcome[List[dict]]:
        """Return every instance record (full read, no pagination)."""
        try:
            docs = await self.store.list_all(self.collection)
        except Exception as exc:
            logger.exception("Failed to fetch instances from store collection=%s", self.collection)
            return Outcome.soft_error([], str(exc))
        # Records without an id cannot be updated; skip them rather than fail the run.
        return Outcome.success([d for d in docs if d.get("id")])


# PUBLIC_INTERFACE
async def list_instances(store: Store, collection: str) -> List[InstanceOut]:
    """Return all instances sorted by creation time."""
    docs = await store.list_all(collection)
    docs.sort(key=lambda d: d.get("createdAt") or "")
    return [_doc_to_out(d) for d in docs if d.get("id")]


# PUBLIC_INTERFACE
async def get_instance(store: Store, collection: str, instance_id: str) -> Optional[InstanceOut]:
    """Get a single instance by id. Returns None if not found."""
    doc = await store.get(collection, instance_id)
    return _doc_to_out(doc) if doc else None


# PUBLIC_INTERFACE
async def create_instance(store: Store, collection: str, payload: InstanceCreate) -> InstanceOut:
    """Register a new monitored instance."""
    instance_id = payload.id or str(uuid4())
    if await store.get(collection, instance_id) is not None:
        raise DuplicateInstanceError(instance_id)

    now = isoformat(utc_now())
    doc = {
        "id": instance_id,
        "name": payload.name.strip(),
        "type": payload.type.strip(),
        "region": payload.region.strip(),
        "endpoint": (payload.endpoint or "").strip(),
        "status": payload.status.value,
        "lastHealthCheck": None,
        "createdAt": now,
        "updatedAt": now,
    }
    await store.put(collection, doc)
    return _doc_to_out(doc)


# PUBLIC_INTERFACE
async def delete_instance(store: Store, collection: str, instance_id: str) -> bool:
    """Delete an instance record. Returns True if deleted, False if not found."""
    return await store.delete(collection, instance_id)
