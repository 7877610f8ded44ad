from __future__ import annotations

from typing import List, Optional

from cloudpulse.db.store import Store
from cloudpulse.schemas.alerts import AlertOut, AlertsQuery


def _doc_to_out(doc: dict) -> AlertOut:
    return AlertOut(
        id=doc["id"],
        instanceId=doc["instanceId"],
        alertType=doc.get("alertType", ""),
        severity=doc["severity"],
        message=doc.get("message", ""),
        status=doc.get("status", "active"),
        createdAt=doc["createdAt"],
        updatedAt=doc.get("updatedAt") or doc["createdAt"],
        resolvedAt=doc.get("resolvedAt"),
    )


# PUBLIC_INTERFACE
async def list_alerts(store: Store, collection: str, filters: AlertsQuery) -> List[AlertOut]:
    """List alerts newest first, filtered by instance, severity and status."""
    if filters.instance_id:
        # Over-fetch so post-filters still fill the page in the common case.
        docs = await store.query(collection, "instanceId", filters.instance_id, limit=filters.limit * 5)
    else:
        docs = await store.list_all(collection)
        docs.sort(key=lambda d: d.get("createdAt") or "", reverse=True)

    if filters.severity:
        docs = [d for d in docs if d.get("severity") == filters.severity.value]
    if filters.status:
        docs = [d for d in docs if d.get("status") == filters.status]
    return [_doc_to_out(d) for d in docs[: filters.limit]]


# PUBLIC_INTERFACE
async def get_alert(store: Store, collection: str, alert_id: str) -> Optional[AlertOut]:
    """Fetch an alert by id; returns None if not found."""
    doc = await store.get(collection, alert_id)
    return _doc_to_out(doc) if doc else None
