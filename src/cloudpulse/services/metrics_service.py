from __future__ import annotations

from typing import List, Optional

from cloudpulse.db.store import Store
from cloudpulse.schemas.metrics import MetricOut


def _doc_to_out(doc: dict) -> MetricOut:
    return MetricOut(
        id=doc["id"],
        instanceId=doc["instanceId"],
        timestamp=doc.get("timestamp") or doc.get("createdAt") or "",
        metricName=doc["metricName"],
        metricValue=float(doc.get("metricValue") or 0.0),
        unit=doc.get("unit") or "",
        tags={str(k): str(v) for k, v in (doc.get("tags") or {}).items()},
        createdAt=doc.get("createdAt") or doc.get("timestamp") or "",
    )


# PUBLIC_INTERFACE
async def list_metrics(
    store: Store,
    collection: str,
    instance_id: Optional[str] = None,
    metric_name: Optional[str] = None,
    limit: int = 100,
) -> List[MetricOut]:
    """
    List metric records newest first.

    With an instance id this is an index lookup; without one it is a full read. The
    metric-name filter is applied after the lookup, so fewer than `limit` items may come back.
    """
    if instance_id:
        docs = await store.query(collection, "instanceId", instance_id, limit=limit)
    else:
        docs = await store.list_all(collection)
        docs.sort(key=lambda d: d.get("createdAt") or "", reverse=True)
        docs = docs[:limit]

    if metric_name:
        docs = [d for d in docs if d.get("metricName") == metric_name]
    return [_doc_to_out(d) for d in docs]
