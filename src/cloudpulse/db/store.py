from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Protocol

from pymongo import DESCENDING, ReturnDocument

from cloudpulse.db.mongo import MongoManager

logger = logging.getLogger(__name__)


class Store(Protocol):
    """
    Key-value document store the sentinel reads from and writes to.

    Items are plain dicts keyed by their string `id` field. Implementations raise on
    storage failures; callers decide whether a failure is soft.
    """

    async def list_all(self, collection: str) -> List[dict]: ...

    async def get(self, collection: str, item_id: str) -> Optional[dict]: ...

    async def put(self, collection: str, item: dict) -> None: ...

    async def update(self, collection: str, item_id: str, fields: Dict[str, Any]) -> Optional[dict]: ...

    async def query(self, collection: str, field: str, value: Any, limit: int = 100) -> List[dict]: ...

    async def delete(self, collection: str, item_id: str) -> bool: ...

    async def ping(self) -> bool: ...


async def _run_in_thread(func, *args, **kwargs):
    """Run blocking pymongo calls in a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


class MongoStore:
    """Store backed by MongoDB collections (one collection per logical table)."""

    def __init__(self, mongo: MongoManager):
        self.mongo = mongo

    async def list_all(self, collection: str) -> List[dict]:
        col = self.mongo.collection(collection)
        return await _run_in_thread(lambda: list(col.find({}, projection={"_id": 0})))

    async def get(self, collection: str, item_id: str) -> Optional[dict]:
        col = self.mongo.collection(collection)
        return await _run_in_thread(col.find_one, {"id": item_id}, projection={"_id": 0})

    async def put(self, collection: str, item: dict) -> None:
        col = self.mongo.collection(collection)
        doc = dict(item)
        # replace_one keeps `item` free of the generated _id and makes put an upsert.
        await _run_in_thread(col.replace_one, {"id": doc["id"]}, doc, upsert=True)

    async def update(self, collection: str, item_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        col = self.mongo.collection(collection)
        return await _run_in_thread(
            col.find_one_and_update,
            {"id": item_id},
            {"$set": dict(fields)},
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    async def query(self, collection: str, field: str, value: Any, limit: int = 100) -> List[dict]:
        col = self.mongo.collection(collection)
        return await _run_in_thread(
            lambda: list(
                col.find({field: value}, projection={"_id": 0}).sort("createdAt", DESCENDING).limit(int(limit))
            )
        )

    async def delete(self, collection: str, item_id: str) -> bool:
        col = self.mongo.collection(collection)
        res = await _run_in_thread(col.delete_one, {"id": item_id})
        return res.deleted_count > 0

    async def ping(self) -> bool:
        return await _run_in_thread(self.mongo.ping)


class InMemoryStore:
    """
    Dict-backed Store used for local runs and tests.

    Items are deep-copied on the way in and out so callers never share references
    with stored state.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, dict]] = {}

    def _col(self, collection: str) -> Dict[str, dict]:
        return self._data.setdefault(collection, {})

    async def list_all(self, collection: str) -> List[dict]:
        return [copy.deepcopy(v) for v in self._col(collection).values()]

    async def get(self, collection: str, item_id: str) -> Optional[dict]:
        item = self._col(collection).get(item_id)
        return copy.deepcopy(item) if item is not None else None

    async def put(self, collection: str, item: dict) -> None:
        self._col(collection)[item["id"]] = copy.deepcopy(item)

    async def update(self, collection: str, item_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        existing = self._col(collection).get(item_id)
        if existing is None:
            return None
        existing.update(copy.deepcopy(fields))
        return copy.deepcopy(existing)

    async def query(self, collection: str, field: str, value: Any, limit: int = 100) -> List[dict]:
        matches = [v for v in self._col(collection).values() if v.get(field) == value]
        matches.sort(key=lambda d: d.get("createdAt") or "", reverse=True)
        return [copy.deepcopy(v) for v in matches[: int(limit)]]

    async def delete(self, collection: str, item_id: str) -> bool:
        return self._col(collection).pop(item_id, None) is not None

    async def ping(self) -> bool:
        return True
