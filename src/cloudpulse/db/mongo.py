from __future__ import annotations

import logging
from threading import RLock
from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class MongoManager:
    """
    MongoDB connection manager for the sentinel's backing store.

    Holds a single lazily-created MongoClient; MongoClient is thread-safe and pools
    connections internally, so callers may use it from worker threads.
    """

    def __init__(self, mongo_uri: str, db_name: str):
        self._mongo_uri = mongo_uri
        self._db_name = db_name
        self._client: Optional[MongoClient] = None
        self._lock = RLock()

    def connect(self) -> None:
        """Initialize the Mongo client if needed."""
        with self._lock:
            if self._client is not None:
                return
            self._client = MongoClient(self._mongo_uri, connect=True, tz_aware=True)

    # PUBLIC_INTERFACE
    def ping(self, timeout_ms: int = 1500) -> bool:
        """Ping the configured MongoDB to validate connectivity."""
        try:
            if self._client is None:
                self.connect()
            assert self._client is not None
            self._client.admin.command("ping", maxTimeMS=int(max(250, timeout_ms)))
            return True
        except PyMongoError:
            logger.exception("Mongo ping failed (PyMongoError)")
            return False
        except Exception:
            logger.exception("Mongo ping failed (unexpected)")
            return False

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                try:
                    self._client.close()
                except Exception:
                    logger.exception("Error closing MongoClient")
                self._client = None

    def db(self) -> Database:
        if self._client is None:
            self.connect()
        assert self._client is not None
        return self._client[self._db_name]

    def collection(self, name: str) -> Collection:
        return self.db()[name]

    def init_indexes(self, *, instances: str, metrics: str, alerts: str) -> None:
        """
        Create required indexes (idempotent).

        Every record carries a string `id`; metrics and alerts are looked up by instance,
        newest first.
        """
        self.collection(instances).create_index([("id", ASCENDING)], unique=True, name="idx_instances_id")

        metrics_col = self.collection(metrics)
        metrics_col.create_index([("id", ASCENDING)], unique=True, name="idx_metrics_id")
        metrics_col.create_index(
            [("instanceId", ASCENDING), ("createdAt", DESCENDING)], name="idx_metrics_instance_createdAt_desc"
        )
        metrics_col.create_index([("metricName", ASCENDING)], name="idx_metrics_metricName")

        alerts_col = self.collection(alerts)
        alerts_col.create_index([("id", ASCENDING)], unique=True, name="idx_alerts_id")
        alerts_col.create_index(
            [("instanceId", ASCENDING), ("createdAt", DESCENDING)], name="idx_alerts_instance_createdAt_desc"
        )
        alerts_col.create_index([("status", ASCENDING)], name="idx_alerts_status")
        alerts_col.create_index([("severity", ASCENDING)], name="idx_alerts_severity")
