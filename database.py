"""
Key-value storage for the storefront

Every record lives under a string key made of an entity prefix and an id,
e.g. "product:<id>" or "order-user:<user_id>:<order_id>". The store offers
get / set / delete / prefix scan and nothing else: each call is atomic for
its own key only, there are no multi-key transactions.

When DATABASE_URL is set, records go to a MongoDB collection ("kv_store",
one document per key). Without it an in-process dictionary is used, which is
what local runs and the test-suite rely on.
"""

import logging
import os
import re
import threading
from copy import deepcopy
from typing import Any, Dict, List, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from errors import Internal

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "storefront")
KV_COLLECTION = "kv_store"


class InMemoryKeyValueStore:
    """Dictionary backed store with the same contract as the Mongo one."""

    name = "memory"

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
        return deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix: str) -> List[Any]:
        with self._lock:
            values = [v for k, v in sorted(self._data.items()) if k.startswith(prefix)]
        return deepcopy(values)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class MongoKeyValueStore:
    """One Mongo document per key: {"_id": key, "value": value}."""

    def __init__(self, url: str, database_name: str, collection: str = KV_COLLECTION):
        self._client = MongoClient(url)
        self._db = self._client[database_name]
        self._collection = self._db[collection]
        self.name = database_name

    def _call(self, op: str, key: str, fn):
        try:
            return fn()
        except PyMongoError as e:
            logger.exception("Key-value store %s failed", op, extra={"key": key})
            raise Internal("Storage unavailable") from e

    def get(self, key: str) -> Optional[Any]:
        doc = self._call("get", key, lambda: self._collection.find_one({"_id": key}))
        if not doc:
            return None
        return doc.get("value")

    def set(self, key: str, value: Any) -> None:
        self._call(
            "set",
            key,
            lambda: self._collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True),
        )

    def delete(self, key: str) -> None:
        self._call("delete", key, lambda: self._collection.delete_one({"_id": key}))

    def get_by_prefix(self, prefix: str) -> List[Any]:
        query = {"_id": {"$regex": "^" + re.escape(prefix)}}
        docs = self._call("scan", prefix, lambda: list(self._collection.find(query).sort("_id", 1)))
        return [d.get("value") for d in docs]

    def keys(self) -> List[str]:
        docs = self._call("keys", "*", lambda: list(self._collection.find({}, {"_id": 1}).limit(50)))
        return [d["_id"] for d in docs]


def connect():
    if DATABASE_URL:
        logger.info("Using MongoDB key-value store", extra={"database": DATABASE_NAME})
        return MongoKeyValueStore(DATABASE_URL, DATABASE_NAME)
    logger.info("DATABASE_URL not set, using in-memory key-value store")
    return InMemoryKeyValueStore()


kv = connect()


def get_store():
    """FastAPI dependency returning the shared store."""
    return kv
