"""
Persistence gateway

The console never mutates its collections before the data store has
accepted the change: every save and delete goes through a gateway first.
Documents cross the gateway as plain dicts with camelCase keys and a
string `id`.
"""

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bson.objectid import ObjectId
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

import config
from errors import NotFound, TransportError

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "settings"
ADMIN_COLLECTION = "admin"
SINGLETON_ID = "singleton"

client = MongoClient(config.DATABASE_URL) if config.DATABASE_URL else None
db = client[config.DATABASE_NAME] if client is not None else None


class PersistenceGateway(ABC):
    """Request/response surface of the remote data store."""

    @abstractmethod
    def list(self, collection: str) -> List[dict]:
        ...

    @abstractmethod
    def create(self, collection: str, doc: dict) -> dict:
        """Store a new document and return it with its durable id."""

    @abstractmethod
    def update(self, collection: str, item_id: str, doc: dict) -> dict:
        """Replace a stored document; NotFound if the id is unknown."""

    @abstractmethod
    def delete(self, collection: str, item_id: str) -> None:
        ...

    @abstractmethod
    def get_settings(self) -> Optional[dict]:
        ...

    @abstractmethod
    def save_settings(self, doc: dict) -> None:
        ...

    @abstractmethod
    def get_admin(self) -> Optional[dict]:
        ...

    @abstractmethod
    def save_admin(self, doc: dict) -> None:
        ...

    @abstractmethod
    def status(self) -> dict:
        ...


def _to_wire(doc: dict) -> dict:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc.pop("createdAt", None)
    doc.pop("updatedAt", None)
    return doc


def _body(doc: dict) -> dict:
    body = dict(doc)
    body.pop("id", None)
    body.pop("_id", None)
    return body


@contextmanager
def _transport(action: str):
    try:
        yield
    except PyMongoError as e:
        logger.error(f"Database call failed ({action}): {e}")
        raise TransportError(f"Could not {action}. Please try again.") from e


class MongoGateway(PersistenceGateway):
    """Gateway backed by a pymongo database handle."""

    def __init__(self, database):
        self.db = database

    def list(self, collection: str) -> List[dict]:
        with _transport(f"load {collection}"):
            docs = list(self.db[collection].find({}).sort("createdAt", 1))
        return [_to_wire(d) for d in docs]

    def create(self, collection: str, doc: dict) -> dict:
        data = _body(doc)
        data["_id"] = doc.get("id") or str(ObjectId())
        now = datetime.now(timezone.utc)
        data["createdAt"] = now
        data["updatedAt"] = now
        with _transport(f"save {collection}"):
            self.db[collection].insert_one(data)
        return _to_wire(data)

    def update(self, collection: str, item_id: str, doc: dict) -> dict:
        with _transport(f"save {collection}"):
            res = self.db[collection].find_one_and_update(
                {"_id": item_id},
                {"$set": _body(doc), "$currentDate": {"updatedAt": True}},
                return_document=ReturnDocument.AFTER,
            )
        if not res:
            raise NotFound(f"{collection} {item_id} not found")
        return _to_wire(res)

    def delete(self, collection: str, item_id: str) -> None:
        with _transport(f"delete {collection}"):
            self.db[collection].delete_one({"_id": item_id})

    def _get_singleton(self, collection: str) -> Optional[dict]:
        with _transport(f"load {collection}"):
            doc = self.db[collection].find_one({"_id": SINGLETON_ID})
        if not doc:
            return None
        return _body(_to_wire(doc))

    def _save_singleton(self, collection: str, doc: dict) -> None:
        data = _body(doc)
        data["updatedAt"] = datetime.now(timezone.utc)
        with _transport(f"save {collection}"):
            self.db[collection].replace_one({"_id": SINGLETON_ID}, data, upsert=True)

    def get_settings(self) -> Optional[dict]:
        return self._get_singleton(SETTINGS_COLLECTION)

    def save_settings(self, doc: dict) -> None:
        self._save_singleton(SETTINGS_COLLECTION, doc)

    def get_admin(self) -> Optional[dict]:
        return self._get_singleton(ADMIN_COLLECTION)

    def save_admin(self, doc: dict) -> None:
        self._save_singleton(ADMIN_COLLECTION, doc)

    def status(self) -> dict:
        collections = []
        try:
            collections = self.db.list_collection_names()
            database = "connected"
        except PyMongoError as e:
            logger.warning(f"Database status check failed: {e}")
            database = "error"
        return {"backend": "running", "database": database, "collections": collections[:10]}


class MemoryGateway(PersistenceGateway):
    """Process-local gateway, used when no database is configured."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.settings: Optional[dict] = None
        self.admin: Optional[dict] = None

    def list(self, collection: str) -> List[dict]:
        return [copy.deepcopy(d) for d in self.collections.get(collection, {}).values()]

    def create(self, collection: str, doc: dict) -> dict:
        data = copy.deepcopy(doc)
        data["id"] = doc.get("id") or str(ObjectId())
        self.collections.setdefault(collection, {})[data["id"]] = data
        return copy.deepcopy(data)

    def update(self, collection: str, item_id: str, doc: dict) -> dict:
        stored = self.collections.get(collection, {})
        if item_id not in stored:
            raise NotFound(f"{collection} {item_id} not found")
        data = copy.deepcopy(doc)
        data["id"] = item_id
        stored[item_id] = data
        return copy.deepcopy(data)

    def delete(self, collection: str, item_id: str) -> None:
        self.collections.get(collection, {}).pop(item_id, None)

    def get_settings(self) -> Optional[dict]:
        return copy.deepcopy(self.settings)

    def save_settings(self, doc: dict) -> None:
        self.settings = copy.deepcopy(doc)

    def get_admin(self) -> Optional[dict]:
        return copy.deepcopy(self.admin)

    def save_admin(self, doc: dict) -> None:
        self.admin = copy.deepcopy(doc)

    def status(self) -> dict:
        return {"backend": "running", "database": "in-memory", "collections": sorted(self.collections)[:10]}


def default_gateway() -> PersistenceGateway:
    if db is not None:
        logger.info(f"Using MongoDB database {config.DATABASE_NAME}")
        return MongoGateway(db)
    logger.warning("DATABASE_URL not set, content is kept in memory only")
    return MemoryGateway()
