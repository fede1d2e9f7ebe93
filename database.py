"""
Record store for the SimpleShop CRM API.

Each collection (customer, product, sale) is exposed as a Repository with
get_all/get_by_id/create/update/delete. Records are plain dicts keyed by an
integer "Id" that the repository assigns as max(Id) + 1.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from pymongo import DESCENDING, MongoClient
from pymongo.errors import PyMongoError

import config

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when an operation references an identifier that does not exist."""


class StoreError(Exception):
    """Raised when the backing store reports a failure."""


class Repository(ABC):
    """CRUD over a single named record collection."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get_all(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_by_id(self, record_id) -> Dict[str, Any]:
        ...

    @abstractmethod
    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def update(self, record_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def delete(self, record_id) -> bool:
        ...

    def _missing(self, record_id) -> NotFoundError:
        return NotFoundError(f"{self.name} {record_id} not found")

    def _coerce_id(self, record_id) -> int:
        try:
            return int(record_id)
        except (TypeError, ValueError):
            raise self._missing(record_id)


class InMemoryRepository(Repository):
    """Transient storage; contents are lost when the process exits."""

    def __init__(self, name: str, records: List[Dict[str, Any]] = None):
        super().__init__(name)
        self._records: List[Dict[str, Any]] = [copy.deepcopy(r) for r in (records or [])]

    def _index(self, record_id) -> int:
        rid = self._coerce_id(record_id)
        for i, r in enumerate(self._records):
            if r["Id"] == rid:
                return i
        raise self._missing(record_id)

    def get_all(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._records)

    def get_by_id(self, record_id) -> Dict[str, Any]:
        return copy.deepcopy(self._records[self._index(record_id)])

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        new_id = max([r["Id"] for r in self._records], default=0) + 1
        record = copy.deepcopy(fields)
        record["Id"] = new_id
        self._records.append(record)
        return copy.deepcopy(record)

    def update(self, record_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        record = self._records[self._index(record_id)]
        record.update(copy.deepcopy(fields))
        record["Id"] = int(record_id)
        return copy.deepcopy(record)

    def delete(self, record_id) -> bool:
        del self._records[self._index(record_id)]
        return True


class MongoRepository(Repository):
    """Collection in MongoDB. The integer Id is stored beside Mongo's own _id."""

    def __init__(self, collection):
        super().__init__(collection.name)
        self.collection = collection

    def _call(self, action: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Mongo {action} on {self.name} failed: {e}")
            raise StoreError(str(e)) from e

    def get_all(self) -> List[Dict[str, Any]]:
        cursor = self._call("find", self.collection.find, {}, {"_id": 0})
        return self._call("find", list, cursor.sort("Id", 1))

    def get_by_id(self, record_id) -> Dict[str, Any]:
        doc = self._call("find_one", self.collection.find_one, {"Id": self._coerce_id(record_id)}, {"_id": 0})
        if not doc:
            raise self._missing(record_id)
        return doc

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        last = self._call("find_one", self.collection.find_one, {}, {"Id": 1}, sort=[("Id", DESCENDING)])
        record = dict(fields)
        record["Id"] = (last["Id"] if last else 0) + 1
        self._call("insert_one", self.collection.insert_one, record)
        record.pop("_id", None)
        return record

    def update(self, record_id, fields: Dict[str, Any]) -> Dict[str, Any]:
        changes = {k: v for k, v in fields.items() if k not in ("Id", "_id")}
        res = self._call(
            "update_one", self.collection.update_one, {"Id": self._coerce_id(record_id)}, {"$set": changes}
        )
        if res.matched_count == 0:
            raise self._missing(record_id)
        return self.get_by_id(record_id)

    def delete(self, record_id) -> bool:
        res = self._call("delete_one", self.collection.delete_one, {"Id": self._coerce_id(record_id)})
        if res.deleted_count == 0:
            raise self._missing(record_id)
        return True


class InMemoryDatabase:
    def __init__(self):
        self._repos: Dict[str, InMemoryRepository] = {}

    def __getitem__(self, name: str) -> InMemoryRepository:
        if name not in self._repos:
            self._repos[name] = InMemoryRepository(name)
        return self._repos[name]

    def list_collection_names(self) -> List[str]:
        return sorted(self._repos)


class MongoDatabase:
    def __init__(self, url: str, name: str):
        self.client = MongoClient(url)
        self.database = self.client[name]

    def __getitem__(self, name: str) -> MongoRepository:
        return MongoRepository(self.database[name])

    def list_collection_names(self) -> List[str]:
        try:
            return self.database.list_collection_names()
        except PyMongoError as e:
            raise StoreError(str(e)) from e


def connect(backend: str = None, url: str = None, name: str = None):
    """Build the database handle for the configured backend."""
    backend = backend or config.STORE_BACKEND
    if backend == "memory":
        logger.info("Using in-memory record store")
        return InMemoryDatabase()
    if backend == "mongo":
        url = url or config.DATABASE_URL
        if not url:
            logger.warning("STORE_BACKEND=mongo but DATABASE_URL is not set")
            return None
        logger.info(f"Using MongoDB record store ({name or config.DATABASE_NAME})")
        return MongoDatabase(url, name or config.DATABASE_NAME)
    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


db = connect()
