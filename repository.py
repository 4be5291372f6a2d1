"""
Owner-scoped access to the shop collections.

Every read and write goes through OwnerScopedRepository, which adds the
session owner's email to the filter (or to the inserted document). Services
never build an owner filter themselves.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId

from auth import Session
from config import ACTIVITIES, BILLS, CLOTH_TYPES, CUSTOMERS, ORDERS, SHOPS
from database import create_document
from errors import RecordNotFound

OWNER_FIELD = "owner_email"

SortSpec = Sequence[Tuple[str, int]]


def to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


class OwnerScopedRepository:
    def __init__(self, database, session: Session, collection_name: str, kind: str):
        self.collection = database[collection_name]
        self.session = session
        self.kind = kind

    def scoped(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = dict(filters or {})
        query[OWNER_FIELD] = self.session.owner_email
        return query

    def find(self, filters: Optional[Dict[str, Any]] = None, sort: Optional[SortSpec] = None, limit: int = 0) -> List[Dict[str, Any]]:
        cursor = self.collection.find(self.scoped(filters))
        if sort:
            cursor = cursor.sort(list(sort))
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def find_one(self, filters: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(self.scoped(filters))

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(self.scoped(filters))

    def get_or_none(self, doc_id: Any) -> Optional[Dict[str, Any]]:
        _id = to_object_id(doc_id)
        if _id is None:
            return None
        return self.find_one({"_id": _id})

    def get(self, doc_id: Any) -> Dict[str, Any]:
        doc = self.get_or_none(doc_id)
        if doc is None:
            raise RecordNotFound(self.kind, str(doc_id))
        return doc

    def get_many(self, doc_ids: Iterable[Any]) -> Dict[str, Dict[str, Any]]:
        """Fetch documents by id; unknown or malformed ids are skipped."""
        ids = [oid for oid in (to_object_id(d) for d in doc_ids) if oid is not None]
        if not ids:
            return {}
        return {str(doc["_id"]): doc for doc in self.find({"_id": {"$in": ids}})}

    def insert(self, data: Dict[str, Any]) -> str:
        doc = dict(data)
        doc[OWNER_FIELD] = self.session.owner_email
        return create_document(self.collection.database, self.collection.name, doc)

    def update(self, doc_id: Any, fields: Dict[str, Any]) -> None:
        _id = to_object_id(doc_id)
        if _id is None:
            raise RecordNotFound(self.kind, str(doc_id))
        changes = dict(fields)
        changes["updated_at"] = datetime.utcnow()
        res = self.collection.update_one(self.scoped({"_id": _id}), {"$set": changes})
        if res.matched_count == 0:
            raise RecordNotFound(self.kind, str(doc_id))

    def delete(self, doc_id: Any) -> None:
        _id = to_object_id(doc_id)
        if _id is None:
            raise RecordNotFound(self.kind, str(doc_id))
        res = self.collection.delete_one(self.scoped({"_id": _id}))
        if res.deleted_count == 0:
            raise RecordNotFound(self.kind, str(doc_id))


class OwnerScope:
    """All repositories of one signed-in owner."""

    def __init__(self, database, session: Session):
        self.database = database
        self.session = session
        self.customers = OwnerScopedRepository(database, session, CUSTOMERS, "Customer")
        self.cloth_types = OwnerScopedRepository(database, session, CLOTH_TYPES, "Cloth type")
        self.orders = OwnerScopedRepository(database, session, ORDERS, "Order")
        self.bills = OwnerScopedRepository(database, session, BILLS, "Bill")
        self.activities = OwnerScopedRepository(database, session, ACTIVITIES, "Activity")
        self.shops = OwnerScopedRepository(database, session, SHOPS, "Shop")
