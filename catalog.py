"""
Cloth-type price list.

Two read paths exist on purpose: order entry and invoices take a
point-in-time snapshot (list_cloth_types / rate_lookup / name_lookup), while
the catalog screen keeps a live subscription through CatalogFeed and is
pushed a fresh snapshot after each change.
"""
import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from activity import ActivityLog
from errors import ValidationFailed
from repository import OwnerScope
from schemas import ClothTypeIn, ClothTypeRecord

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class CatalogFeed:
    """In-process change notifications for the cloth-types collection, per owner."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, owner_email: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners[owner_email].append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners.get(owner_email, []):
                    self._listeners[owner_email].remove(listener)

        return unsubscribe

    def publish(self, owner_email: str) -> None:
        with self._lock:
            listeners = list(self._listeners.get(owner_email, []))
        for listener in listeners:
            try:
                listener()
            except RuntimeError as e:
                # Raised by a listener whose event loop already closed.
                logger.warning("Catalog listener failed: %s", e)


catalog_feed = CatalogFeed()


def _validated(payload: ClothTypeIn) -> dict:
    name = payload.name.strip()
    if not name:
        raise ValidationFailed("Please enter a name for the cloth type")
    if payload.rate is None or payload.rate <= 0:
        raise ValidationFailed("Please enter a valid rate greater than zero")
    return {"name": name, "rate": float(payload.rate)}


def list_cloth_types(scope: OwnerScope, search: Optional[str] = None) -> List[ClothTypeRecord]:
    docs = scope.cloth_types.find(sort=[("last_modified", -1)])
    records = [ClothTypeRecord.from_document(d) for d in docs]
    if search:
        needle = search.strip().lower()
        records = [r for r in records if needle in r.name.lower()]
    return records


def get_cloth_type(scope: OwnerScope, cloth_type_id: str) -> ClothTypeRecord:
    return ClothTypeRecord.from_document(scope.cloth_types.get(cloth_type_id))


def rate_lookup(scope: OwnerScope, cloth_type_ids: Iterable[str]) -> Dict[str, float]:
    docs = scope.cloth_types.get_many(cloth_type_ids)
    return {k: ClothTypeRecord.from_document(d).rate for k, d in docs.items()}


def name_lookup(scope: OwnerScope, cloth_type_ids: Iterable[str]) -> Dict[str, str]:
    docs = scope.cloth_types.get_many(cloth_type_ids)
    return {k: ClothTypeRecord.from_document(d).name for k, d in docs.items()}


def create_cloth_type(scope: OwnerScope, payload: ClothTypeIn, activity: ActivityLog, feed: CatalogFeed = catalog_feed) -> ClothTypeRecord:
    data = _validated(payload)
    data["last_modified"] = datetime.utcnow()
    new_id = scope.cloth_types.insert(data)
    logger.info("Cloth type %s created: %s @ %.2f", new_id, data["name"], data["rate"])
    activity.record("cloth_type_created", new_id, {"name": data["name"], "rate": data["rate"]})
    feed.publish(scope.session.owner_email)
    return get_cloth_type(scope, new_id)


def update_cloth_type(scope: OwnerScope, cloth_type_id: str, payload: ClothTypeIn, activity: ActivityLog, feed: CatalogFeed = catalog_feed) -> ClothTypeRecord:
    data = _validated(payload)
    data["last_modified"] = datetime.utcnow()
    scope.cloth_types.update(cloth_type_id, data)
    logger.info("Cloth type %s updated", cloth_type_id)
    activity.record("cloth_type_updated", cloth_type_id, {"name": data["name"], "rate": data["rate"]})
    feed.publish(scope.session.owner_email)
    return get_cloth_type(scope, cloth_type_id)


def delete_cloth_type(scope: OwnerScope, cloth_type_id: str, activity: ActivityLog, feed: CatalogFeed = catalog_feed) -> None:
    scope.cloth_types.delete(cloth_type_id)
    logger.info("Cloth type %s deleted", cloth_type_id)
    activity.record("cloth_type_deleted", cloth_type_id)
    feed.publish(scope.session.owner_email)
