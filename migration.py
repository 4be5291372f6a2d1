"""
One-off data migrations.

Each migration batches its writes into a single bulk_write so a run either
applies all updates of a collection or reports the failure.
"""
import logging

from pymongo import DeleteOne, InsertOne, UpdateOne

from config import ACTIVITIES, CLOTH_TYPES, LEGACY_CLOTH_TYPES

logger = logging.getLogger(__name__)


def migrate_activities(database) -> int:
    """Replace activity doc_id reference objects with the plain document id."""
    logger.info("Starting activity migration...")
    ops = []
    for doc in database[ACTIVITIES].find({}):
        doc_id = doc.get("doc_id", doc.get("docId"))
        if isinstance(doc_id, dict) and isinstance(doc_id.get("documentId"), str):
            ops.append(UpdateOne(
                {"_id": doc["_id"]},
                {"$set": {"doc_id": doc_id["documentId"]}, "$unset": {"docId": ""}},
            ))
    if not ops:
        logger.info("No activity records needed to be updated.")
        return 0
    database[ACTIVITIES].bulk_write(ops, ordered=True)
    logger.info("Activity migration updated %d records.", len(ops))
    return len(ops)


def migrate_cloth_types(database) -> int:
    """Move documents from the legacy clothTypes collection into cloth-types."""
    legacy = list(database[LEGACY_CLOTH_TYPES].find({}))
    if not legacy:
        logger.info("No legacy cloth types to migrate.")
        return 0
    existing = {d["_id"] for d in database[CLOTH_TYPES].find({"_id": {"$in": [d["_id"] for d in legacy]}}, {"_id": 1})}
    inserts = [
        InsertOne(dict(d, owner_email=d.get("owner_email", d.get("userEmail"))))
        for d in legacy
        if d["_id"] not in existing
    ]
    if inserts:
        database[CLOTH_TYPES].bulk_write(inserts, ordered=True)
    database[LEGACY_CLOTH_TYPES].bulk_write([DeleteOne({"_id": d["_id"]}) for d in legacy], ordered=True)
    logger.info("Moved %d cloth types from %s to %s.", len(inserts), LEGACY_CLOTH_TYPES, CLOTH_TYPES)
    return len(inserts)


MIGRATIONS = {
    "activities": migrate_activities,
    "cloth-types": migrate_cloth_types,
}
