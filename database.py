"""
MongoDB access for the laundry shop API.

`db` is None when DATABASE_URL is not set; endpoints then answer with
"Database not configured".
"""
from datetime import datetime
from typing import Any, Dict

from fastapi import HTTPException
from pymongo import MongoClient

from config import DATABASE_NAME, DATABASE_URL

db = None
if DATABASE_URL:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def get_database():
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db


def create_document(database, collection_name: str, data: Dict[str, Any]) -> str:
    """Insert a document stamped with created_at/updated_at and return its id."""
    doc = dict(data)
    now = datetime.utcnow()
    doc.setdefault("created_at", now)
    doc.setdefault("updated_at", now)
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)
