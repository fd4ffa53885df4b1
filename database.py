"""
Database Helper Functions

MongoDB helpers shared by the session and user-stats stores.
Every mutation goes through a single server-side operation so that
concurrent requests never overwrite each other from stale copies.
"""

from pymongo import MongoClient, ReturnDocument, ASCENDING
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timezone
from typing import Union, Optional, Dict, Any, List
from pydantic import BaseModel

import config

_client = None
db = None

if config.DATABASE_URL and config.DATABASE_NAME:
    _client = MongoClient(config.DATABASE_URL)
    db = _client[config.DATABASE_NAME]


def utcnow() -> datetime:
    """Naive UTC, matching what pymongo hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _require_db():
    if db is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db

# Helper: ensure dict

def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return data.copy()

# Helper: convert str id to ObjectId (None when malformed)

def to_object_id(id_val: Union[str, ObjectId]) -> Optional[ObjectId]:
    if isinstance(id_val, ObjectId):
        return id_val
    try:
        return ObjectId(id_val)
    except (InvalidId, TypeError):
        return None


def _query(id_or_filter: Union[str, ObjectId, dict]) -> Optional[dict]:
    if isinstance(id_or_filter, dict):
        return id_or_filter
    oid = to_object_id(id_or_filter)
    if oid is None:
        return None
    return {"_id": oid}


def _out(doc: Optional[dict]) -> Optional[Dict[str, Any]]:
    if not doc:
        return None
    doc['id'] = str(doc.pop('_id'))
    return doc


def ensure_indexes():
    """Create the indexes the stores rely on. Safe to call repeatedly."""
    database = _require_db()
    database["userstats"].create_index([("wallet_address", ASCENDING)], unique=True)
    database["gamesession"].create_index([("status", ASCENDING), ("expiration_timestamp", ASCENDING)])
    database["gamesession"].create_index([("user_wallet", ASCENDING), ("created_at", ASCENDING)])
    database["achievementnft"].create_index([("user_wallet", ASCENDING)])


# Helper functions for common database operations

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a single document with timestamp"""
    database = _require_db()
    data_dict = _to_dict(data)
    now = utcnow()
    data_dict['created_at'] = now
    data_dict['updated_at'] = now

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: dict = None, limit: int = None,
                  sort: List[tuple] = None) -> List[Dict[str, Any]]:
    """Get documents from collection"""
    database = _require_db()
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return [_out(d) for d in cursor]


def get_document_by_id(collection_name: str, id_val: Union[str, ObjectId]) -> Optional[Dict[str, Any]]:
    database = _require_db()
    query = _query(id_val)
    if query is None:
        return None
    return _out(database[collection_name].find_one(query))


def find_one(collection_name: str, filter_dict: dict) -> Optional[Dict[str, Any]]:
    database = _require_db()
    return _out(database[collection_name].find_one(filter_dict))


def update_document(collection_name: str, id_or_filter: Union[str, ObjectId, dict], update_dict: dict,
                    push: dict = None, inc: dict = None) -> Optional[Dict[str, Any]]:
    """Update the first document matching the id or filter and return the updated version.

    Returns None when nothing matches, which for a filter carrying an
    expected field value means the compare-and-swap lost.
    """
    database = _require_db()
    query = _query(id_or_filter)
    if query is None:
        return None
    update = {"$set": {**update_dict, "updated_at": utcnow()}}
    if push:
        update["$push"] = push
    if inc:
        update["$inc"] = inc
    doc = database[collection_name].find_one_and_update(query, update, return_document=ReturnDocument.AFTER)
    return _out(doc)


def upsert_document(collection_name: str, filter_dict: dict, update_dict: dict,
                    on_insert: dict = None) -> Dict[str, Any]:
    """Update or create the document matching filter_dict in one operation"""
    database = _require_db()
    now = utcnow()
    update = {
        "$set": {**update_dict, "updated_at": now},
        "$setOnInsert": {**(on_insert or {}), "created_at": now},
    }
    doc = database[collection_name].find_one_and_update(
        filter_dict, update, upsert=True, return_document=ReturnDocument.AFTER
    )
    return _out(doc)


def update_many(collection_name: str, filter_dict: dict, update_dict: dict) -> int:
    """Apply $set to every matching document; returns how many changed"""
    database = _require_db()
    result = database[collection_name].update_many(
        filter_dict, {"$set": {**update_dict, "updated_at": utcnow()}}
    )
    return result.modified_count


def list_collections(limit: int = 10) -> List[str]:
    return _require_db().list_collection_names()[:limit]
