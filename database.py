"""
Database Helper Functions

MongoDB helpers shared by the food catalog endpoints.
Every collection is addressed by name; documents come back with `_id` as a string.
"""

from pymongo import MongoClient, ASCENDING, TEXT
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timezone
import logging
import os
from dotenv import load_dotenv
from typing import Union, Optional, Dict, Any, List
from pydantic import BaseModel

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

_client = None
db = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]


class DatabaseUnavailable(Exception):
    """Raised when no database is configured."""


def _ensure_db():
    if db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return dict(data)


def _object_id(_id: Union[str, ObjectId]) -> Optional[ObjectId]:
    try:
        return ObjectId(_id)
    except (InvalidId, TypeError):
        return None


# CRUD helpers

def create_document(collection_name: str, data: Union[BaseModel, dict]) -> Optional[str]:
    _ensure_db()
    payload = _to_dict(data)
    now = datetime.now(timezone.utc)
    payload['created_at'] = now
    payload['updated_at'] = now
    result = db[collection_name].insert_one(payload)
    if not result.inserted_id:
        return None
    logger.debug("inserted %s into %s", result.inserted_id, collection_name)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, projection: Optional[dict] = None,
                  limit: Optional[int] = None, sort: Optional[list] = None) -> List[dict]:
    _ensure_db()
    cursor = db[collection_name].find(filter_dict or {}, projection)
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(int(limit))
    return [serialize_doc(doc) for doc in cursor]


def get_document(collection_name: str, filter_dict: dict, projection: Optional[dict] = None) -> Optional[dict]:
    _ensure_db()
    return serialize_doc(db[collection_name].find_one(filter_dict, projection))


def get_document_by_id(collection_name: str, _id: str, projection: Optional[dict] = None) -> Optional[dict]:
    _ensure_db()
    oid = _object_id(_id)
    if oid is None:
        return None
    return serialize_doc(db[collection_name].find_one({"_id": oid}, projection))


def update_document(collection_name: str, _id: str, update_data: Dict[str, Any]) -> bool:
    _ensure_db()
    payload = _to_dict(update_data)
    if not payload:
        return False
    update = {"$set": payload}
    update["$set"]["updated_at"] = datetime.now(timezone.utc)
    result = db[collection_name].update_one({"_id": ObjectId(_id)}, update)
    return result.modified_count > 0


def apply_update(collection_name: str, _id: str, update: Dict[str, Any], match_only: bool = False) -> bool:
    """Run raw update operators ($push, $pull, ...) against one document.

    Returns whether the document was modified, or merely matched when
    `match_only` is set.
    """
    _ensure_db()
    result = db[collection_name].update_one({"_id": ObjectId(_id)}, update)
    if match_only:
        return result.matched_count > 0
    return result.modified_count > 0


def delete_document(collection_name: str, _id: str) -> bool:
    _ensure_db()
    result = db[collection_name].delete_one({"_id": ObjectId(_id)})
    return result.deleted_count > 0


def delete_documents(collection_name: str, filter_dict: dict) -> int:
    _ensure_db()
    result = db[collection_name].delete_many(filter_dict)
    return result.deleted_count


def ensure_indexes():
    if db is None:
        logger.warning("Skipping index creation: database not configured")
        return
    db["product"].create_index([("title", TEXT), ("description", TEXT)])
    db["foodgroup"].create_index([("englishTitle", ASCENDING)], unique=True)
    db["category"].create_index([("englishTitle", ASCENDING)], unique=True)


# Utility

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    d = dict(doc)
    if "_id" in d:
        d["_id"] = str(d["_id"])  # convert ObjectId to string
    return d
