"""
Database helpers

MongoDB connection shared by the API. Configure with:
- DATABASE_URL  -> mongodb connection string
- DATABASE_NAME -> database to use

When either is missing `db` stays None and the API reports the database
as unavailable.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db = None
if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]
    logger.info("Connected to database %s", DATABASE_NAME)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if db is None:
        raise RuntimeError("Database not initialized")
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = datetime.now(timezone.utc)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None) -> list:
    if db is None:
        raise RuntimeError("Database not initialized")
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
