"""
MongoDB connection and document helpers.

The client is created once per process by ``connect`` and handed to the
application; nothing in this module keeps a global handle.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Tuple, Union

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from errors import BadRequest

logger = logging.getLogger(__name__)

USERS = "users"
BOOKS = "books"
ORDERS = "orders"
SELLER_REQUESTS = "sellerRequests"

INDEXES = [
    (USERS, [("email", ASCENDING)], True),
    (ORDERS, [("transactionId", ASCENDING)], True),
    (SELLER_REQUESTS, [("email", ASCENDING)], True),
    (BOOKS, [("seller.email", ASCENDING)], False),
    (ORDERS, [("customer", ASCENDING)], False),
    (ORDERS, [("seller.email", ASCENDING)], False),
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def connect(settings: Settings) -> Tuple[MongoClient, Database]:
    client = MongoClient(settings.database_url, tz_aware=True)
    return client, client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    for name, keys, unique in INDEXES:
        try:
            db[name].create_index(keys, unique=unique)
        except PyMongoError as exc:
            logger.warning("Unable to ensure index %s on %s: %s", keys, name, exc)


def create_document(collection: Collection, data: Union[BaseModel, Dict[str, Any]]) -> str:
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    now = utcnow()
    if not doc.get("createdAt"):
        doc["createdAt"] = now
    doc["updatedAt"] = now
    result = collection.insert_one(doc)
    return str(result.inserted_id)


def serialize_doc(doc):
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.get("_id")
    if isinstance(_id, ObjectId):
        doc["id"] = str(_id)
        del doc["_id"]
    # convert datetimes
    for k, v in list(doc.items()):
        if isinstance(v, datetime):
            doc[k] = v.isoformat()
    return doc


def parse_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise BadRequest("Invalid id")
