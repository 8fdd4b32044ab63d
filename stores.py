"""
Store adapters: one object per MongoDB collection.

Adapters are built from an explicit ``Database`` handle and return raw
documents; serialization for the wire happens in the route handlers.
"""
from typing import Any, Dict, List, Optional

from bson.objectid import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import (
    BOOKS,
    ORDERS,
    SELLER_REQUESTS,
    USERS,
    create_document,
    parse_object_id,
    utcnow,
)
from errors import Conflict
from schemas import Book, Order, Role, SellerRequest, User


def _as_object_id(value) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    return parse_object_id(value)


class UserStore:
    def __init__(self, db: Database):
        self.collection = db[USERS]

    def upsert(self, user: User) -> Dict[str, Any]:
        """Record a login: insert unknown users as customers, refresh known ones.

        The stored role is never touched here.
        """
        now = utcnow()
        self.collection.update_one(
            {"email": user.email},
            {
                "$set": {"lastLoggedIn": now, "updatedAt": now},
                "$setOnInsert": {
                    "name": user.name,
                    "image": user.image,
                    "role": Role.customer.value,
                    "createdAt": now,
                },
            },
            upsert=True,
        )
        return self.find_by_email(user.email)

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"email": email})

    def get_role(self, email: str) -> Optional[str]:
        doc = self.collection.find_one({"email": email}, {"role": 1})
        if not doc or not doc.get("role"):
            return None
        return str(doc["role"]).strip().lower()

    def list_all(self) -> List[Dict[str, Any]]:
        return list(self.collection.find().sort("createdAt", DESCENDING))

    def update_profile(self, email: str, fields: Dict[str, Any]) -> bool:
        update = {**fields, "updatedAt": utcnow()}
        res = self.collection.update_one({"email": email}, {"$set": update})
        return res.matched_count > 0

    def set_role(self, email: str, role: Role) -> bool:
        res = self.collection.update_one(
            {"email": email},
            {"$set": {"role": Role(role).value, "updatedAt": utcnow()}},
        )
        return res.matched_count > 0


class BookStore:
    def __init__(self, db: Database):
        self.collection = db[BOOKS]

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return list(self.collection.find(filters or {}).sort("createdAt", DESCENDING))

    def get(self, book_id) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": _as_object_id(book_id)})

    def create(self, book: Book) -> str:
        return create_document(self.collection, book)

    def update(self, book_id, fields: Dict[str, Any]) -> bool:
        update = {**fields, "updatedAt": utcnow()}
        res = self.collection.update_one({"_id": _as_object_id(book_id)}, {"$set": update})
        return res.matched_count > 0

    def list_by_seller(self, email: str) -> List[Dict[str, Any]]:
        return self.list({"seller.email": email})

    def take_one(self, book_id, payment_status: str = "paid") -> Optional[Dict[str, Any]]:
        """Decrement stock by one and stamp the payment marker.

        The stock check is part of the update filter, so this returns ``None``
        instead of ever going below zero.
        """
        return self.collection.find_one_and_update(
            {"_id": _as_object_id(book_id), "quantity": {"$gte": 1}},
            {
                "$inc": {"quantity": -1},
                "$set": {"paymentStatus": payment_status, "updatedAt": utcnow()},
            },
            return_document=ReturnDocument.AFTER,
        )

    def restock_one(self, book_id) -> None:
        self.collection.update_one(
            {"_id": _as_object_id(book_id)},
            {"$inc": {"quantity": 1}, "$set": {"updatedAt": utcnow()}},
        )


class OrderStore:
    def __init__(self, db: Database):
        self.collection = db[ORDERS]

    def find_by_transaction(self, transaction_id: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"transactionId": transaction_id})

    def insert(self, order: Order) -> str:
        return create_document(self.collection, order)

    def list_by_customer(self, email: str) -> List[Dict[str, Any]]:
        return list(self.collection.find({"customer": email}).sort("createdAt", DESCENDING))

    def list_by_seller(self, email: str) -> List[Dict[str, Any]]:
        return list(self.collection.find({"seller.email": email}).sort("createdAt", DESCENDING))

    def update_status(self, order_id, status: str) -> bool:
        res = self.collection.update_one(
            {"_id": _as_object_id(order_id)},
            {"$set": {"status": status, "updatedAt": utcnow()}},
        )
        return res.matched_count > 0

    def delete(self, order_id) -> bool:
        res = self.collection.delete_one({"_id": _as_object_id(order_id)})
        return res.deleted_count > 0


class SellerRequestStore:
    def __init__(self, db: Database):
        self.collection = db[SELLER_REQUESTS]

    def create(self, email: str) -> str:
        if self.exists(email):
            raise Conflict("Seller request already exists")
        try:
            return create_document(self.collection, SellerRequest(email=email))
        except DuplicateKeyError:
            raise Conflict("Seller request already exists")

    def exists(self, email: str) -> bool:
        return self.collection.find_one({"email": email}) is not None

    def list_all(self) -> List[Dict[str, Any]]:
        return list(self.collection.find().sort("createdAt", DESCENDING))

    def delete(self, email: str) -> bool:
        res = self.collection.delete_one({"email": email})
        return res.deleted_count > 0
