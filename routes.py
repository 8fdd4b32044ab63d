"""
Route construction.

Each ``*_router`` function receives the collaborators it needs and returns an
``APIRouter``; nothing here reaches for a global store or client.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr, Field, field_validator
from pymongo.database import Database

from auth import AccessGate, Caller
from checkout import CheckoutOrchestrator, PaymentConfirmation, PurchaseRequest
from config import Settings
from database import parse_object_id, serialize_doc
from errors import BadRequest, Forbidden, NotFound
from promotion import SellerPromotion
from schemas import Book, BookStatus, OrderStatus, Role, SellerInfo, User
from stores import BookStore, OrderStore, SellerRequestStore, UserStore

logger = logging.getLogger(__name__)


# ----------------------- Models -----------------------
class UserLoginBody(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class UserProfileBody(BaseModel):
    name: Optional[str] = None
    image: Optional[str] = None


class RoleUpdateBody(BaseModel):
    email: EmailStr
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class BookCreateBody(BaseModel):
    title: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)
    category: Optional[str] = None
    status: BookStatus = "published"


class BookUpdateBody(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    status: Optional[BookStatus] = None


class OrderStatusBody(BaseModel):
    status: OrderStatus


# ----------------------- Health -----------------------
def health_router(db: Database, settings: Settings) -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/")
    def root():
        return {"message": "Book Courier API running"}

    @router.get("/test")
    def test_database():
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
            "database_name": db.name,
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except Exception as e:
            response["database"] = f"❌ Error: {str(e)[:80]}"
        return response

    return router


# ----------------------- Users -----------------------
def users_router(gate: AccessGate, users: UserStore, requests: SellerRequestStore) -> APIRouter:
    router = APIRouter(tags=["users"])

    @router.post("/users")
    def save_user(body: UserLoginBody):
        return serialize_doc(users.upsert(User(**body.model_dump())))

    @router.get("/users/role")
    def get_role(caller: Caller = Depends(gate.verify_identity)):
        return {"role": users.get_role(caller.email)}

    @router.get("/users")
    def list_users(_: Caller = Depends(gate.require_admin)):
        return [serialize_doc(u) for u in users.list_all()]

    @router.patch("/users/{email}")
    def update_user(email: str, body: UserProfileBody):
        fields = body.model_dump(exclude_none=True)
        if not fields:
            raise BadRequest("Nothing to update")
        if not users.update_profile(email, fields):
            raise NotFound("User not found")
        return {"ok": True}

    @router.patch("/update-role")
    def update_role(body: RoleUpdateBody, caller: Caller = Depends(gate.require_admin)):
        if not users.set_role(body.email, body.role):
            raise NotFound("User not found")
        requests.delete(body.email)
        logger.info("%s set role of %s to %s", caller.email, body.email, body.role.value)
        return {"ok": True, "email": body.email, "role": body.role.value}

    return router


# ----------------------- Books -----------------------
def books_router(gate: AccessGate, books: BookStore, users: UserStore) -> APIRouter:
    router = APIRouter(tags=["books"])

    @router.get("/books")
    def list_books(email: Optional[str] = None, category: Optional[str] = None, status: Optional[BookStatus] = None, q: Optional[str] = None):
        filt = {}
        if email:
            filt["seller.email"] = email
        if category:
            filt["category"] = category
        if status:
            filt["status"] = status
        if q:
            filt["title"] = {"$regex": q, "$options": "i"}
        return [serialize_doc(b) for b in books.list(filt)]

    @router.get("/books/{book_id}")
    def get_book(book_id: str):
        book = books.get(parse_object_id(book_id))
        if not book:
            raise NotFound("Book not found")
        return serialize_doc(book)

    @router.post("/books")
    def create_book(body: BookCreateBody, caller: Caller = Depends(gate.require_seller)):
        profile = users.find_by_email(caller.email) or {}
        seller = SellerInfo(name=profile.get("name"), email=caller.email, image=profile.get("image"))
        book_id = books.create(Book(**body.model_dump(), seller=seller))
        logger.info("Seller %s created book %s", caller.email, book_id)
        return {"id": book_id}

    @router.patch("/books/{book_id}")
    def update_book(book_id: str, body: BookUpdateBody):
        fields = body.model_dump(exclude_none=True)
        if not fields:
            raise BadRequest("Nothing to update")
        if not books.update(parse_object_id(book_id), fields):
            raise NotFound("Book not found")
        return {"ok": True}

    return router


# ----------------------- Orders -----------------------
def orders_router(gate: AccessGate, orders: OrderStore, books: BookStore, checkout: CheckoutOrchestrator) -> APIRouter:
    router = APIRouter(tags=["orders"])

    @router.post("/create-checkout-session")
    def create_checkout_session(body: PurchaseRequest):
        return {"url": checkout.create_session(body)}

    @router.patch("/dashboard/payment-success", response_model=PaymentConfirmation)
    def payment_success(session_id: str = Query(..., min_length=1)):
        return checkout.confirm_payment(session_id)

    @router.get("/dashboard/my-orders")
    def my_orders(caller: Caller = Depends(gate.verify_identity)):
        return [serialize_doc(o) for o in orders.list_by_customer(caller.email)]

    @router.get("/dashboard/my-orders/{email}")
    def my_orders_by_email(email: str, caller: Caller = Depends(gate.verify_identity)):
        if email.lower() != caller.email.lower():
            raise Forbidden("Forbidden access")
        return [serialize_doc(o) for o in orders.list_by_customer(caller.email)]

    @router.get("/dashboard/manage-orders/{email}")
    def manage_orders(email: str):
        return [serialize_doc(o) for o in orders.list_by_seller(email)]

    @router.get("/dashboard/my-inventory/{email}")
    def my_inventory(email: str):
        return [serialize_doc(b) for b in books.list_by_seller(email)]

    @router.patch("/orders/{order_id}")
    def update_order_status(order_id: str, body: OrderStatusBody):
        if not orders.update_status(parse_object_id(order_id), body.status):
            raise NotFound("Order not found")
        return {"ok": True, "status": body.status}

    @router.delete("/orders/{order_id}")
    def cancel_order(order_id: str):
        if not orders.delete(parse_object_id(order_id)):
            raise NotFound("Order not found")
        return {"ok": True}

    return router


# ----------------------- Seller requests -----------------------
def promotion_router(gate: AccessGate, promotion: SellerPromotion) -> APIRouter:
    router = APIRouter(tags=["seller-requests"])

    @router.post("/become-seller")
    def become_seller(caller: Caller = Depends(gate.verify_identity)):
        request_id = promotion.request(caller.email)
        return {"id": request_id, "email": caller.email}

    @router.get("/seller-requests")
    def list_seller_requests(_: Caller = Depends(gate.require_admin)):
        return [serialize_doc(r) for r in promotion.list_requests()]

    @router.get("/seller-request/status")
    def seller_request_status(caller: Caller = Depends(gate.verify_identity)):
        return {"pending": promotion.status(caller.email)}

    @router.delete("/seller-requests/{email}")
    def reject_seller_request(email: str, _: Caller = Depends(gate.require_admin)):
        promotion.reject(email)
        return {"ok": True}

    @router.patch("/seller-requests/{email}/approve")
    def approve_seller_request(email: str, _: Caller = Depends(gate.require_admin)):
        promotion.approve(email)
        return {"ok": True, "email": email, "role": Role.seller.value}

    return router
