"""
Stripe checkout: session creation and order creation on payment confirmation.

Confirmation is safe to replay. The Stripe payment intent id is the
idempotency key (``transactionId``, unique in the orders collection), stock
is taken with a conditional single-document update, and a decrement that
cannot be matched by an inserted order is given back.
"""
import logging
from typing import Any, Dict, Optional

import stripe
from bson.objectid import ObjectId
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from config import Settings
from errors import InternalError, NotFound, OutOfStock, PaymentIncomplete, ServiceError
from schemas import Order
from stores import BookStore, OrderStore

logger = logging.getLogger(__name__)


class CheckoutSession(BaseModel):
    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    payment_intent: Optional[str] = None
    amount_total: Optional[int] = None
    metadata: Dict[str, str] = {}

    @classmethod
    def from_stripe(cls, session) -> "CheckoutSession":
        intent = session.payment_intent
        if intent is not None and not isinstance(intent, str):
            intent = intent.id
        metadata = session.metadata or {}
        return cls(
            id=session.id,
            url=session.url,
            payment_status=session.payment_status,
            payment_intent=intent,
            amount_total=session.amount_total,
            metadata={key: metadata[key] for key in metadata.keys()},
        )


class StripeGateway:
    def __init__(self, api_key: str):
        self.api_key = api_key

    def create_session(self, **params) -> CheckoutSession:
        session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        return CheckoutSession.from_stripe(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        return CheckoutSession.from_stripe(session)


class CustomerInfo(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class PurchaseRequest(BaseModel):
    bookId: str
    title: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    customer: CustomerInfo


class PaymentConfirmation(BaseModel):
    success: bool = True
    isExisting: bool
    message: str
    transactionId: str
    orderId: str


class CheckoutOrchestrator:
    def __init__(self, books: BookStore, orders: OrderStore, gateway, settings: Settings):
        self.books = books
        self.orders = orders
        self.gateway = gateway
        self.settings = settings

    def create_session(self, purchase: PurchaseRequest) -> str:
        product_data: Dict[str, Any] = {"name": purchase.title}
        if purchase.description:
            product_data["description"] = purchase.description
        if purchase.image:
            product_data["images"] = [purchase.image]
        session = self.gateway.create_session(
            line_items=[
                {
                    "price_data": {
                        "currency": self.settings.currency,
                        "product_data": product_data,
                        "unit_amount": int(round(purchase.price * 100)),
                    },
                    "quantity": purchase.quantity,
                }
            ],
            customer_email=purchase.customer.email,
            mode="payment",
            metadata={"bookId": purchase.bookId, "customer": purchase.customer.email},
            success_url=f"{self.settings.client_domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.settings.client_domain}/book/{purchase.bookId}",
        )
        logger.info("Created checkout session %s for book %s", session.id, purchase.bookId)
        return session.url

    def confirm_payment(self, session_id: str) -> PaymentConfirmation:
        try:
            return self._confirm(session_id)
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Payment confirmation failed for session %s", session_id)
            raise InternalError(f"Error processing order: {exc}")

    def _confirm(self, session_id: str) -> PaymentConfirmation:
        session = self.gateway.retrieve_session(session_id)
        if session.payment_status != "paid":
            logger.warning("Session %s not paid (%s)", session_id, session.payment_status)
            raise PaymentIncomplete()

        transaction_id = session.payment_intent
        if not transaction_id:
            raise InternalError("Session has no payment intent")
        existing = self.orders.find_by_transaction(transaction_id)
        if existing:
            return self._replayed(transaction_id, existing)

        book_id = session.metadata.get("bookId")
        book = self.books.get(book_id) if book_id and ObjectId.is_valid(book_id) else None
        if not book:
            raise NotFound("Book not found")
        if book.get("quantity", 0) < 1:
            raise OutOfStock()

        order = Order(
            bookId=str(book["_id"]),
            title=book.get("title") or "Unknown Book",
            image=book.get("image") or "",
            category=book.get("category") or "N/A",
            transactionId=transaction_id,
            customer=session.metadata.get("customer"),
            seller=book.get("seller"),
            quantity=1,
            price=(session.amount_total or 0) / 100,
        )
        if self.books.take_one(book["_id"]) is None:
            logger.warning("Lost stock race on book %s for %s", book["_id"], transaction_id)
            raise OutOfStock()

        try:
            order_id = self.orders.insert(order)
        except DuplicateKeyError:
            self.books.restock_one(book["_id"])
            existing = self.orders.find_by_transaction(transaction_id)
            if not existing:
                raise
            return self._replayed(transaction_id, existing)
        except Exception:
            self.books.restock_one(book["_id"])
            raise

        logger.info("Created order %s for %s", order_id, transaction_id)
        return PaymentConfirmation(
            isExisting=False,
            message="Order created successfully",
            transactionId=transaction_id,
            orderId=order_id,
        )

    def _replayed(self, transaction_id: str, existing: Dict[str, Any]) -> PaymentConfirmation:
        logger.info("Order for %s already exists", transaction_id)
        return PaymentConfirmation(
            isExisting=True,
            message="Order already exists",
            transactionId=transaction_id,
            orderId=str(existing["_id"]),
        )
