from datetime import datetime, timezone

import jwt
import mongomock
import pytest
from fastapi.testclient import TestClient

from checkout import CheckoutSession
from config import Settings
from main import create_app

SECRET = "test-secret-for-book-courier-tokens"


class FakeGateway:
    """In-memory stand-in for Stripe checkout sessions."""

    def __init__(self):
        self.sessions = {}
        self.created = []

    def create_session(self, **params):
        self.created.append(params)
        session_id = f"cs_test_{len(self.created)}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status="unpaid",
            metadata=params.get("metadata", {}),
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_id):
        return self.sessions[session_id]

    def add_session(self, session_id, book_id, customer, payment_status="paid", payment_intent="pi_test_1", amount_total=1000):
        self.sessions[session_id] = CheckoutSession(
            id=session_id,
            url=f"https://checkout.stripe.test/{session_id}",
            payment_status=payment_status,
            payment_intent=payment_intent,
            amount_total=amount_total,
            metadata={"bookId": book_id, "customer": customer},
        )
        return self.sessions[session_id]


@pytest.fixture
def settings():
    return Settings(jwt_secret=SECRET, client_domain="http://localhost:5173", stripe_secret="sk_test", log_level="DEBUG")


@pytest.fixture
def db():
    return mongomock.MongoClient(tz_aware=True)["book-courier-test"]


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, db, gateway):
    app = create_app(settings=settings, db=db, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth():
    def _auth(email, **claims):
        token = jwt.encode({"email": email, **claims}, SECRET, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}

    return _auth


@pytest.fixture
def make_user(db):
    def _make(email, role="customer", name="Test User"):
        now = datetime.now(timezone.utc)
        db["users"].insert_one({
            "email": email,
            "name": name,
            "image": None,
            "role": role,
            "createdAt": now,
            "updatedAt": now,
        })
        return email

    return _make


@pytest.fixture
def make_book(db):
    def _make(title="X", price=10, quantity=1, seller_email="seller@books.com", **extra):
        doc = {
            "title": title,
            "description": "A book",
            "image": "https://img.test/x.png",
            "price": price,
            "quantity": quantity,
            "category": "Fiction",
            "status": "published",
            "seller": {"name": "Seller", "email": seller_email, "image": None},
            "createdAt": datetime.now(timezone.utc),
            **extra,
        }
        return str(db["books"].insert_one(doc).inserted_id)

    return _make
