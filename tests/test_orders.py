from datetime import datetime, timezone

import pytest
from bson import ObjectId


@pytest.fixture
def make_order(db):
    def _make(customer="reader@books.com", seller_email="seller@books.com", transaction_id=None, status="pending"):
        doc = {
            "bookId": str(ObjectId()),
            "title": "X",
            "transactionId": transaction_id or f"pi_{ObjectId()}",
            "customer": customer,
            "seller": {"name": "Seller", "email": seller_email},
            "status": status,
            "quantity": 1,
            "price": 10.0,
            "createdAt": datetime.now(timezone.utc),
        }
        return str(db["orders"].insert_one(doc).inserted_id)

    return _make


def test_my_orders_lists_callers_orders(client, auth, make_order):
    mine = make_order(customer="reader@books.com")
    make_order(customer="other@books.com")
    response = client.get("/dashboard/my-orders", headers=auth("reader@books.com"))
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [mine]


def test_my_orders_by_email_self_scoped(client, auth, make_order):
    mine = make_order(customer="reader@books.com")
    response = client.get("/dashboard/my-orders/reader@books.com", headers=auth("reader@books.com"))
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [mine]


def test_my_orders_cross_account_is_forbidden(client, auth, make_order):
    make_order(customer="other@books.com")
    response = client.get("/dashboard/my-orders/other@books.com", headers=auth("reader@books.com"))
    assert response.status_code == 403


def test_my_orders_requires_token(client):
    assert client.get("/dashboard/my-orders").status_code == 401


def test_manage_orders_by_seller(client, make_order):
    sold = make_order(seller_email="seller@books.com")
    make_order(seller_email="other-seller@books.com")
    response = client.get("/dashboard/manage-orders/seller@books.com")
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [sold]


def test_update_order_status(client, db, make_order):
    order_id = make_order()
    response = client.patch(f"/orders/{order_id}", json={"status": "shipped"})
    assert response.status_code == 200
    assert db["orders"].find_one({"_id": ObjectId(order_id)})["status"] == "shipped"


def test_update_order_status_rejects_unknown_status(client, make_order):
    order_id = make_order()
    assert client.patch(f"/orders/{order_id}", json={"status": "lost"}).status_code == 422


def test_update_order_status_missing(client):
    assert client.patch(f"/orders/{ObjectId()}", json={"status": "shipped"}).status_code == 404


def test_cancel_order(client, db, make_order):
    order_id = make_order()
    response = client.delete(f"/orders/{order_id}")
    assert response.status_code == 200
    assert db["orders"].count_documents({}) == 0


def test_cancel_order_missing(client):
    assert client.delete(f"/orders/{ObjectId()}").status_code == 404


def test_cancel_order_invalid_id(client):
    assert client.delete("/orders/nope").status_code == 400


def test_my_orders_by_email_ignores_case(client, auth, make_order):
    mine = make_order(customer="reader@books.com")
    response = client.get("/dashboard/my-orders/Reader@Books.com", headers=auth("reader@books.com"))
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [mine]
