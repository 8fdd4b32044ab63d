"""
Database Schemas for Book Courier

Each Pydantic model corresponds to one MongoDB collection.
Collections:
- users: customers, sellers and admins
- books: seller inventory
- orders: one order per paid checkout session
- sellerRequests: pending requests to become a seller
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    customer = "customer"
    seller = "seller"
    admin = "admin"


BookStatus = Literal["draft", "published"]
OrderStatus = Literal["pending", "shipped", "delivered", "cancelled"]


class User(BaseModel):
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    name: Optional[str] = Field(None, description="Display name")
    email: EmailStr
    image: Optional[str] = Field(None, description="Avatar URL")
    role: Role = Role.customer
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    lastLoggedIn: Optional[datetime] = None


class SellerInfo(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    image: Optional[str] = None


class Book(BaseModel):
    title: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(..., ge=0, description="Unit price in dollars")
    quantity: int = Field(..., ge=0, description="Copies in stock")
    category: Optional[str] = None
    status: BookStatus = "published"
    seller: SellerInfo
    paymentStatus: Optional[str] = None


class Order(BaseModel):
    bookId: str
    title: str
    image: Optional[str] = None
    category: Optional[str] = None
    transactionId: str = Field(..., description="Stripe payment intent id")
    customer: EmailStr
    seller: Optional[Dict[str, Any]] = None
    status: OrderStatus = "pending"
    quantity: int = 1
    price: float
    createdAt: Optional[datetime] = None


class SellerRequest(BaseModel):
    email: EmailStr
    createdAt: Optional[datetime] = None
