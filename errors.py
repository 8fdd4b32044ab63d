"""
HTTP errors raised by the Book Courier API.

Every kind carries a fixed status code and a default detail, so handlers can
simply ``raise NotFound("Book not found")`` the same way they would raise an
``HTTPException``.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException


class ServiceError(HTTPException):
    status_code = 500
    default_detail: Any = "Internal server error"

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=self.default_detail if detail is None else detail,
            headers=headers,
        )


class BadRequest(ServiceError):
    status_code = 400
    default_detail = "Bad request"


class Unauthorized(ServiceError):
    status_code = 401
    default_detail = "Unauthorized access"

    def __init__(self, detail: Any = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ServiceError):
    status_code = 403
    default_detail = "Forbidden access"


class NotFound(ServiceError):
    status_code = 404
    default_detail = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_detail = "Already exists"


class PaymentIncomplete(ServiceError):
    status_code = 400
    default_detail = "Payment not completed"


class OutOfStock(ServiceError):
    status_code = 400
    default_detail = "Book is out of stock"


class InternalError(ServiceError):
    status_code = 500
    default_detail = "Internal server error"
