import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import stripe
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import AccessGate, TokenVerifier
from checkout import CheckoutOrchestrator, StripeGateway
from config import Settings
from database import connect, ensure_indexes
from promotion import SellerPromotion
from routes import books_router, health_router, orders_router, promotion_router, users_router
from stores import BookStore, OrderStore, SellerRequestStore, UserStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    gateway=None,
    verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    """Build the API around explicitly passed collaborators.

    Anything not supplied is created from ``settings``. A Mongo client
    created here belongs to the app and is closed on shutdown; an injected
    ``db`` is left to its owner.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client = None
    if db is None:
        client, db = connect(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(db)
        logger.info("Book Courier API ready (database %s)", db.name)
        yield
        if client is not None:
            client.close()

    app = FastAPI(title="Book Courier API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_domain],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    users = UserStore(db)
    books = BookStore(db)
    orders = OrderStore(db)
    requests = SellerRequestStore(db)

    gate = AccessGate(verifier or TokenVerifier(settings.jwt_secret, settings.jwt_algo), users)
    checkout = CheckoutOrchestrator(books, orders, gateway or StripeGateway(settings.stripe_secret), settings)
    promotion = SellerPromotion(users, requests)

    app.include_router(health_router(db, settings))
    app.include_router(users_router(gate, users, requests))
    app.include_router(books_router(gate, books, users))
    app.include_router(orders_router(gate, orders, books, checkout))
    app.include_router(promotion_router(gate, promotion))

    @app.exception_handler(PyMongoError)
    async def database_error(request: Request, exc: PyMongoError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(stripe.StripeError)
    async def payment_error(request: Request, exc: stripe.StripeError):
        logger.error("Stripe error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": exc.user_message or str(exc)})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
