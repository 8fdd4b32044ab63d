import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "book-courier-db"
    jwt_secret: str = "devsecret"
    jwt_algo: str = "HS256"
    stripe_secret: str = ""
    client_domain: str = "http://localhost:5173"
    currency: str = "usd"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            database_name=os.getenv("DATABASE_NAME", defaults.database_name),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            jwt_algo=os.getenv("JWT_ALGO", defaults.jwt_algo),
            stripe_secret=os.getenv("STRIPE_SECRET", defaults.stripe_secret),
            client_domain=os.getenv("CLIENT_DOMAIN", defaults.client_domain).rstrip("/"),
            currency=os.getenv("CURRENCY", defaults.currency),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
