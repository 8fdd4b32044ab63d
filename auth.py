import logging
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from errors import Forbidden, Unauthorized
from schemas import Role
from stores import UserStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class Caller(BaseModel):
    email: str
    claims: Dict[str, Any] = {}


class TokenVerifier:
    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def verify(self, token: str) -> Dict[str, Any]:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")
        if not claims.get("email"):
            raise Unauthorized("Invalid token payload")
        return claims


class AccessGate:
    """Bearer-token verification plus role predicates, used as dependencies.

    ``verify_identity`` resolves the caller from the token alone. The role
    guards look the caller's role up in the user store on every request, so
    a role change takes effect immediately; a missing user has no role and
    is denied.
    """

    def __init__(self, verifier: TokenVerifier, users: UserStore):
        self.verifier = verifier
        self.users = users
        self.require_admin = self.require_role(Role.admin)
        self.require_seller = self.require_role(Role.seller)

    def verify_identity(self, credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> Caller:
        if credentials is None or not credentials.credentials:
            raise Unauthorized("Unauthorized access")
        claims = self.verifier.verify(credentials.credentials)
        return Caller(email=claims["email"], claims=claims)

    def require_role(self, role: Role):
        def dependency(caller: Caller = Depends(self.verify_identity)) -> Caller:
            actual = self.users.get_role(caller.email)
            if actual != role.value:
                logger.warning("Denied %s: %s required, has %s", caller.email, role.value, actual)
                raise Forbidden({"message": f"{role.value.capitalize()} only", "role": actual})
            return caller

        return dependency
