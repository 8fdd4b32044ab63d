import logging
from typing import Any, Dict, List

from errors import NotFound
from schemas import Role
from stores import SellerRequestStore, UserStore

logger = logging.getLogger(__name__)


class SellerPromotion:
    """Customer -> seller promotion, keyed by email.

    A request is pending while it exists. Approval writes the role first and
    then removes the request; if the second write never happens the request
    lists as ``Accepted`` and approving it again completes the transition.
    """

    def __init__(self, users: UserStore, requests: SellerRequestStore):
        self.users = users
        self.requests = requests

    def request(self, email: str) -> str:
        request_id = self.requests.create(email)
        logger.info("Seller request created for %s", email)
        return request_id

    def status(self, email: str) -> bool:
        return self.requests.exists(email)

    def list_requests(self) -> List[Dict[str, Any]]:
        result = []
        for req in self.requests.list_all():
            role = self.users.get_role(req["email"])
            req["role"] = role
            req["status"] = "Accepted" if role == Role.seller.value else "Pending"
            result.append(req)
        return result

    def approve(self, email: str) -> None:
        if not self.requests.exists(email):
            raise NotFound("Seller request not found")
        if not self.users.set_role(email, Role.seller):
            raise NotFound("User not found")
        self.requests.delete(email)
        logger.info("Seller request approved for %s", email)

    def reject(self, email: str) -> None:
        if not self.requests.delete(email):
            raise NotFound("Seller request not found")
        logger.info("Seller request rejected for %s", email)
