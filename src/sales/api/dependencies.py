"""Request dependencies: requester identity and the shipping config provider.

Sessions are issued by the authentication gateway in front of this
service, which forwards the signed-in user as ``X-User-Id`` and
``X-User-Role`` headers.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Request

from sales.exceptions import ForbiddenError, UnauthorizedError
from sales.shipping.provider import ShippingConfigProvider
from sales.shipping.settings import load_shipping_config

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Requester:
    id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def optional_requester(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Requester | None:
    if not x_user_id:
        return None
    return Requester(id=x_user_id, role=x_user_role or "customer")


def current_requester(requester: Requester | None = Depends(optional_requester)) -> Requester:
    if requester is None:
        raise UnauthorizedError()
    return requester


def admin_requester(requester: Requester = Depends(current_requester)) -> Requester:
    if not requester.is_admin:
        raise ForbiddenError()
    return requester


def ensure_can_view(order, requester: Requester | None) -> None:
    """Guest orders are reachable by id; customer orders only by their owner or an admin."""
    if order.user_id is None:
        return
    if requester is None:
        raise UnauthorizedError()
    if not (requester.is_admin or order.is_owned_by(requester.id)):
        raise ForbiddenError()


def get_shipping_provider(request: Request) -> ShippingConfigProvider:
    provider = getattr(request.app.state, "shipping_provider", None)
    if provider is None:
        provider = ShippingConfigProvider(load_shipping_config)
        request.app.state.shipping_provider = provider
    return provider
