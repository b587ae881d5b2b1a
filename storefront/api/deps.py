# storefront/api/deps.py
from fastapi import Request

from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway

CART_TOKEN_HEADER = "X-Cart-Token"


# instancje buduje create_app i trzyma w app.state, testy podmieniaja je na fake
def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_lock_service(request: Request) -> LockService:
    return request.app.state.lock_service


def get_notifier(request: Request) -> NotificationService:
    return request.app.state.notifier


def read_cart_token(request: Request) -> str | None:
    return (
        request.headers.get(CART_TOKEN_HEADER)
        or request.query_params.get("session_token")
        or request.query_params.get("cart_token")
        or None
    )
