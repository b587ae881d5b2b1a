# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import get_gateway, read_cart_token
from storefront.data.database import get_db
from storefront.domain.result import Err
from storefront.domain.schemas import CheckoutIn, CheckoutOut
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_gateway import GatewayError, PaymentGateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["checkout"])


@router.post("/checkout", response_model=CheckoutOut)
def create_checkout(
    request: Request,
    payload: CheckoutIn | None = None,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Buduje sesje checkoutu z koszyka inline albo z koszyka zapisanego pod X-Cart-Token.
    """
    if payload is not None and payload.cart is not None:
        lines = payload.cart
    else:
        token = read_cart_token(request)
        if not token:
            return JSONResponse(status_code=400, content={"error": "Cart token required"})
        lines = CartService(db).snapshot(token)

    base_url = str(request.base_url).rstrip("/")
    svc = CheckoutService(db, gateway)
    try:
        result = svc.create_session(
            lines,
            success_url=f"{base_url}/success",
            cancel_url=f"{base_url}/cart",
        )
    except GatewayError as e:
        logger.error(f"Checkout session could not be created: {e}")
        return JSONResponse(
            status_code=502,
            content={"error": "Payment provider unavailable. Please try again."},
        )

    if isinstance(result, Err):
        return JSONResponse(status_code=400, content={"error": result.error.message})
    return {"url": result.value.url}
