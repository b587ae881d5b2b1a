# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from storefront.api.deps import get_gateway, get_lock_service, get_notifier
from storefront.data.database import get_db
from storefront.domain.result import Err
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.order_processor import CHECKOUT_COMPLETED, OrderProcessor
from storefront.services.payment_gateway import PaymentGateway
from storefront.services.webhook_verifier import Rejected, verify
from storefront.utils.settings import STRIPE_WEBHOOK_SECRET, WEBHOOK_SIGNATURE_HEADER
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhooks")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    lock_service: LockService = Depends(get_lock_service),
    notifier: NotificationService = Depends(get_notifier),
):
    # podpis liczony z surowego body, nie z przeparsowanego jsona
    payload = await request.body()
    event = verify(payload, request.headers.get(WEBHOOK_SIGNATURE_HEADER), STRIPE_WEBHOOK_SECRET)

    if isinstance(event, Rejected):
        # pusty 400, bez szczegolow co sie nie zgodzilo
        return Response(status_code=400)

    if event.type != CHECKOUT_COMPLETED:
        logger.info(f"Unhandled event type: {event.type}")
        return {"message": "success"}

    processor = OrderProcessor(db, gateway, notifier=notifier, lock_service=lock_service)
    result = await run_in_threadpool(processor.process, event.data)

    if isinstance(result, Err):
        # 5xx zeby gateway ponowil dostarczenie
        status_code = 503 if result.error.transient else 500
        return JSONResponse(status_code=status_code, content={"message": "processing failed"})

    return {"message": "success"}
