# storefront/main.py
from fastapi import FastAPI
from storefront.data.database import Base, engine
from storefront.api.routers import carts, checkout, health, orders, webhooks
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway, build_gateway
from storefront.utils.settings import PAYMENT_GATEWAY
from storefront.utils.logging import get_logger
import uvicorn

# import wszystkich modeli przed create_all
import storefront.data.models  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise


def create_app(
    gateway: PaymentGateway | None = None,
    lock_service: LockService | None = None,
    notifier: NotificationService | None = None,
) -> FastAPI:
    init_db()

    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
    )

    # zaleznosci budowane raz i przekazywane jawnie do serwisow
    app.state.gateway = gateway or build_gateway(PAYMENT_GATEWAY)
    app.state.lock_service = lock_service or LockService()
    app.state.notifier = notifier or NotificationService()

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(webhooks.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
