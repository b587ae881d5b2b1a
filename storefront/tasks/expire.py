# storefront/tasks/expire.py
from datetime import datetime, timezone

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def delete_expired_carts(db, now: datetime | None = None) -> int:
    now = now or datetime.now(timezone.utc)
    repo = CartRepo(db)

    carts = repo.get_expired_carts(now)
    logger.info(f"Found {len(carts)} expired carts to delete")

    for cart in carts:
        repo.delete_cart(cart)
    repo.commit()

    logger.info(f"Deleted {len(carts)} expired carts")
    return len(carts)


@celery_app.task(name="storefront.tasks.expire.delete_expired_carts_task")
def delete_expired_carts_task():
    db = SessionLocal()
    try:
        return delete_expired_carts(db)
    finally:
        db.close()
