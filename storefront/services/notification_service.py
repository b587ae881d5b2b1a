# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Potwierdzenia zamowien.
    Uzywa Celery, wiec OrderProcessor nie czeka na wysylke.
    """

    @staticmethod
    def send_order_confirmation(order_id: int, customer_email: str):
        send_order_confirmation_task.delay(order_id, customer_email)


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order_id: int, customer_email: str):
    """
    Celery task - wysylka maila "Your order has been received".
    Samo dostarczenie maila jest poza tym serwisem, tutaj tylko log.
    """
    logger.info(f"[NOTIFICATION] {customer_email}: order {order_id} has been received")

    return {"order_id": order_id, "customer_email": customer_email, "status": "sent"}
