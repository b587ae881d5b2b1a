# storefront/services/order_service.py
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.repos.order_repo import OrderRepo


class OrderService:
    """
    Odczyt zamowien klienta (historia zamowien).
    Tworzenie zamowien jest tylko w OrderProcessor, z webhooka.
    """

    def __init__(self, db: Session):
        self.repo = OrderRepo(db)

    def list_orders(self, user_id: int) -> list[OrderModel]:
        return self.repo.list_for_user(user_id)

    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise ValueError("Order not found")

        if order.user_id != user_id:
            raise PermissionError("Access to this order is denied")

        return order
