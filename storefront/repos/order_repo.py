# storefront/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session
from storefront.data.models.order import OrderModel
from storefront.data.models.order_product import OrderProductModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_payment_id(self, payment_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_id == payment_id)
        ).scalar_one_or_none()

    def list_for_user(self, user_id: int, limit: int = 10) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
                .limit(limit)
            ).scalars().all()
        )

    # bez commita, commit robi OrderProcessor na koncu calej jednostki
    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def add_order_product(self, line: OrderProductModel) -> OrderProductModel:
        self.db.add(line)
        self.db.flush()
        return line
