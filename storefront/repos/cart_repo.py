# storefront/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_token(self, token: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.session_token == token)
        ).scalar_one_or_none()

    def get_active_cart_by_user(self, user_id: int, now: datetime) -> CartModel | None:
        return self.db.execute(
            select(CartModel)
            .where(
                CartModel.user_id == user_id,
                CartModel.expires_at > now,
            )
            .order_by(CartModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def get_expired_carts(self, now: datetime) -> list[CartModel]:
        return list(
            self.db.execute(
                select(CartModel).where(CartModel.expires_at <= now)
            ).scalars().all()
        )

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def delete_cart(self, cart: CartModel) -> None:
        # cascade z relacji usuwa tez pozycje
        self.db.delete(cart)
        self.db.flush()

    def get_cart_item(self, cart_id: int, product_id: int, size: str) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                CartItemModel.size == size,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, cart: CartModel, item: CartItemModel) -> CartItemModel:
        cart.items.append(item)
        self.db.flush()
        return item

    def delete_cart_items(self, cart: CartModel) -> None:
        # delete-orphan usuwa wiersze przy flushu
        cart.items.clear()
        self.db.flush()

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
