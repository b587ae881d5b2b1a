#storefront/data/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, String, DateTime
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    session_token = Column(String, nullable=False, unique=True, index=True)
    # null = koszyk goscia
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
    )
