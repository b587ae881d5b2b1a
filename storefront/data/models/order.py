from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from storefront.data.database import Base

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    # zamowienie goscia nie ma usera
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    customer_email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=False)
    billing_name = Column(String, nullable=True)
    billing_address = Column(String, nullable=True)

    total = Column(Integer, nullable=False)
    payment_status = Column(String, nullable=True)
    # klucz idempotencji webhooka
    payment_id = Column(String, nullable=False, unique=True, index=True)

    shipping_cost = Column(Integer, nullable=True)
    shipping_id = Column(String, nullable=True)
    shipping_description = Column(String, nullable=True)

    fulfilled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order_products = relationship(
        "OrderProductModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )
