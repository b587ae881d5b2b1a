from sqlalchemy import Column, Integer, ForeignKey, String, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderProductModel(Base):
    __tablename__ = "order_products"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    size = Column(String, nullable=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    order = relationship("OrderModel", back_populates="order_products")
    product = relationship("ProductModel")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_products_quantity"),
        CheckConstraint("price >= 0", name="ck_order_products_price"),
    )
