from sqlalchemy import Column, Integer, ForeignKey, String, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    stock_id = Column(Integer, ForeignKey("stocks.id"), nullable=True)
    # "" gdy produkt bez wariantu, NULL psuje unikalnosc
    size = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    cart = relationship("CartModel", back_populates="items")
    product = relationship("ProductModel")
    stock = relationship("StockModel")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "size", name="u_cart_product_size"),
        CheckConstraint("quantity > 0", name="ck_cart_items_quantity"),
        CheckConstraint("price >= 0", name="ck_cart_items_price"),
    )
