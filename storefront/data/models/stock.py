# storefront/data/models/stock.py
from sqlalchemy import Column, Integer, String, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class StockModel(Base):
    """Stan i cena wariantu produktu (np. rozmiaru)."""

    __tablename__ = "stocks"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    size = Column(String, nullable=False)

    price = Column(Integer, nullable=False)
    stock_level = Column(Integer, nullable=False, default=0)

    product = relationship("ProductModel", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("product_id", "size", name="u_stock_product_size"),
        CheckConstraint("price >= 0", name="ck_stocks_price"),
        CheckConstraint("stock_level >= 0", name="ck_stocks_stock_level"),
    )
