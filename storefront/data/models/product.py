# storefront/data/models/product.py
from sqlalchemy import Column, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class ProductModel(Base):
    """Pozycja katalogu. stock_level to licznik stanu na poziomie produktu."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    # ceny w groszach/pensach (minor units)
    price = Column(Integer, nullable=False)
    stock_level = Column(Integer, nullable=False, default=0)

    stocks = relationship("StockModel", back_populates="product")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price"),
        CheckConstraint("stock_level >= 0", name="ck_products_stock_level"),
    )
