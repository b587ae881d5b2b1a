# storefront/repos/stock_repo.py
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.stock import StockModel


@dataclass(frozen=True)
class StockRecord:
    """Zrodlo ceny i dostepnosci dla pary (produkt, wariant)."""

    product: ProductModel
    stock: StockModel | None

    @property
    def stock_record_id(self) -> int | None:
        return self.stock.id if self.stock else None

    @property
    def price(self) -> int:
        return self.stock.price if self.stock else self.product.price

    @property
    def available(self) -> int:
        return self.stock.stock_level if self.stock else self.product.stock_level


class StockRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_stock(self, stock_id: int) -> StockModel | None:
        return self.db.get(StockModel, stock_id)

    def get_variant(self, product_id: int, size: str) -> StockModel | None:
        return self.db.execute(
            select(StockModel).where(
                StockModel.product_id == product_id,
                StockModel.size == size,
            )
        ).scalar_one_or_none()

    def resolve(self, product: ProductModel, variant: str | None) -> StockRecord | None:
        """Wariant gdy podany, inaczej stan produktu. None gdy wariant nie istnieje."""
        if not variant:
            return StockRecord(product=product, stock=None)
        stock = self.get_variant(product.id, variant)
        if stock is None:
            return None
        return StockRecord(product=product, stock=stock)

    # atomowy warunkowy update, nigdy read-then-write
    # UPDATE products SET stock_level = stock_level - 2 WHERE id = 7 AND stock_level >= 2
    def decrement_product(self, product_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.stock_level >= quantity,
            )
            .values(stock_level=ProductModel.stock_level - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def decrement_stock(self, stock_id: int, quantity: int) -> bool:
        result = self.db.execute(
            update(StockModel)
            .where(
                StockModel.id == stock_id,
                StockModel.stock_level >= quantity,
            )
            .values(stock_level=StockModel.stock_level - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
