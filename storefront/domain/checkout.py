# storefront/domain/checkout.py
from dataclasses import dataclass


@dataclass(frozen=True)
class ReconciliationMetadata:
    """Identyfikatory doklejane do pozycji w gateway i odsylane przy platnosci.

    Gateway widzi tylko stringi, ``from_gateway`` odwraca ``to_gateway``.
    """

    product_id: int
    variant: str | None
    stock_record_id: int | None
    unit_price: int

    def to_gateway(self) -> dict[str, str]:
        return {
            "product_id": str(self.product_id),
            "size": self.variant or "",
            "product_stock_id": "" if self.stock_record_id is None else str(self.stock_record_id),
            "product_price": str(self.unit_price),
        }

    @classmethod
    def from_gateway(cls, metadata: dict) -> "ReconciliationMetadata":
        """ValueError gdy brakuje wymaganego klucza albo nie jest liczba."""
        try:
            product_id = int(metadata["product_id"])
            unit_price = int(metadata["product_price"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid reconciliation metadata: {metadata!r}") from e

        variant = metadata.get("size") or None
        raw_stock_id = metadata.get("product_stock_id")
        try:
            stock_record_id = int(raw_stock_id) if raw_stock_id not in (None, "") else None
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid product_stock_id: {raw_stock_id!r}") from e

        if variant and stock_record_id is None:
            raise ValueError(f"Variant {variant!r} without product_stock_id")

        return cls(
            product_id=product_id,
            variant=variant,
            stock_record_id=stock_record_id,
            unit_price=unit_price,
        )


@dataclass(frozen=True)
class CheckoutLineItem:
    """Wyceniona pozycja jednej proby checkoutu, nie jest zapisywana."""

    name: str
    quantity: int
    unit_price: int
    currency: str
    metadata: ReconciliationMetadata

    def to_gateway(self) -> dict:
        return {
            "quantity": self.quantity,
            "price_data": {
                "currency": self.currency,
                "unit_amount": self.unit_price,
                "product_data": {
                    "name": self.name,
                    "metadata": self.metadata.to_gateway(),
                },
            },
        }
