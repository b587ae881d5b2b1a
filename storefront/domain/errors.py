# storefront/domain/errors.py
from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationError:
    """Bledny albo niemozliwy do zrealizowania checkout (HTTP 400)."""

    message: str


@dataclass(frozen=True)
class UnknownProduct(ValidationError):
    product_id: int = 0


@dataclass(frozen=True)
class UnknownVariant(ValidationError):
    product_id: int = 0
    variant: str = ""


@dataclass(frozen=True)
class StockShortfall(ValidationError):
    product_id: int = 0
    variant: str | None = None
    available: int = 0
    requested: int = 0

    @classmethod
    def for_line(
        cls,
        product_id: int,
        product_name: str,
        variant: str | None,
        available: int,
        requested: int,
    ) -> "StockShortfall":
        # klient parsuje ten tekst, format musi zostac bez zmian
        variant_text = f" in {variant}" if variant else ""
        message = f"Not enough stock for {product_name}{variant_text}. Only {available} left."
        return cls(
            message=message,
            product_id=product_id,
            variant=variant,
            available=available,
            requested=requested,
        )


@dataclass(frozen=True)
class ProcessingError:
    """Nie udalo sie utworzyc zamowienia, nic z tej proby nie zostalo zapisane.

    ``transient`` mowi routerowi webhookow, czy ponowienie moze sie udac.
    """

    payment_reference: str | None
    reason: str
    transient: bool = False
