# storefront/services/checkout_service.py
from typing import Iterable

from sqlalchemy.orm import Session

from storefront.domain.checkout import CheckoutLineItem, ReconciliationMetadata
from storefront.domain.errors import StockShortfall, UnknownProduct, UnknownVariant, ValidationError
from storefront.domain.result import Ok, Err, Result
from storefront.domain.schemas import CartLineIn
from storefront.repos.stock_repo import StockRepo
from storefront.services.payment_gateway import CheckoutSession, PaymentGateway
from storefront.utils.settings import CURRENCY, ALLOWED_SHIPPING_COUNTRIES
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _shipping_option(display_name: str, amount: int, min_days: int, max_days: int) -> dict:
    return {
        "shipping_rate_data": {
            "display_name": display_name,
            "type": "fixed_amount",
            "fixed_amount": {"amount": amount, "currency": CURRENCY},
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": min_days},
                "maximum": {"unit": "business_day", "value": max_days},
            },
        }
    }


SHIPPING_OPTIONS = [
    _shipping_option("Collection", 0, 1, 1),
    _shipping_option("3 to 5 Business Days Shipping", 2500, 3, 5),
    _shipping_option("Overnight Shipping (Order Before 11:00am Mon-Thu)", 5000, 1, 1),
]


class CheckoutService:
    """
    Zamienia koszyk na wyceniona sesje checkoutu u operatora platnosci.
    Sprawdzenie stanu jest tylko doradcze: nic nie rezerwuje ani nie zdejmuje,
    jedynym miejscem zdejmowania stanu jest OrderProcessor.
    """

    def __init__(self, db: Session, gateway: PaymentGateway):
        self.stock_repo = StockRepo(db)
        self.gateway = gateway

    def build_line_items(
        self, lines: Iterable[CartLineIn]
    ) -> Result[list[CheckoutLineItem], ValidationError]:
        items: list[CheckoutLineItem] = []

        for line in self._combine(lines):
            product = self.stock_repo.get_product(line.product_id)
            if not product:
                return Err(UnknownProduct(
                    message=f"Product {line.product_id} not found.",
                    product_id=line.product_id,
                ))

            record = self.stock_repo.resolve(product, line.variant)
            if record is None:
                return Err(UnknownVariant(
                    message=f"{product.name} is not available in {line.variant}.",
                    product_id=product.id,
                    variant=line.variant,
                ))

            if line.quantity > record.available:
                logger.info(
                    f"Brak stanu dla produktu {product.id} ({line.variant}): "
                    f"chciano {line.quantity}, jest {record.available}"
                )
                return Err(StockShortfall.for_line(
                    product_id=product.id,
                    product_name=product.name,
                    variant=line.variant,
                    available=record.available,
                    requested=line.quantity,
                ))

            # cena z katalogu w chwili budowania, cena klienta jest ignorowana
            items.append(CheckoutLineItem(
                name=product.name,
                quantity=line.quantity,
                unit_price=record.price,
                currency=CURRENCY,
                metadata=ReconciliationMetadata(
                    product_id=product.id,
                    variant=line.variant,
                    stock_record_id=record.stock_record_id,
                    unit_price=record.price,
                ),
            ))

        if not items:
            return Err(ValidationError(message="Your cart is empty."))
        return Ok(items)

    @staticmethod
    def _combine(lines: Iterable[CartLineIn]) -> list[CartLineIn]:
        # ta sama para (produkt, wariant) w kilku liniach liczy sie jako suma
        combined: dict[tuple[int, str | None], CartLineIn] = {}
        for line in lines:
            key = (line.product_id, line.variant)
            if key in combined:
                previous = combined[key]
                combined[key] = previous.model_copy(
                    update={"quantity": previous.quantity + line.quantity}
                )
            else:
                combined[key] = line
        return list(combined.values())

    def create_session(
        self,
        lines: Iterable[CartLineIn],
        success_url: str,
        cancel_url: str,
    ) -> Result[CheckoutSession, ValidationError]:
        built = self.build_line_items(lines)
        if isinstance(built, Err):
            return built

        session = self.gateway.create_checkout_session(
            line_items=[item.to_gateway() for item in built.value],
            success_url=success_url,
            cancel_url=cancel_url,
            currency=CURRENCY,
            shipping_options=SHIPPING_OPTIONS,
            allowed_countries=ALLOWED_SHIPPING_COUNTRIES,
        )
        logger.info(f"Utworzono sesje checkoutu {session.id} z {len(built.value)} pozycjami")
        return Ok(session)
