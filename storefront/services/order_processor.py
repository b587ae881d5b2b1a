# storefront/services/order_processor.py
from uuid import uuid4

from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_product import OrderProductModel
from storefront.domain.checkout import ReconciliationMetadata
from storefront.domain.errors import ProcessingError
from storefront.domain.result import Ok, Err, Result
from storefront.repos.order_repo import OrderRepo
from storefront.repos.stock_repo import StockRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import GatewayError, PaymentGateway, PurchasedLine
from storefront.utils.settings import ORDER_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
DEFAULT_SHIPPING_DESCRIPTION = "Collection"
ADDRESS_NOT_FOUND = "Address not found."


class UnitFailure(Exception):
    """Przerywa jednostke atomowa; wszystko z tej proby jest wycofywane."""

    def __init__(self, reason: str, transient: bool = False):
        super().__init__(reason)
        self.reason = reason
        self.transient = transient


def format_address(address: dict | None) -> str:
    if not address:
        return ""
    parts = [
        address.get(key)
        for key in ("line1", "line2", "city", "state", "postal_code", "country")
    ]
    return ", ".join(p for p in parts if p)


class OrderProcessor:
    """
    Zamienia zweryfikowane zdarzenie "payment completed" w zamowienie.

    1. Idempotencja po referencji platnosci (sprawdzenie + lock w redis
       + unikalny indeks orders.payment_id)
    2. Jedna transakcja: zamowienie, pozycje, zdjecie stanu
    3. Powiadomienie po commicie (fire-and-forget)
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        notifier: NotificationService | None = None,
        lock_service: LockService | None = None,
        lock_ttl: int = ORDER_LOCK_TTL_SECONDS,
    ):
        self.db = db
        self.gateway = gateway
        self.notifier = notifier
        self.lock_service = lock_service
        self.lock_ttl = lock_ttl
        self.orders = OrderRepo(db)
        self.stock_repo = StockRepo(db)
        self.users = UserRepo(db)

    @staticmethod
    def payment_reference(session: dict) -> str | None:
        return session.get("payment_intent") or session.get("id")

    def process(self, session: dict) -> Result[OrderModel, ProcessingError]:
        reference = self.payment_reference(session)
        if not reference:
            return self._fail(None, "event has no payment reference")

        existing = self.orders.get_by_payment_id(reference)
        if existing:
            logger.info(f"Payment {reference} already materialized as order {existing.id}, skipping")
            return Ok(existing)

        owner = uuid4().hex
        locked = False
        if self.lock_service is not None:
            try:
                locked = self.lock_service.acquire_payment_lock(reference, owner, self.lock_ttl)
            except RedisError as e:
                return self._fail(reference, f"lock store unavailable: {e}", transient=True)
            if not locked:
                # drugi webhook tej samej platnosci jest w trakcie, gateway ponowi
                return self._fail(reference, "payment is already being processed", transient=True)

        try:
            return self._process_unit(reference, session)
        finally:
            if locked:
                try:
                    self.lock_service.release_payment_lock(reference, owner)
                except RedisError as e:
                    logger.warning(f"Failed to release lock for payment {reference}: {e}")

    def _process_unit(self, reference: str, session: dict) -> Result[OrderModel, ProcessingError]:
        existing = self.orders.get_by_payment_id(reference)
        if existing:
            logger.info(f"Payment {reference} already materialized as order {existing.id}, skipping")
            return Ok(existing)

        try:
            purchased = self._purchased_lines(session)
            shipping_description = self._shipping_description(session)
            order = self._materialize(reference, session, purchased, shipping_description)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            existing = self.orders.get_by_payment_id(reference)
            if existing:
                logger.info(f"Payment {reference} committed concurrently as order {existing.id}")
                return Ok(existing)
            return self._fail(reference, f"integrity error: {e.orig}")
        except UnitFailure as e:
            self.db.rollback()
            return self._fail(reference, e.reason, transient=e.transient)
        except GatewayError as e:
            self.db.rollback()
            return self._fail(reference, f"gateway error: {e}", transient=e.transient)
        except OperationalError as e:
            self.db.rollback()
            return self._fail(reference, f"{type(e).__name__}: {e}", transient=True)
        except Exception as e:
            self.db.rollback()
            logger.exception(f"Unexpected failure while processing payment {reference}")
            return self._fail(reference, f"{type(e).__name__}: {e}")

        logger.info(
            f"Order {order.id} created for payment {reference} "
            f"({len(purchased)} lines, total {order.total})"
        )
        self._notify(order)
        return Ok(order)

    def _purchased_lines(self, session: dict) -> list[PurchasedLine]:
        embedded = session.get("line_items")
        if isinstance(embedded, dict) and embedded.get("data"):
            lines = [PurchasedLine.from_gateway(item) for item in embedded["data"]]
        elif session.get("id"):
            lines = self.gateway.list_line_items(session["id"])
        else:
            raise UnitFailure("event has neither line items nor a session id")

        if not lines:
            raise UnitFailure("payment has no line items")
        return lines

    def _shipping_description(self, session: dict) -> str:
        shipping_id = (session.get("shipping_cost") or {}).get("shipping_rate")
        if not shipping_id:
            return DEFAULT_SHIPPING_DESCRIPTION
        rate = self.gateway.retrieve_shipping_rate(shipping_id)
        return rate.get("display_name") or DEFAULT_SHIPPING_DESCRIPTION

    def _materialize(
        self,
        reference: str,
        session: dict,
        purchased: list[PurchasedLine],
        shipping_description: str,
    ) -> OrderModel:
        details = session.get("customer_details") or {}
        email = details.get("email")
        if not email:
            raise UnitFailure("event has no customer email")

        total = session.get("amount_total")
        if not isinstance(total, int) or total < 0:
            raise UnitFailure(f"invalid amount_total {total!r}")

        shipping_cost = session.get("shipping_cost") or {}
        shipping_details = (session.get("collected_information") or {}).get("shipping_details") or {}

        # konto po mailu jest opcjonalne, zamowienie goscia jest poprawne
        user = self.users.get_by_email(email)

        order = self.orders.add_order(
            OrderModel(
                user_id=user.id if user else None,
                customer_email=email,
                name=shipping_details.get("name") or details.get("name") or email,
                phone=details.get("phone"),
                address=format_address(shipping_details.get("address")) or ADDRESS_NOT_FOUND,
                billing_name=details.get("name"),
                billing_address=format_address(details.get("address")),
                total=total,
                payment_status=session.get("payment_status"),
                payment_id=reference,
                shipping_cost=shipping_cost.get("amount_total"),
                shipping_id=shipping_cost.get("shipping_rate"),
                shipping_description=shipping_description,
                fulfilled=False,
            )
        )

        for line in purchased:
            self._materialize_line(order, line)

        return order

    def _materialize_line(self, order: OrderModel, line: PurchasedLine) -> None:
        if line.quantity <= 0:
            raise UnitFailure(f"line item with quantity {line.quantity}")

        try:
            meta = ReconciliationMetadata.from_gateway(line.metadata)
        except ValueError as e:
            raise UnitFailure(str(e)) from e

        # nigdy nie ufamy id z zewnatrz bez sprawdzenia w lokalnym katalogu
        product = self.stock_repo.get_product(meta.product_id)
        if not product:
            raise UnitFailure(f"product {meta.product_id} does not exist")

        if meta.variant:
            stock = self.stock_repo.get_stock(meta.stock_record_id)
            if stock is None or stock.product_id != product.id:
                raise UnitFailure(
                    f"stock record {meta.stock_record_id} does not belong to product {product.id}"
                )

        self.orders.add_order_product(
            OrderProductModel(
                order_id=order.id,
                product_id=product.id,
                size=meta.variant,
                quantity=line.quantity,
                price=meta.unit_price,
            )
        )

        if meta.variant:
            decremented = self.stock_repo.decrement_stock(meta.stock_record_id, line.quantity)
        else:
            decremented = self.stock_repo.decrement_product(product.id, line.quantity)

        if not decremented:
            variant_text = f" ({meta.variant})" if meta.variant else ""
            raise UnitFailure(
                f"insufficient stock for product {product.id}{variant_text}: "
                f"{line.quantity} requested"
            )

    def _notify(self, order: OrderModel) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send_order_confirmation(order.id, order.customer_email)
        except Exception as e:
            # zamowienie jest juz zapisane, brak maila go nie cofa
            logger.warning(f"Failed to enqueue confirmation for order {order.id}: {e}")

    @staticmethod
    def _fail(reference: str | None, reason: str, transient: bool = False) -> Err[ProcessingError]:
        logger.error(
            f"Order processing failed for payment {reference} "
            f"({'transient' if transient else 'permanent'}): {reason}"
        )
        return Err(ProcessingError(payment_reference=reference, reason=reason, transient=transient))
