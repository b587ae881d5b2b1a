# storefront/services/payment_gateway.py
"""Port operatora platnosci i adaptery.

Instancje buduje raz ``create_app`` i przekazuje jawnie do checkoutu
i OrderProcessora, w testach podmieniana na ``FakeGateway``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import uuid4

import stripe

from storefront.utils.retry import TRANSIENT_GATEWAY_ERRORS, gateway_retry
from storefront.utils.settings import STRIPE_API_BASE, STRIPE_SECRET_KEY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class GatewayError(Exception):
    """Blad operatora platnosci. transient = ponowienie moze sie udac."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


@dataclass(frozen=True)
class PurchasedLine:
    """Pozycja potwierdzona przez gateway, z naszymi metadanymi."""

    quantity: int
    metadata: dict = field(default_factory=dict)
    description: str | None = None

    @classmethod
    def from_gateway(cls, item: dict) -> "PurchasedLine":
        price = item.get("price") or {}
        product = price.get("product")
        # product jest obiektem tylko gdy zrobiono expand
        metadata = product.get("metadata") if isinstance(product, dict) else None
        return cls(
            quantity=int(item.get("quantity") or 0),
            metadata=dict(metadata or {}),
            description=item.get("description"),
        )


class PaymentGateway(ABC):
    @abstractmethod
    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        currency: str,
        shipping_options: list[dict],
        allowed_countries: list[str],
    ) -> CheckoutSession:
        ...

    @abstractmethod
    def list_line_items(self, session_id: str) -> list[PurchasedLine]:
        ...

    @abstractmethod
    def retrieve_shipping_rate(self, rate_id: str) -> dict:
        ...


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        client: stripe.StripeClient | None = None,
    ):
        # wlasny klient zamiast globalnego stripe.api_key, retry robi tenacity
        self.client = client or stripe.StripeClient(
            api_key or STRIPE_SECRET_KEY,
            base_addresses={"api": (api_base or STRIPE_API_BASE).rstrip("/")},
            max_network_retries=0,
        )

    @staticmethod
    def _gateway_error(action: str, e: stripe.StripeError) -> GatewayError:
        transient = isinstance(e, TRANSIENT_GATEWAY_ERRORS)
        logger.error(
            f"StripeGateway {action} failed ({'transient' if transient else 'permanent'}): "
            f"{type(e).__name__}: {e.user_message or e}"
        )
        return GatewayError(f"Gateway {action} failed: {type(e).__name__}", transient=transient)

    @gateway_retry()
    def _create_session(self, params: dict, idempotency_key: str):
        return self.client.checkout.sessions.create(
            params=params,
            options={"idempotency_key": idempotency_key},
        )

    @gateway_retry()
    def _fetch_line_items(self, session_id: str) -> list[dict]:
        page = self.client.checkout.sessions.line_items.list(
            session_id,
            params={"limit": 100, "expand": ["data.price.product"]},
        )
        # auto_paging_iter sam dociaga kolejne strony (starting_after)
        return [item.to_dict() for item in page.auto_paging_iter()]

    @gateway_retry()
    def _fetch_shipping_rate(self, rate_id: str) -> dict:
        return self.client.shipping_rates.retrieve(rate_id).to_dict()

    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        currency: str,
        shipping_options: list[dict],
        allowed_countries: list[str],
    ) -> CheckoutSession:
        params = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "currency": currency,
            "payment_method_types": ["card"],
            "shipping_address_collection": {"allowed_countries": allowed_countries},
            "phone_number_collection": {"enabled": True},
            "billing_address_collection": "required",
            "shipping_options": shipping_options,
        }
        # ten sam klucz dla wszystkich prob, zeby retry nie zalozyl drugiej sesji
        idempotency_key = uuid4().hex
        try:
            session = self._create_session(params, idempotency_key)
        except stripe.StripeError as e:
            raise self._gateway_error("create_checkout_session", e) from e
        logger.info(f"StripeGateway created checkout session {session.id}")
        return CheckoutSession(id=session.id, url=session.url)

    def list_line_items(self, session_id: str) -> list[PurchasedLine]:
        try:
            items = self._fetch_line_items(session_id)
        except stripe.StripeError as e:
            raise self._gateway_error("list_line_items", e) from e
        return [PurchasedLine.from_gateway(item) for item in items]

    def retrieve_shipping_rate(self, rate_id: str) -> dict:
        try:
            return self._fetch_shipping_rate(rate_id)
        except stripe.StripeError as e:
            raise self._gateway_error("retrieve_shipping_rate", e) from e


class FakeGateway(PaymentGateway):
    """Gateway w pamieci do developmentu i testow. Zapisuje kazde wywolanie."""

    def __init__(self, base_url: str = "https://checkout.test"):
        self.base_url = base_url.rstrip("/")
        self.sessions: dict[str, dict] = {}
        self.shipping_rates: dict[str, dict] = {}
        self.calls: list[dict] = []

    def add_shipping_rate(self, rate_id: str, display_name: str) -> None:
        self.shipping_rates[rate_id] = {"id": rate_id, "display_name": display_name}

    def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        currency: str,
        shipping_options: list[dict],
        allowed_countries: list[str],
    ) -> CheckoutSession:
        self.calls.append({
            "method": "create_checkout_session",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "currency": currency,
        })
        session_id = f"cs_test_{uuid4().hex[:16]}"
        # line itemy w ksztalcie odpowiedzi z expand=data.price.product
        self.sessions[session_id] = {
            "id": session_id,
            "line_items": [
                {
                    "id": f"li_{index}",
                    "quantity": item["quantity"],
                    "description": item["price_data"]["product_data"]["name"],
                    "price": {
                        "unit_amount": item["price_data"]["unit_amount"],
                        "product": {
                            "id": f"prod_{session_id}_{index}",
                            "metadata": dict(item["price_data"]["product_data"]["metadata"]),
                        },
                    },
                }
                for index, item in enumerate(line_items)
            ],
        }
        return CheckoutSession(id=session_id, url=f"{self.base_url}/pay/{session_id}")

    def list_line_items(self, session_id: str) -> list[PurchasedLine]:
        self.calls.append({"method": "list_line_items", "session_id": session_id})
        session = self.sessions.get(session_id)
        if session is None:
            raise GatewayError(f"Unknown checkout session {session_id}")
        return [PurchasedLine.from_gateway(item) for item in session["line_items"]]

    def retrieve_shipping_rate(self, rate_id: str) -> dict:
        self.calls.append({"method": "retrieve_shipping_rate", "rate_id": rate_id})
        rate = self.shipping_rates.get(rate_id)
        if rate is None:
            raise GatewayError(f"Unknown shipping rate {rate_id}")
        return rate


def build_gateway(kind: str) -> PaymentGateway:
    if kind == "fake":
        logger.warning("Using FakeGateway, no real payments will be taken")
        return FakeGateway()
    return StripeGateway()
