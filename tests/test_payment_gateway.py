from types import SimpleNamespace

import pytest
import stripe

from storefront.services.payment_gateway import (
    FakeGateway,
    GatewayError,
    PurchasedLine,
    StripeGateway,
    build_gateway,
)


class Recorder:
    """Zwraca (albo rzuca) kolejne odpowiedzi i zapisuje argumenty wywolan."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def __call__(self, *args, **kwargs):
        self.calls.append((args, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class StripeRecord(dict):
    def to_dict(self):
        return dict(self)


class StripePage:
    def __init__(self, *items):
        self.items = list(items)

    def auto_paging_iter(self):
        return iter(self.items)


def stripe_client(create=None, list_line_items=None, retrieve_rate=None):
    return SimpleNamespace(
        checkout=SimpleNamespace(
            sessions=SimpleNamespace(
                create=create,
                line_items=SimpleNamespace(list=list_line_items),
            )
        ),
        shipping_rates=SimpleNamespace(retrieve=retrieve_rate),
    )


def _create(gateway):
    return gateway.create_checkout_session(
        line_items=[{"quantity": 1, "price_data": {"currency": "gbp", "unit_amount": 350}}],
        success_url="http://shop.test/success",
        cancel_url="http://shop.test/cart",
        currency="gbp",
        shipping_options=[],
        allowed_countries=["GB"],
    )


class TestStripeGateway:
    def test_builds_own_client(self):
        gateway = StripeGateway(api_key="sk_test_123", api_base="https://api.stripe.test/")

        assert isinstance(gateway.client, stripe.StripeClient)

    def test_create_checkout_session(self):
        create = Recorder(SimpleNamespace(id="cs_live_1", url="https://pay.test/cs_live_1"))
        gateway = StripeGateway(client=stripe_client(create=create))

        session = _create(gateway)

        assert session.id == "cs_live_1"
        assert session.url == "https://pay.test/cs_live_1"
        [(_, kwargs)] = create.calls
        params = kwargs["params"]
        assert params["mode"] == "payment"
        assert params["line_items"][0]["price_data"]["unit_amount"] == 350
        assert params["shipping_address_collection"] == {"allowed_countries": ["GB"]}
        assert params["billing_address_collection"] == "required"
        assert kwargs["options"]["idempotency_key"]

    def test_connection_error_is_retried_with_same_idempotency_key(self):
        create = Recorder(
            stripe.APIConnectionError("connection reset"),
            SimpleNamespace(id="cs_live_2", url="https://pay.test/cs_live_2"),
        )
        gateway = StripeGateway(client=stripe_client(create=create))

        assert _create(gateway).id == "cs_live_2"
        keys = {kwargs["options"]["idempotency_key"] for _, kwargs in create.calls}
        assert len(create.calls) == 2
        assert len(keys) == 1

    def test_rejected_request_is_permanent_and_not_retried(self):
        create = Recorder(stripe.InvalidRequestError("Invalid currency", "currency"))
        gateway = StripeGateway(client=stripe_client(create=create))

        with pytest.raises(GatewayError) as exc:
            _create(gateway)

        assert exc.value.transient is False
        assert len(create.calls) == 1

    def test_rate_limit_that_persists_is_transient(self):
        retrieve = Recorder(*[stripe.RateLimitError("slow down") for _ in range(3)])
        gateway = StripeGateway(client=stripe_client(retrieve_rate=retrieve))

        with pytest.raises(GatewayError) as exc:
            gateway.retrieve_shipping_rate("shr_1")

        assert exc.value.transient is True
        assert len(retrieve.calls) == 3

    def test_line_items_are_expanded(self):
        def item(item_id, quantity):
            return StripeRecord(
                id=item_id,
                quantity=quantity,
                price={"product": {"metadata": {"product_id": "1", "product_price": "1500"}}},
            )

        list_line_items = Recorder(StripePage(item("li_1", 1), item("li_2", 4)))
        gateway = StripeGateway(client=stripe_client(list_line_items=list_line_items))

        lines = gateway.list_line_items("cs_1")

        assert [l.quantity for l in lines] == [1, 4]
        assert lines[0].metadata == {"product_id": "1", "product_price": "1500"}
        [(args, kwargs)] = list_line_items.calls
        assert args == ("cs_1",)
        assert kwargs["params"]["expand"] == ["data.price.product"]

    def test_shipping_rate(self):
        retrieve = Recorder(StripeRecord(id="shr_1", display_name="Collection"))
        gateway = StripeGateway(client=stripe_client(retrieve_rate=retrieve))

        assert gateway.retrieve_shipping_rate("shr_1") == {"id": "shr_1", "display_name": "Collection"}
        assert retrieve.calls == [(("shr_1",), {})]


class TestFakeGateway:
    def test_session_echoes_metadata_back(self):
        gateway = FakeGateway()
        session = gateway.create_checkout_session(
            line_items=[{
                "quantity": 2,
                "price_data": {
                    "currency": "gbp",
                    "unit_amount": 1400,
                    "product_data": {"name": "Gelcoat", "metadata": {"product_id": "7"}},
                },
            }],
            success_url="s",
            cancel_url="c",
            currency="gbp",
            shipping_options=[],
            allowed_countries=["GB"],
        )

        assert session.url == f"https://checkout.test/pay/{session.id}"
        assert gateway.list_line_items(session.id) == [
            PurchasedLine(quantity=2, metadata={"product_id": "7"}, description="Gelcoat")
        ]

    def test_unknown_ids(self):
        gateway = FakeGateway()

        with pytest.raises(GatewayError):
            gateway.list_line_items("cs_nope")
        with pytest.raises(GatewayError):
            gateway.retrieve_shipping_rate("shr_nope")

    def test_unexpanded_product_has_no_metadata(self):
        line = PurchasedLine.from_gateway({"quantity": 1, "price": {"product": "prod_1"}})

        assert line.metadata == {}

    def test_build_fake_gateway(self):
        assert isinstance(build_gateway("fake"), FakeGateway)
