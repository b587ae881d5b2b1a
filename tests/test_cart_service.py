from datetime import datetime, timedelta, timezone

import pytest

from storefront.data.models import CartItemModel, CartModel, ProductModel, StockModel
from storefront.domain.schemas import CartLineIn
from storefront.services.cart_service import CartService
from storefront.tasks.expire import delete_expired_carts


def _line(product_id, quantity, size=None, price=None):
    return CartLineIn(product_id=product_id, size=size, quantity=quantity, price=price)


def _quantities(cart):
    return {(i["id"], i["size"]): i["quantity"] for i in cart["items"]}


def _expire(db, token):
    cart = db.query(CartModel).filter_by(session_token=token).one()
    cart.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
    db.commit()


class TestResolve:
    def test_creates_cart_for_new_token(self, db):
        cart = CartService(db).resolve("tok-new")
        db.commit()

        assert cart.session_token == "tok-new"
        assert cart.user_id is None
        assert db.query(CartModel).count() == 1

    def test_returns_same_cart_for_known_token(self, db):
        service = CartService(db)
        first = service.resolve("tok-same")
        second = service.resolve("tok-same")

        assert first is second

    def test_expired_cart_is_replaced(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-old", [_line(1, 2)])
        _expire(db, "tok-old")

        cart = service.resolve("tok-old")
        db.commit()

        assert cart.items == []
        assert db.query(CartModel).count() == 1
        assert db.query(CartItemModel).count() == 0


class TestSync:
    def test_quantity_is_overwritten(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(7, 2, "Large")])
        cart = service.sync_from_client("tok", [_line(7, 5, "Large")])

        assert _quantities(cart) == {(7, "Large"): 5}

    def test_variants_are_separate_lines(self, db, catalog):
        cart = CartService(db).sync_from_client(
            "tok", [_line(7, 1, "Large"), _line(7, 2, "Small"), _line(2, 3)]
        )

        assert _quantities(cart) == {(7, "Large"): 1, (7, "Small"): 2, (2, ""): 3}
        assert cart["total"] == 1400 + 2 * 900 + 3 * 350

    def test_client_price_is_ignored(self, db, catalog):
        cart = CartService(db).sync_from_client("tok", [_line(1, 1, price=1.0)])

        assert cart["items"][0]["price"] == 1500

    def test_unknown_product_and_variant_are_skipped(self, db, catalog):
        cart = CartService(db).sync_from_client(
            "tok", [_line(999, 1), _line(7, 1, "Huge"), _line(2, 1)]
        )

        assert _quantities(cart) == {(2, ""): 1}

    def test_sync_extends_expiry(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(2, 1)])
        cart = db.query(CartModel).one()
        cart.expires_at = datetime.now(timezone.utc) + timedelta(minutes=5)
        db.commit()

        result = service.sync_from_client("tok", [_line(2, 2)])

        expires_at = result["expires_at"]
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        assert expires_at > datetime.now(timezone.utc) + timedelta(days=29)


class TestLoad:
    def test_prices_follow_catalog(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(7, 1, "Large"), _line(1, 1)])

        db.get(StockModel, catalog["large"].id).price = 1600
        db.get(ProductModel, 1).price = 1450
        db.commit()

        cart = service.load("tok")

        prices = {(i["id"], i["size"]): i["price"] for i in cart["items"]}
        assert prices == {(7, "Large"): 1600, (1, ""): 1450}
        assert cart["total"] == 1600 + 1450

    def test_load_of_unknown_token_is_empty(self, db):
        cart = CartService(db).load("tok-empty")

        assert cart["items"] == []
        assert cart["total"] == 0
        assert cart["cart_token"] == "tok-empty"


class TestMerge:
    def test_quantities_are_added(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(1, 2)])

        cart = service.merge_items("tok", [_line(1, 5), _line(2, 3)])

        assert _quantities(cart) == {(1, ""): 7, (2, ""): 3}

    def test_merge_order_does_not_matter(self, db, catalog):
        a = [_line(1, 1), _line(7, 2, "Large")]
        b = [_line(7, 3, "Large"), _line(2, 4)]
        service = CartService(db)

        service.merge_items("tok-ab", a)
        ab = service.merge_items("tok-ab", b)
        service.merge_items("tok-ba", b)
        ba = service.merge_items("tok-ba", a)

        assert _quantities(ab) == _quantities(ba) == {(1, ""): 1, (7, "Large"): 5, (2, ""): 4}

    def test_merging_twice_doubles(self, db, catalog):
        service = CartService(db)
        service.merge_items("tok", [_line(2, 3)])
        cart = service.merge_items("tok", [_line(2, 3)])

        assert _quantities(cart) == {(2, ""): 6}

    def test_merge_returns_skipped_lines(self, db, catalog):
        service = CartService(db)
        cart = service.resolve("tok")
        unknown = _line(999, 1)

        skipped = service.merge(cart, [unknown, _line(2, 1)])

        assert skipped == [unknown]


class TestMergeCarts:
    def test_guest_cart_is_absorbed_and_deleted(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-user", [_line(1, 2)])
        service.sync_from_client("tok-guest", [_line(1, 1), _line(7, 1, "Small")])

        cart = service.merge_carts("tok-user", "tok-guest")

        assert _quantities(cart) == {(1, ""): 3, (7, "Small"): 1}
        assert db.query(CartModel).filter_by(session_token="tok-guest").count() == 0
        assert db.query(CartItemModel).count() == 2

    def test_empty_source_is_left_alone(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-user", [_line(1, 2)])
        service.resolve("tok-guest")
        db.commit()

        cart = service.merge_carts("tok-user", "tok-guest")

        assert _quantities(cart) == {(1, ""): 2}
        assert db.query(CartModel).filter_by(session_token="tok-guest").count() == 1

    def test_unknown_source(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-user", [_line(1, 2)])

        cart = service.merge_carts("tok-user", "tok-nope")

        assert _quantities(cart) == {(1, ""): 2}

    def test_expired_source_is_not_merged(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-user", [_line(1, 2)])
        service.sync_from_client("tok-guest", [_line(1, 1), _line(2, 4)])
        _expire(db, "tok-guest")

        cart = service.merge_carts("tok-user", "tok-guest")

        assert _quantities(cart) == {(1, ""): 2}
        # usunie go dopiero cleanup
        assert db.query(CartModel).filter_by(session_token="tok-guest").count() == 1


class TestAttach:
    def test_guest_cart_is_assigned(self, db, catalog, customer):
        service = CartService(db)
        service.sync_from_client("tok-guest", [_line(2, 1)])

        cart = service.attach_to_user("tok-guest", customer.id)

        assert cart["cart_token"] == "tok-guest"
        assert db.query(CartModel).filter_by(session_token="tok-guest").one().user_id == customer.id

    def test_guest_cart_joins_existing_account_cart(self, db, catalog, customer):
        service = CartService(db)
        service.sync_from_client("tok-account", [_line(1, 1)])
        service.attach_to_user("tok-account", customer.id)
        service.sync_from_client("tok-guest", [_line(1, 2), _line(2, 5)])

        cart = service.attach_to_user("tok-guest", customer.id)

        assert cart["cart_token"] == "tok-account"
        assert _quantities(cart) == {(1, ""): 3, (2, ""): 5}
        assert db.query(CartModel).filter_by(session_token="tok-guest").count() == 0

    def test_unknown_user(self, db):
        with pytest.raises(ValueError, match="User not found"):
            CartService(db).attach_to_user("tok", 4242)


class TestClear:
    def test_clear_removes_items_but_keeps_cart(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(1, 1), _line(2, 2)])

        result = service.clear("tok")

        assert result == {"items": [], "message": "Cart cleared"}
        assert db.query(CartItemModel).count() == 0
        assert db.query(CartModel).count() == 1

    def test_snapshot_feeds_checkout(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok", [_line(7, 2, "Large"), _line(2, 1)])

        lines = service.snapshot("tok")

        assert {(l.product_id, l.variant, l.quantity) for l in lines} == {(7, "Large", 2), (2, None, 1)}


class TestExpiredCleanup:
    def test_only_expired_carts_are_deleted(self, db, catalog):
        service = CartService(db)
        service.sync_from_client("tok-live", [_line(1, 1)])
        service.sync_from_client("tok-dead", [_line(2, 1)])
        _expire(db, "tok-dead")

        deleted = delete_expired_carts(db)

        assert deleted == 1
        assert [c.session_token for c in db.query(CartModel).all()] == ["tok-live"]
        assert db.query(CartItemModel).count() == 1

    def test_nothing_to_delete(self, db):
        assert delete_expired_carts(db) == 0
