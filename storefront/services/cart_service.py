from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Iterable
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.schemas import CartLineIn
from storefront.repos.cart_repo import CartRepo
from storefront.repos.stock_repo import StockRepo
from storefront.repos.user_repo import UserRepo
from storefront.utils.settings import CART_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # sqlite oddaje naiwne daty, wszystko zapisujemy w UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class CartService:
    """
    Koszyk trzymany po stronie serwera, klucz to token z localStorage klienta.
    commands (sync, merge, attach, clear) zmieniaja stan i przedluzaja TTL
    query (load) odswieza ceny z katalogu
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.stock_repo = StockRepo(db)
        self.user_repo = UserRepo(db)

    def resolve(self, token: str) -> CartModel:
        """Find-or-create. Wygasly koszyk jest usuwany i zakladany od nowa."""
        now = _now()
        cart = self.repo.get_by_token(token)

        if cart and as_utc(cart.expires_at) <= now:
            logger.info(f"Koszyk {cart.id} wygasl, zakladam nowy dla tego tokenu")
            self.repo.delete_cart(cart)
            cart = None

        if cart:
            return cart

        try:
            cart = self.repo.create_cart(
                CartModel(
                    session_token=token,
                    expires_at=now + timedelta(seconds=CART_TTL_SECONDS),
                )
            )
        except IntegrityError:
            # rownolegly request zalozyl koszyk dla tego samego tokenu
            self.repo.rollback()
            cart = self.repo.get_by_token(token)
            if cart is None:
                raise
            return cart

        logger.info(f"Utworzono nowy koszyk {cart.id}")
        return cart

    #query
    def load(self, token: str) -> Dict[str, Any]:
        cart = self.resolve(token)
        self._refresh_prices(cart)
        self.repo.commit()
        return self.to_client_format(cart)

    #commands
    def sync_from_client(self, token: str, lines: Iterable[CartLineIn]) -> Dict[str, Any]:
        cart = self.resolve(token)

        for line in lines:
            self._upsert_line(cart, line)

        self._extend_expiry(cart)
        self.repo.commit()

        logger.info(f"Zsynchronizowano koszyk {cart.id}")
        return self.to_client_format(cart)

    def merge(self, cart: CartModel, lines: Iterable[CartLineIn]) -> list[CartLineIn]:
        """Sumuje ilosci per (produkt, wariant) do ``cart``.

        Nie jest idempotentne, dwa razy te same linie daja podwojne ilosci.
        Linie z nieznanym produktem albo wariantem sa pomijane i zwracane.
        Nie commituje.
        """
        skipped = []
        for line in lines:
            if not self._merge_line(cart, line):
                skipped.append(line)
        self._extend_expiry(cart)
        return skipped

    def merge_items(self, token: str, lines: Iterable[CartLineIn]) -> Dict[str, Any]:
        cart = self.resolve(token)
        self.merge(cart, lines)
        self.repo.commit()
        return self.to_client_format(cart)

    def merge_carts(self, target_token: str, source_token: str) -> Dict[str, Any]:
        """Wchlania koszyk goscia do koszyka docelowego (przejscie przy logowaniu)."""
        target = self.resolve(target_token)
        source = self.repo.get_by_token(source_token) if source_token != target_token else None
        if source is not None and as_utc(source.expires_at) <= _now():
            # wygasly, czeka tylko na cleanup
            source = None

        if source is None or not source.items:
            # pusty koszyk zrodlowy zostaje nietkniety
            self.repo.commit()
            return self.to_client_format(target)

        logger.info(f"Merge koszyka {source.id} do koszyka {target.id}")
        self.merge(target, self._lines_of(source))
        self.repo.delete_cart(source)
        self.repo.commit()

        return self.to_client_format(target)

    def attach_to_user(self, token: str, user_id: int) -> Dict[str, Any]:
        if not self.user_repo.get_user(user_id):
            raise ValueError("User not found")

        cart = self.resolve(token)
        if cart.user_id == user_id:
            self.repo.commit()
            return self.to_client_format(cart)

        existing = self.repo.get_active_cart_by_user(user_id, _now())

        if existing and existing.id != cart.id:
            if cart.items:
                logger.info(
                    f"Uzytkownik {user_id} ma juz koszyk {existing.id}, "
                    f"przenosze pozycje z koszyka {cart.id}"
                )
                self.merge(existing, self._lines_of(cart))
                self.repo.delete_cart(cart)
            self.repo.commit()
            return self.to_client_format(existing)

        cart.user_id = user_id
        self._extend_expiry(cart)
        self.repo.commit()

        logger.info(f"Koszyk {cart.id} przypisany do uzytkownika {user_id}")
        return self.to_client_format(cart)

    def clear(self, token: str) -> Dict[str, Any]:
        cart = self.resolve(token)
        self.repo.delete_cart_items(cart)
        self.repo.commit()
        return {"items": [], "message": "Cart cleared"}

    def snapshot(self, token: str) -> list[CartLineIn]:
        """Pozycje zapisanego koszyka jako wejscie do checkoutu."""
        cart = self.resolve(token)
        self.repo.commit()
        return self._lines_of(cart)

    def to_client_format(self, cart: CartModel) -> Dict[str, Any]:
        items = [
            {
                "id": i.product_id,
                "name": i.product.name,
                "price": i.price,
                "size": i.size or "",
                "quantity": i.quantity,
            }
            for i in cart.items
        ]
        return {
            "cart_token": cart.session_token,
            "items": items,
            "total": sum(i.price * i.quantity for i in cart.items),
            "expires_at": cart.expires_at,
        }

    def _lines_of(self, cart: CartModel) -> list[CartLineIn]:
        return [
            CartLineIn(product_id=i.product_id, size=i.size or None, quantity=i.quantity)
            for i in cart.items
        ]

    def _upsert_line(self, cart: CartModel, line: CartLineIn) -> bool:
        record = self._resolve_record(line)
        if record is None:
            return False

        size = line.variant or ""
        existing_item = self.repo.get_cart_item(cart.id, line.product_id, size)

        # cena zawsze z katalogu, nigdy z cache klienta
        if existing_item:
            existing_item.quantity = line.quantity
            existing_item.price = record.price
        else:
            self.repo.add_cart_item(
                cart,
                CartItemModel(
                    product_id=record.product.id,
                    stock_id=record.stock_record_id,
                    size=size,
                    quantity=line.quantity,
                    price=record.price,
                ),
            )
        return True

    def _merge_line(self, cart: CartModel, line: CartLineIn) -> bool:
        record = self._resolve_record(line)
        if record is None:
            return False

        size = line.variant or ""
        existing_item = self.repo.get_cart_item(cart.id, line.product_id, size)

        if existing_item:
            logger.info(
                f"Produkt {line.product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {existing_item.quantity + line.quantity}"
            )
            existing_item.quantity += line.quantity
        else:
            self.repo.add_cart_item(
                cart,
                CartItemModel(
                    product_id=record.product.id,
                    stock_id=record.stock_record_id,
                    size=size,
                    quantity=line.quantity,
                    price=record.price,
                ),
            )
        return True

    def _resolve_record(self, line: CartLineIn):
        product = self.stock_repo.get_product(line.product_id)
        if not product:
            logger.warning(f"Pomijam pozycje, produkt {line.product_id} nie istnieje")
            return None

        record = self.stock_repo.resolve(product, line.variant)
        if record is None:
            logger.warning(
                f"Pomijam pozycje, produkt {line.product_id} nie ma wariantu {line.variant}"
            )
        return record

    def _refresh_prices(self, cart: CartModel) -> None:
        for item in cart.items:
            current = item.stock.price if item.stock is not None else item.product.price
            if item.price != current:
                item.price = current

    def _extend_expiry(self, cart: CartModel) -> None:
        # kazda zmiana koszyka przesuwa wygasniecie o pelne TTL
        cart.expires_at = _now() + timedelta(seconds=CART_TTL_SECONDS)
