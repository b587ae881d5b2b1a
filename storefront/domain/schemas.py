# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, AliasChoices
from typing import List
from datetime import datetime


class CartLineIn(BaseModel):
    """Pozycja koszyka przyslana przez klienta (localStorage)."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("product_id", "id"),
        description="ID produktu",
    )
    size: str | None = Field(None, description="Wariant produktu (np. rozmiar)")
    quantity: int = Field(..., gt=0, description="Ilosc (musi byc > 0)")
    # cena i nazwa z cache klienta, nigdy nie uzywane do wyceny
    name: str | None = None
    price: float | None = None

    @property
    def variant(self) -> str | None:
        return self.size or None


class CartItemsIn(BaseModel):
    items: List[CartLineIn] = Field(default_factory=list)


class CartMergeIn(BaseModel):
    """Merge pozycji (albo calego koszyka goscia) do koszyka z naglowka."""

    items: List[CartLineIn] = Field(default_factory=list)
    source_token: str | None = Field(None, description="Token koszyka goscia do wchloniecia")


class CartAttachIn(BaseModel):
    user_id: int = Field(..., gt=0, description="ID zalogowanego uzytkownika")


class CartItemOut(BaseModel):
    id: int
    name: str
    price: int
    size: str
    quantity: int


class CartOut(BaseModel):
    cart_token: str
    items: List[CartItemOut]
    total: int
    expires_at: datetime | None = None


class CartClearedOut(BaseModel):
    items: List[CartItemOut]
    message: str


class CheckoutIn(BaseModel):
    """Koszyk inline; gdy brak, bierzemy zapisany koszyk z X-Cart-Token."""

    cart: List[CartLineIn] | None = None


class CheckoutOut(BaseModel):
    url: str


class OrderProductOut(BaseModel):
    product_id: int
    size: str | None
    quantity: int
    price: int

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    user_id: int | None
    customer_email: str
    name: str
    address: str
    total: int
    payment_status: str | None
    shipping_cost: int | None
    shipping_description: str | None
    fulfilled: bool
    created_at: datetime
    order_products: List[OrderProductOut]

    model_config = ConfigDict(from_attributes=True)
