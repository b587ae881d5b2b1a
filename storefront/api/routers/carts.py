#storefront/api/routers/carts.py
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront.api.deps import CART_TOKEN_HEADER, read_cart_token
from storefront.data.database import get_db
from storefront.domain.schemas import (
    CartAttachIn,
    CartClearedOut,
    CartItemsIn,
    CartMergeIn,
    CartOut,
)
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/api/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


def _token_required() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Cart token required"})


def _token_for_mutation(request: Request, response: Response) -> str:
    # brak tokenu przy zmianie = nowy koszyk, klient dostaje token w odpowiedzi
    token = read_cart_token(request) or uuid4().hex
    response.headers[CART_TOKEN_HEADER] = token
    return token


@router.get("", response_model=CartOut)
def show_cart(request: Request, db: Session = Depends(get_db)):
    token = read_cart_token(request)
    if not token:
        return _token_required()
    return get_service(db).load(token)


@router.post("/sync", response_model=CartOut)
def sync_cart(
    payload: CartItemsIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    token = _token_for_mutation(request, response)
    return get_service(db).sync_from_client(token, payload.items)


@router.post("/merge", response_model=CartOut)
def merge_cart(
    payload: CartMergeIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    token = _token_for_mutation(request, response)
    svc = get_service(db)
    if payload.source_token:
        return svc.merge_carts(token, payload.source_token)
    return svc.merge_items(token, payload.items)


@router.post("/attach", response_model=CartOut)
def attach_cart(
    payload: CartAttachIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    token = _token_for_mutation(request, response)
    try:
        cart = get_service(db).attach_to_user(token, payload.user_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    # koszyk uzytkownika moze miec inny token niz koszyk goscia
    response.headers[CART_TOKEN_HEADER] = cart["cart_token"]
    return cart


@router.delete("/clear", response_model=CartClearedOut)
def clear_cart(request: Request, db: Session = Depends(get_db)):
    token = read_cart_token(request)
    if not token:
        return _token_required()
    return get_service(db).clear(token)
