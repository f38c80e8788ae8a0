# bookstore/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bookstore.api.deps import get_current_user
from bookstore.data.database import get_db
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import CartItemIn, CartQuantityIn, CartOut
from bookstore.services.cart_service import CartService
from bookstore.services.identity_client import CurrentUser

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_service(db).get_cart(user.id)


@router.post("", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.add_item(user.id, payload.book_id, payload.quantity)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("", response_model=CartOut)
def update_quantity(
    payload: CartQuantityIn,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.update_quantity(user.id, payload.book_id, payload.quantity)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("", response_model=CartOut)
def remove_item(
    book_id: int | None = Query(None, gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove one book, or empty the whole cart when no book_id is given."""
    svc = get_service(db)
    try:
        if book_id is None:
            svc.clear(user.id)
            return svc.get_cart(user.id)
        return svc.remove_item(user.id, book_id)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
