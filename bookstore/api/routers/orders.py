# bookstore/api/routers/orders.py
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bookstore.api.deps import get_current_user
from bookstore.data.database import get_db
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import OrdersOut, OrderEnvelope
from bookstore.services.identity_client import CurrentUser
from bookstore.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=Union[OrdersOut, OrderEnvelope])
def get_orders(
    order_id: int | None = Query(None, gt=0),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Caller's orders newest first, or one of them with its items."""
    svc = get_service(db)
    if order_id is None:
        return {"orders": svc.list_user_orders(user.id)}
    try:
        return {"order": svc.get_order_detail(order_id, user_id=user.id)}
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
