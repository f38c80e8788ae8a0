# bookstore/api/routers/admin_orders.py
from typing import Union

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bookstore.api.deps import require_operator
from bookstore.data.database import get_db
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import OrdersOut, OrderEnvelope, OrderStatusIn
from bookstore.services.identity_client import CurrentUser
from bookstore.services.order_service import OrderService
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin/orders", tags=["admin"])


def get_service(db: Session):
    return OrderService(db)


@router.get("", response_model=Union[OrdersOut, OrderEnvelope])
def get_orders(
    status: str | None = Query(None),
    order_id: int | None = Query(None, gt=0),
    operator: CurrentUser = Depends(require_operator),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        if order_id is not None:
            return {"order": svc.get_order_detail(order_id)}
        return {"orders": svc.list_orders(status=status)}
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("", response_model=OrderEnvelope)
def update_order(
    payload: OrderStatusIn,
    operator: CurrentUser = Depends(require_operator),
    db: Session = Depends(get_db),
):
    """Moves an order through the status state machine."""
    svc = get_service(db)
    try:
        order = svc.set_status(payload.order_id, payload.status, payload.admin_notes)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    logger.info(f"Operator {operator.id} updated order {order['order_number']}")
    return {"order": order}
