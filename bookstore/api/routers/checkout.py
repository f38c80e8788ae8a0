# bookstore/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from bookstore.api.deps import get_current_user, get_lock_service
from bookstore.data.database import get_db
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import CheckoutIn, OrderSummaryOut
from bookstore.services.checkout_service import CheckoutService
from bookstore.services.identity_client import CurrentUser
from bookstore.services.lock_service import LockService
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=OrderSummaryOut)
def checkout(
    payload: CheckoutIn,
    user: CurrentUser = Depends(get_current_user),
    lock_service: LockService | None = Depends(get_lock_service),
    db: Session = Depends(get_db),
):
    """
    Turns the caller's cart into a pending order.
    Operator alerts are queued, not awaited.
    """
    svc = CheckoutService(db, lock_service=lock_service)
    try:
        return svc.checkout(user.id, payload)
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except RedisError as e:
        logger.error(f"Checkout lock unavailable: {e}")
        raise HTTPException(status_code=500, detail="checkout temporarily unavailable")
