# bookstore/api/routers/admin_books.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bookstore.api.deps import require_operator
from bookstore.data.database import get_db
from bookstore.data.models.book import BookModel
from bookstore.domain.errors import AppError
from bookstore.domain.schemas import BookCreate, BookEnvelope
from bookstore.repos.book_repo import BookRepo
from bookstore.services.cart_service import book_dict
from bookstore.services.identity_client import CurrentUser
from bookstore.services.notification_service import NotificationService

router = APIRouter(prefix="/admin/books", tags=["admin"])


@router.post("", response_model=BookEnvelope, status_code=201)
def create_book(
    payload: BookCreate,
    operator: CurrentUser = Depends(require_operator),
    db: Session = Depends(get_db),
):
    """Adds a catalog item; available items queue a subscriber alert."""
    try:
        book = BookRepo(db).create_book(BookModel(**payload.model_dump()))
    except AppError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    if book.status == "available":
        NotificationService(db).book_published(book.id)
    return {"book": book_dict(book)}
