from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, List, Tuple

from sqlalchemy.orm import Session

from bookstore.data.models.book import BookModel
from bookstore.data.models.cart_item import CartItemModel
from bookstore.domain.errors import NotFoundError, ValidationError
from bookstore.repos.book_repo import BookRepo
from bookstore.repos.cart_repo import CartRepo
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

CENTS = Decimal("0.01")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS)


def book_dict(book: BookModel) -> Dict[str, Any]:
    return {
        "book_id": book.id,
        "title": book.title,
        "author": book.author,
        "price": money(book.price),
        "status": book.status,
        "cover_image_url": book.cover_image_url,
        "created_at": book.created_at,
    }


@dataclass(frozen=True)
class OrderItemDraft:
    book_id: int
    title: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class CheckoutSet:
    items: List[OrderItemDraft]
    total_amount: Decimal


class CartService:
    """
    Cart of a single user, one line per book.
    Reads resolve every line against the catalog; writes validate the book first.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.books = BookRepo(db)

    # query
    def load_cart(self, user_id: str) -> List[Tuple[CartItemModel, BookModel]]:
        lines = self.repo.get_cart_items(user_id)
        books = self.books.get_books(line.book_id for line in lines)

        resolved = []
        for line in lines:
            book = books.get(line.book_id)
            if book is None:
                # catalog and cart are only eventually consistent
                logger.debug(f"Dropping cart line for missing book {line.book_id} (user {user_id})")
                continue
            resolved.append((line, book))
        return resolved

    def get_cart(self, user_id: str) -> Dict[str, Any]:
        items = []
        total = Decimal("0.00")
        total_items = 0
        for line, book in self.load_cart(user_id):
            unit_price = money(book.price)
            subtotal = unit_price * line.quantity
            total += subtotal
            total_items += line.quantity
            items.append(
                {
                    "book_id": book.id,
                    "quantity": line.quantity,
                    "unit_price": unit_price,
                    "subtotal": subtotal,
                    "created_at": line.created_at,
                    "book": book_dict(book),
                }
            )
        return {"items": items, "total_amount": total, "total_items": total_items}

    def compute_checkout_set(self, user_id: str) -> CheckoutSet:
        """
        Price every cart line against the current catalog.

        The whole checkout is rejected on the first missing or unavailable book.
        """
        lines = self.repo.get_cart_items(user_id)
        books = self.books.get_books(line.book_id for line in lines)

        drafts = []
        total = Decimal("0.00")
        for line in lines:
            book = books.get(line.book_id)
            if book is None:
                raise NotFoundError(f"book {line.book_id} not found")
            if book.status != "available":
                raise ValidationError(f"{book.title} is not available")

            unit_price = money(book.price)
            subtotal = unit_price * line.quantity
            total += subtotal
            drafts.append(
                OrderItemDraft(
                    book_id=book.id,
                    title=book.title,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    subtotal=subtotal,
                )
            )

        return CheckoutSet(items=drafts, total_amount=total)

    # commands
    def add_item(self, user_id: str, book_id: int, quantity: int = 1) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("quantity must be greater than 0")

        book = self.books.get_book(book_id)
        if book is None:
            raise NotFoundError(f"book {book_id} not found")
        if book.status != "available":
            raise ValidationError(f"{book.title} is not available")

        existing = self.repo.get_cart_item(user_id, book_id)
        if existing:
            logger.info(
                f"Book {book_id} already in cart of {user_id}, quantity "
                f"{existing.quantity} -> {existing.quantity + quantity}"
            )
            existing.quantity += quantity
            self.repo.add_cart_item(existing)
        else:
            logger.info(f"Adding book {book_id} to cart of {user_id}")
            self.repo.add_cart_item(CartItemModel(user_id=user_id, book_id=book_id, quantity=quantity))

        return self.get_cart(user_id)

    def update_quantity(self, user_id: str, book_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            return self.remove_item(user_id, book_id)

        existing = self.repo.get_cart_item(user_id, book_id)
        if existing is None:
            raise NotFoundError(f"book {book_id} is not in the cart")

        existing.quantity = quantity
        self.repo.add_cart_item(existing)
        return self.get_cart(user_id)

    def remove_item(self, user_id: str, book_id: int) -> Dict[str, Any]:
        removed = self.repo.delete_cart_item(user_id, book_id)
        logger.info(f"Removed book {book_id} from cart of {user_id} ({removed} row(s))")
        return self.get_cart(user_id)

    def clear(self, user_id: str) -> int:
        removed = self.repo.clear_cart(user_id)
        logger.info(f"Cleared cart of {user_id} ({removed} row(s))")
        return removed
