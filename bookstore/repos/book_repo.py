# bookstore/repos/book_repo.py
from datetime import datetime

from sqlalchemy import select

from bookstore.data.models.book import BookModel
from bookstore.repos.base import BaseRepo


class BookRepo(BaseRepo):
    def get_book(self, book_id: int) -> BookModel | None:
        return self.db.get(BookModel, book_id)

    def get_books(self, book_ids) -> dict[int, BookModel]:
        ids = set(book_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(BookModel).where(BookModel.id.in_(ids))).scalars().all()
        return {b.id: b for b in rows}

    def create_book(self, book: BookModel) -> BookModel:
        self.db.add(book)
        self.commit()
        self.db.refresh(book)
        return book

    def list_available_since(self, since: datetime, limit: int) -> list[BookModel]:
        stmt = (
            select(BookModel)
            .where(BookModel.status == "available", BookModel.created_at >= since)
            .order_by(BookModel.created_at.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())
