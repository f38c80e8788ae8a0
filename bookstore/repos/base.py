# bookstore/repos/base.py
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookstore.domain.errors import PersistenceError
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


class BaseRepo:
    def __init__(self, db: Session):
        self.db = db

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Commit failed: {e}")
            raise PersistenceError("database write failed") from e

    def rollback(self) -> None:
        self.db.rollback()
