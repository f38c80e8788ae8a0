# bookstore/repos/order_repo.py
from sqlalchemy import select, delete, func
from sqlalchemy.exc import SQLAlchemyError

from bookstore.data.models.order import OrderModel
from bookstore.data.models.order_item import OrderItemModel
from bookstore.domain.errors import PersistenceError
from bookstore.repos.base import BaseRepo


class OrderRepo(BaseRepo):
    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.commit()
        self.db.refresh(order)
        return order

    def add_order_items(self, items: list[OrderItemModel]) -> list[OrderItemModel]:
        self.db.add_all(items)
        self.commit()
        return items

    def delete_order(self, order_id: int) -> None:
        # items first, the FK cascade is not guaranteed on every backend
        try:
            self.db.execute(delete(OrderItemModel).where(OrderItemModel.order_id == order_id))
            self.db.execute(delete(OrderModel).where(OrderModel.id == order_id))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("database write failed") from e
        self.commit()

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_user_order(self, order_id: int, user_id: str) -> OrderModel | None:
        stmt = select(OrderModel).where(OrderModel.id == order_id, OrderModel.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_orders(self, status: str | None = None, user_id: str | None = None) -> list[OrderModel]:
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return list(self.db.execute(stmt).scalars().all())

    def get_order_items(self, order_id: int) -> list[OrderItemModel]:
        stmt = select(OrderItemModel).where(OrderItemModel.order_id == order_id).order_by(OrderItemModel.id)
        return list(self.db.execute(stmt).scalars().all())

    def item_counts(self, order_ids) -> dict[int, tuple[int, int]]:
        """order_id -> (number of lines, total quantity)."""
        ids = list(order_ids)
        if not ids:
            return {}
        stmt = (
            select(OrderItemModel.order_id, func.count(OrderItemModel.id), func.sum(OrderItemModel.quantity))
            .where(OrderItemModel.order_id.in_(ids))
            .group_by(OrderItemModel.order_id)
        )
        return {oid: (count, int(qty or 0)) for oid, count, qty in self.db.execute(stmt).all()}

    def save(self, order: OrderModel) -> OrderModel:
        self.commit()
        self.db.refresh(order)
        return order
