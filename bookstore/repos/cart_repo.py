# bookstore/repos/cart_repo.py
from sqlalchemy import select, delete

from bookstore.data.models.cart_item import CartItemModel
from bookstore.repos.base import BaseRepo


class CartRepo(BaseRepo):
    def get_cart_items(self, user_id: str) -> list[CartItemModel]:
        stmt = (
            select(CartItemModel)
            .where(CartItemModel.user_id == user_id)
            .order_by(CartItemModel.created_at.desc(), CartItemModel.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_cart_item(self, user_id: str, book_id: int) -> CartItemModel | None:
        stmt = select(CartItemModel).where(
            CartItemModel.user_id == user_id,
            CartItemModel.book_id == book_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.commit()
        return item

    def delete_cart_item(self, user_id: str, book_id: int) -> int:
        res = self.db.execute(
            delete(CartItemModel).where(
                CartItemModel.user_id == user_id,
                CartItemModel.book_id == book_id,
            )
        )
        self.commit()
        return res.rowcount

    def clear_cart(self, user_id: str) -> int:
        res = self.db.execute(delete(CartItemModel).where(CartItemModel.user_id == user_id))
        self.commit()
        return res.rowcount
