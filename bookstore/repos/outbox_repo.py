# bookstore/repos/outbox_repo.py
from datetime import datetime

from sqlalchemy import select

from bookstore.data.models.outbox import OutboxMessageModel
from bookstore.repos.base import BaseRepo


class OutboxRepo(BaseRepo):
    def add(self, message: OutboxMessageModel) -> OutboxMessageModel:
        self.db.add(message)
        self.commit()
        return message

    def get(self, message_id: int) -> OutboxMessageModel | None:
        return self.db.get(OutboxMessageModel, message_id)

    def next_due(self, now: datetime) -> OutboxMessageModel | None:
        # skip_locked lets several workers drain side by side; ignored by SQLite
        stmt = (
            select(OutboxMessageModel)
            .where(OutboxMessageModel.status == "pending", OutboxMessageModel.next_attempt_at <= now)
            .order_by(OutboxMessageModel.next_attempt_at, OutboxMessageModel.id)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_kind(self, kind: str) -> list[OutboxMessageModel]:
        stmt = select(OutboxMessageModel).where(OutboxMessageModel.kind == kind).order_by(OutboxMessageModel.id)
        return list(self.db.execute(stmt).scalars().all())
