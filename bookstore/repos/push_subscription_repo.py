# bookstore/repos/push_subscription_repo.py
from sqlalchemy import select, delete, case

from bookstore.data.models.push_subscription import PushSubscriptionModel
from bookstore.repos.base import BaseRepo

# mobile first, then desktop, then anything else
_DEVICE_PRIORITY = case(
    (PushSubscriptionModel.device_type == "mobile", 0),
    (PushSubscriptionModel.device_type == "desktop", 1),
    else_=2,
)


class PushSubscriptionRepo(BaseRepo):
    def get_by_endpoint(self, endpoint: str) -> PushSubscriptionModel | None:
        stmt = select(PushSubscriptionModel).where(PushSubscriptionModel.endpoint == endpoint)
        return self.db.execute(stmt).scalar_one_or_none()

    def save(self, sub: PushSubscriptionModel) -> PushSubscriptionModel:
        self.db.add(sub)
        self.commit()
        return sub

    def list_by_priority(self) -> list[PushSubscriptionModel]:
        stmt = select(PushSubscriptionModel).order_by(
            _DEVICE_PRIORITY,
            PushSubscriptionModel.created_at.desc(),
            PushSubscriptionModel.id.desc(),
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_for_user(self, user_id: str) -> list[PushSubscriptionModel]:
        stmt = (
            select(PushSubscriptionModel)
            .where(PushSubscriptionModel.user_id == user_id)
            .order_by(_DEVICE_PRIORITY, PushSubscriptionModel.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def delete_by_endpoint(self, endpoint: str) -> int:
        res = self.db.execute(delete(PushSubscriptionModel).where(PushSubscriptionModel.endpoint == endpoint))
        self.commit()
        return res.rowcount
