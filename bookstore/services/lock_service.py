import secrets
from contextlib import contextmanager

import redis

from bookstore.domain.errors import CheckoutInProgressError
from bookstore.utils.retry import redis_retry
from bookstore.utils.settings import REDIS_URL, CHECKOUT_LOCK_TTL_SECONDS
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

# compare-and-delete in one atomic step, so a lock that expired and was
# taken by another request is never released by the previous owner
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""


class LockService:
    """
    -per-user checkout lock (SET NX EX)
    -token-checked release via lua
    """

    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(user_id: str) -> str:
        return f"checkout:{user_id}:lock"

    @redis_retry()
    def acquire_checkout_lock(self, user_id: str, token: str, ttl: int) -> bool:
        key = self._key(user_id)
        logger.info(f"Acquire lock {key}")
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release_checkout_lock(self, user_id: str, token: str) -> bool:
        key = self._key(user_id)
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def checkout_lock(self, user_id: str, ttl: int = CHECKOUT_LOCK_TTL_SECONDS):
        token = secrets.token_hex(8)
        if not self.acquire_checkout_lock(user_id, token, ttl):
            raise CheckoutInProgressError("a checkout for this cart is already in progress")
        try:
            yield
        finally:
            try:
                self.release_checkout_lock(user_id, token)
            except redis.RedisError as e:
                # the lock expires on its own after ttl
                logger.warning(f"Failed to release checkout lock for {user_id}: {e}")
