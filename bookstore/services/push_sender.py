"""Push delivery port and its Web Push (VAPID) adapter."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from pywebpush import webpush, WebPushException
from requests import RequestException
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from bookstore.domain.errors import DeliveryConfigError
from bookstore.utils.settings import (
    VAPID_PUBLIC_KEY,
    VAPID_PRIVATE_KEY,
    VAPID_CONTACT,
    PUSH_TTL_SECONDS,
    PUSH_TIMEOUT_SECONDS,
)
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)

SENT = "sent"
GONE = "gone"
FAILED = "failed"

# the push service no longer knows this endpoint
GONE_STATUS_CODES = (404, 410)
TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class PushResult:
    endpoint: str
    status: str
    status_code: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == SENT


class PushSender(ABC):
    """Abstract interface for push delivery adapters."""

    @abstractmethod
    def send(self, endpoint: str, keys: dict, data: str) -> PushResult:
        """Deliver one serialized payload to one endpoint. Must not raise."""
        ...


def _status_of(exc: WebPushException) -> int | None:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, WebPushException):
        return _status_of(exc) in TRANSIENT_STATUS_CODES
    return isinstance(exc, RequestException)


class WebPushSender(PushSender):
    def __init__(
        self,
        public_key: str | None = None,
        private_key: str | None = None,
        contact: str | None = None,
        ttl: int = PUSH_TTL_SECONDS,
        timeout: float = PUSH_TIMEOUT_SECONDS,
    ):
        self.public_key = VAPID_PUBLIC_KEY if public_key is None else public_key
        self.private_key = VAPID_PRIVATE_KEY if private_key is None else private_key
        self.contact = contact or VAPID_CONTACT
        self.ttl = ttl
        self.timeout = timeout

        if not self.public_key or not self.private_key:
            raise DeliveryConfigError("VAPID keys not configured on server")

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception(_is_transient),
    )
    def _deliver(self, endpoint: str, keys: dict, data: str) -> None:
        webpush(
            subscription_info={"endpoint": endpoint, "keys": {"p256dh": keys["p256dh"], "auth": keys["auth"]}},
            data=data,
            vapid_private_key=self.private_key,
            # pywebpush adds aud/exp to the claims dict, so hand it a fresh one
            vapid_claims={"sub": self.contact},
            ttl=self.ttl,
            timeout=self.timeout,
        )

    def send(self, endpoint: str, keys: dict, data: str) -> PushResult:
        try:
            self._deliver(endpoint, keys, data)
        except WebPushException as e:
            code = _status_of(e)
            status = GONE if code in GONE_STATUS_CODES else FAILED
            logger.warning(f"Push to {endpoint[:60]} failed with {code}: {e}")
            return PushResult(endpoint=endpoint, status=status, status_code=code, error=str(e))
        except RequestException as e:
            logger.warning(f"Push to {endpoint[:60]} unreachable: {e}")
            return PushResult(endpoint=endpoint, status=FAILED, error=str(e))
        return PushResult(endpoint=endpoint, status=SENT, status_code=201)
