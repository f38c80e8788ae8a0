# bookstore/services/identity_client.py
import requests
from requests import RequestException

from bookstore.domain.errors import AuthError, AuthorizationError
from bookstore.utils.retry import http_retry
from bookstore.utils.settings import IDENTITY_SERVICE_URL, OPERATOR_EMAIL
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


class CurrentUser:
    __slots__ = ("id", "email")

    def __init__(self, id: str, email: str | None = None):
        self.id = id
        self.email = email

    @property
    def is_operator(self) -> bool:
        return is_operator_email(self.email)

    def require_operator(self) -> None:
        if not self.is_operator:
            raise AuthorizationError("operator access required")

    def __repr__(self) -> str:
        return f"<CurrentUser {self.id}>"


def is_operator_email(email: str | None, operator_email: str | None = None) -> bool:
    expected = (operator_email if operator_email is not None else OPERATOR_EMAIL).strip().lower()
    if not email or not expected:
        return False
    return email.strip().lower() == expected


class IdentityClient:
    """Resolves a bearer access token to a user through the identity service."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or IDENTITY_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _fetch_user(self, token: str) -> requests.Response:
        url = f"{self.base_url}/user"
        logger.debug(f"IdentityClient GET {url}")
        return requests.get(url, headers={"Authorization": f"Bearer {token}"}, timeout=self.timeout)

    def resolve(self, token: str | None) -> CurrentUser:
        if not token:
            raise AuthError("not authenticated")

        try:
            resp = self._fetch_user(token)
        except RequestException as e:
            logger.error(f"Identity service unreachable: {e}")
            raise AuthError("could not verify access token") from e

        if resp.status_code in (401, 403, 404):
            raise AuthError("not authenticated")
        if resp.status_code >= 400:
            logger.error(f"Identity service answered {resp.status_code}")
            raise AuthError("could not verify access token")

        data = resp.json()
        user_id = data.get("id")
        if not user_id:
            raise AuthError("not authenticated")
        return CurrentUser(id=str(user_id), email=data.get("email"))
