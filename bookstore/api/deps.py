# bookstore/api/deps.py
from typing import Callable

from fastapi import Depends, Header, HTTPException

from bookstore.domain.errors import AuthError, AuthorizationError
from bookstore.services.identity_client import CurrentUser, IdentityClient
from bookstore.services.lock_service import LockService
from bookstore.services.push_sender import PushSender, WebPushSender
from bookstore.utils.logging import add_context
from bookstore.utils.settings import CHECKOUT_LOCK_ENABLED


def get_identity_client() -> IdentityClient:
    return IdentityClient()


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_current_user(
    authorization: str | None = Header(None),
    identity: IdentityClient = Depends(get_identity_client),
) -> CurrentUser:
    try:
        user = identity.resolve(bearer_token(authorization))
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    add_context(user_id=user.id)
    return user


def require_operator(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    try:
        user.require_operator()
    except AuthorizationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return user


def get_lock_service() -> LockService | None:
    return LockService() if CHECKOUT_LOCK_ENABLED else None


def get_push_sender_factory() -> Callable[[], PushSender]:
    # a factory, so missing VAPID keys surface inside the route as a 500
    return WebPushSender
