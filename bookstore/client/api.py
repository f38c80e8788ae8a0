# bookstore/client/api.py
import asyncio
from abc import ABC, abstractmethod
from typing import Any

import requests

from bookstore.utils.retry import http_retry


class ServerApi(ABC):
    """The slice of the HTTP surface the notification controller talks to."""

    @abstractmethod
    async def vapid_key(self) -> str: ...

    @abstractmethod
    async def subscribe(self, subscription: dict[str, Any], user_agent: str | None = None) -> None: ...

    @abstractmethod
    async def unsubscribe(self, endpoint: str) -> None: ...

    @abstractmethod
    async def new_books(self, since: str) -> dict[str, Any]: ...


class HttpServerApi(ServerApi):
    """
    requests-backed client; each call runs in a worker thread so the
    controller's event loop never blocks on the network.
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @http_retry()
    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        resp = requests.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )
        resp.raise_for_status()
        return resp.json()

    async def vapid_key(self) -> str:
        data = await asyncio.to_thread(self._request, "GET", "/notifications/vapid")
        return data.get("public_key", "")

    async def subscribe(self, subscription, user_agent=None):
        body = dict(subscription)
        if user_agent:
            body["user_agent"] = user_agent
        await asyncio.to_thread(self._request, "POST", "/notifications/subscribe", json=body)

    async def unsubscribe(self, endpoint):
        await asyncio.to_thread(self._request, "POST", "/notifications/unsubscribe", json={"endpoint": endpoint})

    async def new_books(self, since):
        return await asyncio.to_thread(self._request, "GET", "/notifications/new-books", params={"since": since})
