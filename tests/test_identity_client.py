from types import SimpleNamespace

import pytest
import requests

from bookstore.domain.errors import AuthError, AuthorizationError
from bookstore.services import identity_client
from bookstore.services.identity_client import CurrentUser, IdentityClient, is_operator_email


def _response(status_code, body=None):
    return SimpleNamespace(status_code=status_code, json=lambda: body or {})


@pytest.fixture()
def client():
    return IdentityClient(base_url="http://identity.test/")


@pytest.fixture()
def no_wait(monkeypatch):
    monkeypatch.setattr(IdentityClient._fetch_user.retry, "sleep", lambda seconds: None)


class TestResolve:
    def test_resolves_user(self, client, monkeypatch):
        calls = []

        def fake_get(url, headers, timeout):
            calls.append((url, headers))
            return _response(200, {"id": 42, "email": "reader@example.com"})

        monkeypatch.setattr(identity_client.requests, "get", fake_get)

        user = client.resolve("tok")

        assert user.id == "42"
        assert user.email == "reader@example.com"
        assert calls == [("http://identity.test/user", {"Authorization": "Bearer tok"})]

    def test_missing_token(self, client):
        with pytest.raises(AuthError):
            client.resolve(None)

    @pytest.mark.parametrize("status", [401, 403, 404, 500])
    def test_rejected_token(self, client, monkeypatch, status):
        monkeypatch.setattr(identity_client.requests, "get", lambda *a, **kw: _response(status))
        with pytest.raises(AuthError):
            client.resolve("tok")

    def test_response_without_id(self, client, monkeypatch):
        monkeypatch.setattr(identity_client.requests, "get", lambda *a, **kw: _response(200, {"email": "x@y"}))
        with pytest.raises(AuthError):
            client.resolve("tok")

    def test_unreachable_service(self, client, monkeypatch, no_wait):
        def down(*args, **kwargs):
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(identity_client.requests, "get", down)
        with pytest.raises(AuthError, match="could not verify"):
            client.resolve("tok")


class TestOperator:
    def test_operator_email_is_case_insensitive(self):
        assert is_operator_email(" Boss@Shop.com ", operator_email="boss@shop.com")
        assert not is_operator_email("reader@shop.com", operator_email="boss@shop.com")

    def test_no_operator_configured(self):
        assert not is_operator_email("boss@shop.com", operator_email="")

    def test_require_operator(self):
        CurrentUser(id="operator-1", email="operator@example.com").require_operator()
        with pytest.raises(AuthorizationError):
            CurrentUser(id="user-1", email="reader@example.com").require_operator()
