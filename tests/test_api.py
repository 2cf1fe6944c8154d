"""Tests for the backend HTTP client, using a fake requests session."""
import pytest
import requests

from wastewealth import config
from wastewealth.api import ApiClient, ApiError, AuthenticationError
from wastewealth.storage import MemoryStorage


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=None):
        self.status_code = status_code
        self._payload = payload
        if content is not None:
            self.content = content
        else:
            self.content = b"" if payload is None else b"{...}"

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records every call and replays a canned response or exception."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(200, {})
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class TestApiClient:
    def setup_method(self):
        self.credentials = MemoryStorage({
            config.AUTH_TOKEN_KEY: "token-123",
            config.USER_DATA_KEY: '{"name": "Asha"}',
        })
        self.session = FakeSession()
        self.client = ApiClient(self.credentials, base_url="https://api.test/api/", session=self.session)

    def test_bearer_token_and_timeout_are_sent(self):
        self.session.response = FakeResponse(200, {"data": {"requests": []}})

        result = self.client.worker.get_available_requests()

        method, url, kwargs = self.session.calls[0]
        assert result == {"data": {"requests": []}}
        assert method == "GET"
        assert url == "https://api.test/api/worker/requests"
        assert kwargs["headers"]["Authorization"] == "Bearer token-123"
        assert kwargs["timeout"] == config.API_TIMEOUT_SECONDS

    def test_no_token_means_no_authorization_header(self):
        client = ApiClient(MemoryStorage(), base_url="https://api.test", session=self.session)
        client.auth.login("a@b.c", "secret")

        method, url, kwargs = self.session.calls[0]
        assert method == "POST"
        assert url == "https://api.test/auth/login"
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["json"] == {"email": "a@b.c", "password": "secret"}

    def test_unauthorized_clears_credentials(self):
        self.session.response = FakeResponse(401, {"error": "expired"})

        with pytest.raises(AuthenticationError) as exc_info:
            self.client.worker.get_worker_stats()

        assert exc_info.value.status_code == 401
        assert self.credentials.get_item(config.AUTH_TOKEN_KEY) is None
        assert self.credentials.get_item(config.USER_DATA_KEY) is None

    def test_other_errors_keep_credentials(self):
        self.session.response = FakeResponse(500, {"error": "boom"})

        with pytest.raises(ApiError) as exc_info:
            self.client.wallet.get_balance()

        assert not isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.status_code == 500
        assert self.credentials.get_item(config.AUTH_TOKEN_KEY) == "token-123"

    def test_timeout_becomes_api_error(self):
        self.session.error = requests.exceptions.Timeout("slow")

        with pytest.raises(ApiError) as exc_info:
            self.client.waste.get_waste_types()

        assert exc_info.value.status_code is None
        assert "timed out" in str(exc_info.value)

    def test_connection_error_becomes_api_error(self):
        self.session.error = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ApiError):
            self.client.user.get_profile()

    def test_empty_body_returns_none(self):
        self.session.response = FakeResponse(204)
        assert self.client.worker.accept_request("req_1") is None
        assert self.session.calls[0][1] == "https://api.test/api/worker/requests/req_1/accept"

    def test_invalid_json_raises_api_error(self):
        self.session.response = FakeResponse(200, content=b"<html>")
        with pytest.raises(ApiError):
            self.client.admin.get_dashboard()

    def test_query_params(self):
        self.client.admin.get_pickups("completed")
        self.client.admin.get_pickups()

        assert self.session.calls[0][2]["params"] == {"status": "completed"}
        assert self.session.calls[1][2]["params"] is None

    def test_status_update_payload(self):
        self.client.worker.update_status("req_7", "in-progress")

        method, url, kwargs = self.session.calls[0]
        assert method == "POST"
        assert url.endswith("/worker/requests/req_7/status")
        assert kwargs["json"] == {"status": "in-progress"}
