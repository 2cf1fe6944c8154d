# wastewealth/api.py
"""
HTTP client for the WasteWealth marketplace backend.

Thin wrapper around requests:
- Injects 'Authorization: Bearer <token>' from the credential storage
- Applies a fixed timeout to every call, with no retries
- Clears stored credentials when the backend answers 401

Endpoints are grouped the way the backend groups them: auth, user, waste
(pickups), wallet, worker and admin.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from . import config
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    Raised when a backend call fails.

    Attributes:
        status_code: HTTP status, or None for transport failures (timeout, DNS, ...)
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ApiError):
    """Raised on HTTP 401. Stored credentials have already been cleared."""


class ApiClient:
    """
    Session-based REST client.

    Attributes:
        base_url: Backend root, e.g. 'https://example.com/api'
        credentials: Key-value storage holding the auth token and user data
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        credentials: KeyValueStorage,
        base_url: Optional[str] = None,
        timeout: float = config.API_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.session = session or requests.Session()

        self.auth = AuthEndpoints(self)
        self.user = UserEndpoints(self)
        self.waste = WasteEndpoints(self)
        self.wallet = WalletEndpoints(self)
        self.worker = WorkerEndpoints(self)
        self.admin = AdminEndpoints(self)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        try:
            token = self.credentials.get_item(config.AUTH_TOKEN_KEY)
        except OSError as e:
            logger.error(f"Error reading auth token: {e}")
            token = None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def clear_credentials(self) -> None:
        for key in (config.AUTH_TOKEN_KEY, config.USER_DATA_KEY):
            try:
                self.credentials.remove_item(key)
            except OSError as e:
                logger.error(f"Error clearing credential '{key}': {e}")

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None for an empty body).

        Raises:
            AuthenticationError: On HTTP 401, after clearing stored credentials
            ApiError: On any other HTTP error status or transport failure
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"{method} {url} timed out after {self.timeout}s")
            raise ApiError(f"Request timed out: {method} {path}")
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ApiError(f"Request failed: {method} {path}: {e}")

        if response.status_code == 401:
            logger.warning("Backend rejected credentials, clearing stored session")
            self.clear_credentials()
            raise AuthenticationError("Unauthorized", status_code=401)
        if response.status_code >= 400:
            raise ApiError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON from {method} {path}: {e}", status_code=response.status_code)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


class _Endpoints:
    def __init__(self, client: ApiClient) -> None:
        self.client = client


class AuthEndpoints(_Endpoints):
    def login(self, email: str, password: str) -> Any:
        return self.client.post("/auth/login", {"email": email, "password": password})

    def register(self, user_data: Dict[str, Any]) -> Any:
        return self.client.post("/auth/register", user_data)

    def verify_email(self, token: str) -> Any:
        return self.client.post("/auth/verify-email", {"token": token})

    def verify_phone(self, code: str, phone: str) -> Any:
        return self.client.post("/auth/verify-phone", {"code": code, "phone": phone})

    def forgot_password(self, email: str) -> Any:
        return self.client.post("/auth/forgot-password", {"email": email})

    def reset_password(self, token: str, password: str) -> Any:
        return self.client.post("/auth/reset-password", {"token": token, "password": password})


class UserEndpoints(_Endpoints):
    def get_profile(self) -> Any:
        return self.client.get("/user/profile")

    def update_profile(self, data: Dict[str, Any]) -> Any:
        return self.client.put("/user/profile", data)

    def get_addresses(self) -> Any:
        return self.client.get("/user/addresses")

    def add_address(self, address: Dict[str, Any]) -> Any:
        return self.client.post("/user/addresses", address)

    def delete_address(self, address_id: str) -> Any:
        return self.client.delete(f"/user/addresses/{address_id}")

    def get_stats(self, timeframe: str) -> Any:
        return self.client.get("/user/stats", params={"timeframe": timeframe})


class WasteEndpoints(_Endpoints):
    def get_waste_types(self) -> Any:
        return self.client.get("/waste/types")

    def calculate_value(self, type_id: str, quantity: float, unit: str) -> Any:
        return self.client.post("/waste/calculate", {"typeId": type_id, "quantity": quantity, "unit": unit})

    def request_pickup(self, data: Dict[str, Any]) -> Any:
        return self.client.post("/pickup/request", data)

    def get_pickup_history(self) -> Any:
        return self.client.get("/pickup/history")

    def get_pickup_details(self, pickup_id: str) -> Any:
        return self.client.get(f"/pickup/{pickup_id}")

    def cancel_pickup(self, pickup_id: str) -> Any:
        return self.client.post(f"/pickup/{pickup_id}/cancel")

    def rate_pickup(self, pickup_id: str, rating: int, feedback: Optional[str] = None) -> Any:
        return self.client.post(f"/pickup/{pickup_id}/rate", {"rating": rating, "feedback": feedback})


class WalletEndpoints(_Endpoints):
    def get_balance(self) -> Any:
        return self.client.get("/wallet/balance")

    def get_transactions(self) -> Any:
        return self.client.get("/wallet/transactions")

    def get_stats(self) -> Any:
        return self.client.get("/wallet/stats")

    def request_payout(self, amount: float, method: str, details: Dict[str, Any]) -> Any:
        return self.client.post("/wallet/payout", {"amount": amount, "method": method, "details": details})


class WorkerEndpoints(_Endpoints):
    def get_available_requests(self) -> Any:
        return self.client.get("/worker/requests")

    def accept_request(self, request_id: str) -> Any:
        return self.client.post(f"/worker/requests/{request_id}/accept")

    def decline_request(self, request_id: str) -> Any:
        return self.client.post(f"/worker/requests/{request_id}/decline")

    def update_status(self, request_id: str, status: str) -> Any:
        return self.client.post(f"/worker/requests/{request_id}/status", {"status": status})

    def get_earnings(self, period: str) -> Any:
        return self.client.get("/worker/earnings", params={"period": period})

    def set_availability(self, available: bool) -> Any:
        return self.client.post("/worker/availability", {"available": available})

    def get_worker_stats(self) -> Any:
        return self.client.get("/worker/stats")


class AdminEndpoints(_Endpoints):
    def get_dashboard(self) -> Any:
        return self.client.get("/admin/dashboard")

    def get_users(self) -> Any:
        return self.client.get("/admin/users")

    def get_workers(self) -> Any:
        return self.client.get("/admin/workers")

    def get_pickups(self, status: Optional[str] = None) -> Any:
        return self.client.get("/admin/pickups", params={"status": status} if status else None)

    def get_waste_prices(self) -> Any:
        return self.client.get("/admin/waste-prices")

    def update_waste_prices(self, prices: Dict[str, Any]) -> Any:
        return self.client.post("/admin/waste-prices", prices)

    def approve_worker(self, worker_id: str) -> Any:
        return self.client.post(f"/admin/workers/{worker_id}/approve")

    def reject_worker(self, worker_id: str) -> Any:
        return self.client.post(f"/admin/workers/{worker_id}/reject")

    def block_user(self, user_id: str) -> Any:
        return self.client.post(f"/admin/users/{user_id}/block")
