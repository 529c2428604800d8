"""
HTTP client for the finance tracker API.

Credentials live in an explicit ClientSession rather than in process-wide
state. A session is created by `login`/`register`, passed to every call
that needs authentication, and cleared by `logout` or by any 401 response.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import httpx
import logging

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-success response from the API."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class AuthenticationError(ApiError):
    """Missing, invalid or expired credentials."""


@dataclass
class ClientSession:
    token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def authorization_headers(self) -> Dict[str, str]:
        if not self.token:
            raise AuthenticationError(401, "Not logged in")
        return {"Authorization": f"Bearer {self.token}"}

    def clear(self) -> None:
        self.token = None
        self.user = {}


def _error_message(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI validation errors
        return "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict)) or str(detail)
    return f"HTTP error! status: {response.status_code}"


class FinanceClient:
    """Thin wrapper over the REST API; one method per endpoint."""

    def __init__(self, base_url: str, http_client: Optional[httpx.Client] = None, timeout: float = 30.0):
        """
        Args:
            base_url: API root, e.g. "http://localhost:8000/api"
            http_client: Optional preconfigured httpx client (used by tests)
            timeout: Request timeout in seconds when creating our own client
        """
        self.base_url = base_url.rstrip("/")
        self.client = http_client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": "Finance-Tracker-Client/1.0"},
        )

    def close(self) -> None:
        self.client.close()

    def _request(
        self,
        method: str,
        endpoint: str,
        session: Optional[ClientSession] = None,
        **kwargs,
    ) -> Any:
        headers = kwargs.pop("headers", {})
        if session is not None:
            headers.update(session.authorization_headers())

        try:
            response = self.client.request(method, f"{self.base_url}{endpoint}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling {method} {endpoint}: {e}")
            raise

        if response.status_code == 401:
            if session is not None:
                session.clear()
            raise AuthenticationError(401, _error_message(response))
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()

    def _start_session(self, data: Dict[str, Any]) -> ClientSession:
        return ClientSession(token=data["token"], user=data.get("user") or {})

    # Authentication
    def register(self, first_name: str, last_name: str, email: str, password: str) -> ClientSession:
        data = self._request(
            "POST",
            "/auth/register",
            json={"firstName": first_name, "lastName": last_name, "email": email, "password": password},
        )
        return self._start_session(data)

    def login(self, email: str, password: str) -> ClientSession:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._start_session(data)

    def logout(self, session: ClientSession) -> None:
        session.clear()

    def get_current_user(self, session: ClientSession) -> Dict[str, Any]:
        data = self._request("GET", "/auth/me", session)
        session.user = data["user"]
        return data["user"]

    # Transactions
    def get_transactions(self, session: ClientSession, **params) -> Dict[str, Any]:
        params = {k: v for k, v in params.items() if v is not None}
        return self._request("GET", "/transactions", session, params=params)

    def create_transaction(self, session: ClientSession, transaction: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/transactions", session, json=transaction)["transaction"]

    def update_transaction(
        self, session: ClientSession, transaction_id: str, changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self._request("PUT", f"/transactions/{transaction_id}", session, json=changes)["transaction"]

    def delete_transaction(self, session: ClientSession, transaction_id: str) -> None:
        self._request("DELETE", f"/transactions/{transaction_id}", session)

    def get_monthly_summary(self, session: ClientSession, year: int, month: int) -> Dict[str, Any]:
        return self._request("GET", f"/transactions/summary/{year}/{month}", session)

    def export_transactions(self, session: ClientSession) -> Dict[str, Any]:
        return self._request("GET", "/transactions/export", session)

    def import_transactions(self, session: ClientSession, transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._request("POST", "/transactions/import", session, json={"transactions": transactions})

    # Users
    def get_user_stats(self, session: ClientSession) -> Dict[str, Any]:
        return self._request("GET", "/users/stats", session)

    def update_user_profile(self, session: ClientSession, changes: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("PUT", "/users/profile", session, json=changes)
        session.user = data["user"]
        return data["user"]

    def update_budget(self, session: ClientSession, budget: float) -> Dict[str, Any]:
        data = self._request("PUT", "/users/budget", session, json={"monthlyBudget": budget})
        session.user = data["user"]
        return data["user"]

    def export_all_data(self, session: ClientSession) -> Dict[str, Any]:
        return self._request("GET", "/users/export", session)
