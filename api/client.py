"""
api/client.py
-------------
HTTP client for the Controle de Cartões backend.

Owns the authenticated session (bearer token + user) and a
``requests.Session`` configured with timeouts and retry with exponential
backoff. One instance is created by the application entry point and
handed to every repository; tests build their own.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import requests
from dateutil import parser as date_parser
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from api.errors import (
    ConflictError,
    NotFoundError,
    ServerRejectedError,
    UnauthenticatedError,
    UnreachableError,
)
from config import API_BACKOFF_FACTOR, API_RETRIES, API_TIMEOUT_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)

SESSION_EXPIRED_MESSAGE = "Sessão expirada. Faça login novamente."
NOT_AUTHENTICATED_MESSAGE = "Não autenticado. Faça login primeiro."
UNREACHABLE_MESSAGE = (
    "Não foi possível conectar ao servidor. Verifique sua conexão com a internet."
)

_RETRY_STATUSES = (502, 503, 504)


def build_http_session(retries: int = API_RETRIES,
                       backoff_factor: float = API_BACKOFF_FACTOR) -> requests.Session:
    """
    Create a ``requests.Session`` that retries transient failures.

    Only idempotent methods are retried (urllib3's default set), so a POST
    that reached the server is never sent twice by the transport.
    """
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=_RETRY_STATUSES,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class ApiClient:
    """
    Authenticated JSON client.

    Usage:
        client = ApiClient("https://example.com/api")
        client.login("ana@example.com", "secret")
        data = client.get("/data/pessoas")

    Raises (from every request method):
        UnauthenticatedError: No session, or the backend answered 401.
            The local session is cleared in the latter case.
        UnreachableError: Network-level failure after retries.
        ServerRejectedError: Any other non-2xx answer (NotFoundError for
            404, ConflictError for 409).
    """

    def __init__(self, base_url: str, timeout: float = API_TIMEOUT_SECONDS,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or build_http_session()
        self.token: Optional[str] = None
        self.user: Optional[dict] = None
        self.session_info: Optional[dict] = None

    # ── SESSION ───────────────────────────────────────────

    def login(self, email: str, password: str) -> dict:
        """
        Log in and keep the returned token for subsequent requests.

        Returns:
            The user dict sent by the backend (id, email, name).
        """
        data = self._send("POST", "/auth/login", {"email": email, "password": password},
                          authenticated=False)
        self._start_session(data)
        logger.info(f"Logged in as {email}")
        return self.user

    def register(self, email: str, password: str, name: str) -> dict:
        """Create an account and start a session for it."""
        data = self._send("POST", "/auth/register",
                          {"email": email, "password": password, "name": name},
                          authenticated=False)
        self._start_session(data)
        logger.info(f"Registered new account {email}")
        return self.user

    def validate_session(self) -> bool:
        """
        Ask the backend whether the current token is still valid.

        Network failures propagate as UnreachableError and leave the session
        untouched; any rejection clears it.
        """
        if not self.token:
            self._clear_session()
            return False
        try:
            data = self._send("GET", "/auth/validate")
        except UnauthenticatedError:
            return False
        except ServerRejectedError as e:
            logger.warning(f"Session validation rejected: {e}")
            self._clear_session()
            return False
        self.user = data.get("user", self.user)
        self.session_info = data.get("session")
        return True

    def logout(self) -> None:
        """Invalidate the server session (best effort) and forget the token."""
        if self.token:
            try:
                self._send("POST", "/auth/logout")
            except (ServerRejectedError, UnreachableError) as e:
                logger.warning(f"Logout request failed, clearing local session anyway: {e}")
        self._clear_session()
        logger.info("Session closed.")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and self.user is not None and not self.is_session_expired()

    def is_session_expired(self) -> bool:
        """True when the backend told us an expiry date that has passed."""
        if not self.session_info or not self.session_info.get("expiresAt"):
            return False
        try:
            expires_at = date_parser.isoparse(self.session_info["expiresAt"])
        except (TypeError, ValueError):
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) >= expires_at

    def close(self) -> None:
        self.http.close()

    # ── REQUESTS ──────────────────────────────────────────

    def request(self, method: str, endpoint: str, payload: Optional[dict] = None,
                params: Optional[dict] = None,
                idempotency_key: Optional[str] = None) -> dict:
        """
        Send an authenticated request and return the decoded JSON body.

        Raises:
            UnauthenticatedError: Before any I/O if there is no session.
        """
        if not self.is_authenticated:
            raise UnauthenticatedError(NOT_AUTHENTICATED_MESSAGE)
        return self._send(method, endpoint, payload, params=params,
                          idempotency_key=idempotency_key)

    def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, payload: Optional[dict] = None,
             idempotency_key: Optional[str] = None) -> dict:
        return self.request("POST", endpoint, payload, idempotency_key=idempotency_key)

    def put(self, endpoint: str, payload: dict) -> dict:
        return self.request("PUT", endpoint, payload)

    def delete(self, endpoint: str) -> dict:
        return self.request("DELETE", endpoint)

    # ── HELPERS ───────────────────────────────────────────

    def _send(self, method: str, endpoint: str, payload: Optional[dict] = None,
              params: Optional[dict] = None, idempotency_key: Optional[str] = None,
              authenticated: bool = True) -> dict:
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            response = self.http.request(
                method, url, json=payload, params=params,
                headers=headers, timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"{method} {endpoint} unreachable: {e}")
            raise UnreachableError(UNREACHABLE_MESSAGE) from e

        if response.status_code == 401:
            message = _error_message(response)
            if authenticated:
                logger.warning(f"{method} {endpoint} returned 401, clearing session")
                self._clear_session()
                raise UnauthenticatedError(SESSION_EXPIRED_MESSAGE)
            raise UnauthenticatedError(message)

        if not response.ok:
            message = _error_message(response)
            logger.warning(f"{method} {endpoint} rejected ({response.status_code}): {message}")
            if response.status_code == 404:
                raise NotFoundError(404, message)
            if response.status_code == 409:
                raise ConflictError(409, message)
            raise ServerRejectedError(response.status_code, message)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ServerRejectedError(response.status_code, "Resposta inválida do servidor") from e

    def _start_session(self, data: dict) -> None:
        token = data.get("token")
        if not token:
            raise ServerRejectedError(200, "Resposta de login sem token")
        self.token = token
        self.user = data.get("user") or {}
        self.session_info = None
        self.validate_session()

    def _clear_session(self) -> None:
        self.token = None
        self.user = None
        self.session_info = None


def _error_message(response: requests.Response) -> str:
    """Pull the ``error`` field out of an error body, falling back to the status."""
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
