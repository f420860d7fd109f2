"""
Remote CRM API client.

This module contains *only* the connection setup for the remote CRM service:
configuration loading, the HTTP client wrapper and the transport error types.
Repository modules take a `CrmApiClient` explicitly; nothing here is a module-level
singleton.

Environment variables (read by `ApiConfig.from_env`):
- EDULEAD_API_URL: Base URL of the CRM service (default http://localhost:3001)
- EDULEAD_WS_URL: Push channel URL (default: API URL with http -> ws)
- EDULEAD_TIMEOUT_SECONDS: Request timeout (default 10)
- EDULEAD_SESSION_FILE: Where the session token is persisted (default ~/.edulead/session.json)
- EDULEAD_RECONNECT_DELAY_SECONDS: Push channel reconnect delay (default 3)
- EDULEAD_SCOPED_DASHBOARD: Refresh through POST /dashboard (default true) or GET /users
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import httpx
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_RECONNECT_DELAY_SECONDS = 3.0
DEFAULT_SESSION_FILE = Path.home() / ".edulead" / "session.json"

TokenProvider = Callable[[], Optional[str]]


class ApiError(RuntimeError):
    """Transport failure or non-2xx response from the CRM service."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(ApiError):
    """The CRM service rejected the session (401/403)."""


def _ws_url_for(base_url: str) -> str:
    if base_url.startswith("https://"):
        return "wss://" + base_url[len("https://"):]
    if base_url.startswith("http://"):
        return "ws://" + base_url[len("http://"):]
    return base_url


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid environment variable: {name} must be a number, got {raw!r}")
    if value <= 0:
        raise RuntimeError(f"Invalid environment variable: {name} must be > 0, got {raw!r}")
    return value


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Explicit configuration handed to the network layer at construction."""

    base_url: str = DEFAULT_API_URL
    ws_url: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    session_file: Path = DEFAULT_SESSION_FILE
    reconnect_delay_seconds: float = DEFAULT_RECONNECT_DELAY_SECONDS
    scoped_dashboard: bool = True

    @property
    def push_url(self) -> str:
        return self.ws_url or _ws_url_for(self.base_url)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "ApiConfig":
        """
        Build a config from the environment.

        Loads a .env file first (project root by default) without overriding
        variables that are already set.
        """

        env_path = env_file or Path(__file__).parent.parent / ".env"
        load_dotenv(dotenv_path=env_path)

        base_url = (os.getenv("EDULEAD_API_URL") or DEFAULT_API_URL).strip().rstrip("/")
        ws_url = (os.getenv("EDULEAD_WS_URL") or "").strip() or None
        session_file = os.getenv("EDULEAD_SESSION_FILE")

        return cls(
            base_url=base_url,
            ws_url=ws_url,
            timeout_seconds=_float_env("EDULEAD_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
            session_file=Path(session_file).expanduser() if session_file else DEFAULT_SESSION_FILE,
            reconnect_delay_seconds=_float_env(
                "EDULEAD_RECONNECT_DELAY_SECONDS", DEFAULT_RECONNECT_DELAY_SECONDS
            ),
            scoped_dashboard=_bool_env("EDULEAD_SCOPED_DASHBOARD", True),
        )


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, Mapping):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


class CrmApiClient:
    """
    Thin async wrapper over httpx for the CRM service.

    - Attaches a bearer token when the token provider yields one.
    - Maps 401/403 to AuthorizationError and every other failure to ApiError.
    - Returns decoded JSON bodies.
    """

    def __init__(
        self,
        config: ApiConfig,
        token_provider: Optional[TokenProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._token_provider = token_provider
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        failure_message: str = "Request failed",
    ) -> Any:
        """
        Send one request and decode the JSON response.

        Raises:
            AuthorizationError: On 401/403
            ApiError: On transport errors, other non-2xx statuses or an undecodable body
        """

        try:
            response = await self._http.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(f"{failure_message}: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthorizationError(
                _error_message(response, "Session expired, please log in again"),
                status_code=response.status_code,
            )
        if response.is_error:
            raise ApiError(_error_message(response, failure_message), status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{failure_message}: invalid JSON response") from exc

    async def aclose(self) -> None:
        await self._http.aclose()


__all__ = [
    "ApiConfig",
    "ApiError",
    "AuthorizationError",
    "CrmApiClient",
    "TokenProvider",
]
