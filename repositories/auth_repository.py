"""
Authentication repository.

Remote credential check against the CRM service:
POST /login {username, password} -> {success, user?, accessToken?, message?}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from domain.normalizer import normalize_user
from domain.user import User
from repositories.client import ApiError, CrmApiClient

DEFAULT_LOGIN_FAILURE = "Invalid username or password"


class InvalidCredentials(Exception):
    """Raised when the service rejects the credentials (success = false)."""


@dataclass(frozen=True, slots=True)
class LoginResult:
    user: User
    access_token: str


async def login(client: CrmApiClient, username: str, password: str) -> LoginResult:
    """
    Check credentials with the service.

    Raises:
        InvalidCredentials: If the service reports success = false, or a 401
        ApiError: On transport failures or a malformed success response
    """

    try:
        payload = await client.request(
            "POST",
            "/login",
            json={"username": username, "password": password},
            failure_message="Login failed",
        )
    except ApiError as exc:
        if exc.status_code == 401:
            raise InvalidCredentials(str(exc) or DEFAULT_LOGIN_FAILURE) from exc
        raise

    if not isinstance(payload, Mapping) or not payload.get("success"):
        message = payload.get("message") if isinstance(payload, Mapping) else None
        raise InvalidCredentials(str(message or DEFAULT_LOGIN_FAILURE))

    user = payload.get("user")
    token = payload.get("accessToken")
    if not isinstance(user, Mapping) or not isinstance(token, str) or not token:
        raise ApiError("Login failed: response is missing the user or access token")

    return LoginResult(user=normalize_user(user), access_token=token)
