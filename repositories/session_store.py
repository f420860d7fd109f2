"""
Durable session storage.

Persists the {accessToken, user} pair as a small JSON file so an authenticated
session survives process restarts. A missing or unreadable file means "no session".
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from domain.normalizer import normalize_user
from domain.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoredSession:
    access_token: str
    user: User


def _user_to_row(user: User) -> dict[str, Any]:
    return {
        "_id": user.user_id,
        "username": user.username,
        "useremail": user.email,
        "role": user.role.value,
        "userNumber": user.phone,
    }


class SessionStore:
    """JSON file holding the persisted token/user pair."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[StoredSession]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return None

        if not isinstance(data, Mapping):
            return None
        token = data.get("accessToken")
        user = data.get("user")
        if not isinstance(token, str) or not token or not isinstance(user, Mapping):
            return None
        return StoredSession(access_token=token, user=normalize_user(user))

    def save(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"accessToken": session.access_token, "user": _user_to_row(session.user)}
        self.path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
