"""
Pytest configuration for the dashboard tests.

Adds the project root to the Python path so tests can import domain, repositories,
services and api, and provides shared builders plus an in-memory stand-in for the
remote CRM service (served through httpx.MockTransport).
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote
from uuid import uuid4

import httpx
import pytest

# Add the project directory to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.lead import Lead  # noqa: E402
from domain.user import User, UserRole  # noqa: E402
from repositories.client import ApiConfig  # noqa: E402
from repositories.session_store import SessionStore  # noqa: E402
from services.app_context import AppContext  # noqa: E402

BASE_TIME = datetime(2025, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_lead():
    """Factory for canonical leads with sensible defaults."""

    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> Lead:
        n = next(counter)
        fields: Dict[str, Any] = {
            "lead_id": f"lead-{n}",
            "name": f"Student {n}",
            "phone": f"98765{n:05d}",
            "created_at": BASE_TIME,
            "last_interacted_at": BASE_TIME,
        }
        fields.update(overrides)
        return Lead(**fields)

    return _make


@pytest.fixture
def admin() -> User:
    return User(user_id="u-1", username="sharan", email="sharan@demo.com", role=UserRole.ADMIN)


@pytest.fixture
def staff() -> User:
    return User(user_id="u-2", username="priya", email="priya@demo.com", role=UserRole.USER)


def raw_lead(lead_id: str, **fields: Any) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "_id": lead_id,
        "userName": f"Student {lead_id}",
        "userNumber": "9876500000",
        "leadfrom": "Website",
        "status": "Cold",
        "pipeline": "New",
        "datecreated": {"$date": "2025-01-01T09:00:00.000Z"},
        "lastInteracted": "2025-01-01T09:00:00.000Z",
        "conversations": [],
        "remarks": [],
    }
    record.update(fields)
    return record


class FakeCrm:
    """
    In-memory CRM service speaking the wire contract.

    - Accounts: sharan/admin-pass (admin), priya/user-pass (user)
    - Requests are recorded as (method, path, json body, authorization header)
    - fail_next(status, message) makes the next request fail
    """

    def __init__(self) -> None:
        self.users: List[Dict[str, Any]] = [
            {"_id": "u-1", "username": "sharan", "useremail": "sharan@demo.com", "role": "admin"},
            {"_id": "u-2", "username": "priya", "useremail": "priya@demo.com", "role": "user"},
        ]
        self.passwords = {"sharan": "admin-pass", "priya": "user-pass"}
        self.tokens: Dict[str, str] = {}
        self.leads: List[Dict[str, Any]] = []
        self.requests: List[tuple] = []
        self._failure: Optional[tuple] = None

    def fail_next(self, status: int, message: Optional[str] = None) -> None:
        self._failure = (status, message)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self) -> List[str]:
        return [f"{method} {path}" for method, path, _, _ in self.requests]

    def _find(self, lead_id: str) -> Optional[Dict[str, Any]]:
        return next((lead for lead in self.leads if lead["_id"] == lead_id), None)

    def _session_user(self, request: httpx.Request) -> Optional[Dict[str, Any]]:
        header = request.headers.get("Authorization", "")
        username = self.tokens.get(header.removeprefix("Bearer "))
        return next((u for u in self.users if u["username"] == username), None)

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        path = request.url.path
        self.requests.append((request.method, path, body, request.headers.get("Authorization")))

        if self._failure is not None:
            status, message = self._failure
            self._failure = None
            return httpx.Response(status, json={"message": message} if message else {})

        route = (request.method, path)
        if route == ("POST", "/login"):
            if self.passwords.get(body["username"]) != body["password"]:
                return httpx.Response(200, json={"success": False, "message": "Wrong password"})
            token = uuid4().hex
            self.tokens[token] = body["username"]
            user = next(u for u in self.users if u["username"] == body["username"])
            return httpx.Response(200, json={"success": True, "user": user, "accessToken": token})

        if route == ("GET", "/users"):
            return httpx.Response(200, json={"users": self.users, "leads": self.leads})

        if route == ("POST", "/dashboard"):
            user = self._session_user(request)
            if user is None:
                return httpx.Response(401, json={"message": "Token expired"})
            if user["role"] == "admin":
                return httpx.Response(200, json={"success": True, "leads": self.leads, "staffs": self.users})
            mine = [lead for lead in self.leads if lead.get("assignedto") == user["username"]]
            return httpx.Response(200, json={"success": True, "leads": mine})

        if route == ("POST", "/add"):
            created = raw_lead(f"srv-{len(self.leads) + 1}", **body)
            self.leads.insert(0, created)
            return httpx.Response(200, json={"success": True, "user": created})

        if route in (("PUT", "/Users"), ("PUT", "/Users/edit")):
            lead = self._find(body["_id"])
            if lead is None:
                return httpx.Response(404, json={"message": "Lead not found"})
            lead.update({k: v for k, v in body.items() if k != "_id"})
            return httpx.Response(200, json=lead)

        if request.method == "DELETE" and path.startswith("/leads/"):
            lead = self._find(unquote(request.url.raw_path.decode().rsplit("/", 1)[1]))
            if lead is None:
                return httpx.Response(404, json={"message": "Lead not found"})
            self.leads.remove(lead)
            return httpx.Response(200, json={"success": True})

        if route == ("POST", "/Users/remarks"):
            lead = self._find(body["_id"])
            remark = {
                "_id": f"r-{len(lead['remarks']) + 1}",
                "remark": body["remark"],
                "timestamp": {"$date": "2025-01-02T10:00:00.000Z"},
            }
            lead["remarks"].append(remark)
            return httpx.Response(200, json=lead)

        if route == ("DELETE", "/Users/remarks"):
            lead = self._find(body["_id"])
            lead["remarks"] = [r for r in lead["remarks"] if r["_id"] != body["remarkId"]]
            return httpx.Response(200, json=lead)

        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})


@pytest.fixture
def fake_crm() -> FakeCrm:
    return FakeCrm()


@pytest.fixture
def config(tmp_path: Path) -> ApiConfig:
    return ApiConfig(
        base_url="http://crm.test",
        ws_url="ws://crm.test/live",
        session_file=tmp_path / "session.json",
        reconnect_delay_seconds=0.01,
    )


@pytest.fixture
def context(config: ApiConfig, fake_crm: FakeCrm) -> AppContext:
    return AppContext.create(config, transport=fake_crm.transport(), session_store=SessionStore(config.session_file))


class FakePushChannel:
    """
    Replacement for websockets.connect.

    Each connection yields queued messages and then waits until closed.
    refuse_next(n) makes the next n connection attempts fail, with OSError by default.
    """

    def __init__(self) -> None:
        self.connects = 0
        self.pending: List[Any] = []
        self._refusals = 0
        self._refusal_error: Optional[BaseException] = None

    def refuse_next(self, count: int, error: Optional[BaseException] = None) -> None:
        self._refusals = count
        self._refusal_error = error

    def send(self, message: Any) -> None:
        self.pending.append(message if isinstance(message, (str, bytes)) else json.dumps(message))

    def connect(self, url: str) -> "_FakeConnection":
        self.connects += 1
        return _FakeConnection(self)


class _FakeConnection:
    def __init__(self, channel: FakePushChannel) -> None:
        self._channel = channel

    async def __aenter__(self) -> "_FakeConnection":
        if self._channel._refusals:
            self._channel._refusals -= 1
            raise self._channel._refusal_error or OSError("connection refused")
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    def __aiter__(self) -> "_FakeConnection":
        return self

    async def __anext__(self) -> Any:
        while not self._channel.pending:
            await asyncio.sleep(0.001)
        return self._channel.pending.pop(0)


@pytest.fixture
def push_channel(monkeypatch: pytest.MonkeyPatch) -> FakePushChannel:
    from services import live_update_service

    channel = FakePushChannel()
    monkeypatch.setattr(live_update_service.websockets, "connect", channel.connect)
    return channel


@pytest.fixture
def wire_lead():
    """Builder for raw wire-format lead records."""
    return raw_lead
