"""
Application context.

The single owner of process-wide state: configuration, HTTP client, session gate,
dashboard service and push listener.

Lifecycle:
- init(): restore the persisted session; if authenticated, refresh and start listening
- login()/logout(): the push listener follows the session state
- close(): stop listening and release the HTTP client
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx

from domain.user import User
from repositories.client import ApiConfig, CrmApiClient
from repositories.session_store import SessionStore
from services.dashboard_service import DashboardService
from services.live_update_service import LiveUpdateListener
from services.session_service import SessionGate, SessionState

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(
        self,
        config: ApiConfig,
        client: CrmApiClient,
        session: SessionGate,
        dashboard: DashboardService,
        listener: LiveUpdateListener,
    ) -> None:
        self.config = config
        self.client = client
        self.session = session
        self.dashboard = dashboard
        self.listener = listener
        self._pending: Set[asyncio.Task[None]] = set()
        session.on_change(self._on_session_change)

    @classmethod
    def create(
        cls,
        config: ApiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        session_store: Optional[SessionStore] = None,
    ) -> "AppContext":
        session = SessionGate(session_store or SessionStore(config.session_file))
        client = CrmApiClient(config, token_provider=session.token, transport=transport)
        dashboard = DashboardService(client, session, scoped=config.scoped_dashboard)
        listener = LiveUpdateListener(
            config.push_url,
            on_lead=dashboard.apply_pushed_lead,
            reconnect_delay=config.reconnect_delay_seconds,
        )
        return cls(config, client, session, dashboard, listener)

    def _on_session_change(self, state: SessionState) -> None:
        # Forced expiry happens inside synchronous code paths; tear down asynchronously.
        if state is SessionState.UNAUTHENTICATED:
            self.dashboard.reset()
            if self.listener.running:
                logger.info("Session ended; closing push channel")
                task = asyncio.get_running_loop().create_task(self.listener.stop())
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def init(self) -> SessionState:
        state = self.session.restore()
        if state is SessionState.AUTHENTICATED:
            await self.dashboard.refresh()
            if self.session.is_authenticated:
                self.listener.start()
        return self.session.state

    async def login(self, username: str, password: str) -> User:
        user = await self.session.login(self.client, username, password)
        await self._drain_pending()
        await self.dashboard.refresh()
        if self.session.is_authenticated:
            self.listener.start()
        return user

    async def logout(self, confirmed: bool) -> None:
        self.session.logout(confirmed)
        await self.listener.stop()

    async def _drain_pending(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def close(self) -> None:
        await self.listener.stop()
        await self._drain_pending()
        await self.client.aclose()
