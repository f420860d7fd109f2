"""
Live update listener.

Keeps a push connection to the CRM service while a session is authenticated and
hands every newly created lead to a callback.

Message contract:
- {"type": "new_user", "user": <raw lead>} -> normalized Lead passed to on_lead
- any other type is ignored

Connection loss or any other failure triggers a reconnect after a fixed delay until
stop() is called. A message whose handling fails is logged and skipped.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping, Optional, Union

import websockets

from domain.lead import Lead
from domain.normalizer import normalize_lead

logger = logging.getLogger(__name__)

NEW_LEAD_MESSAGE = "new_user"

LeadCallback = Callable[[Lead], Any]
Message = Union[str, bytes, Mapping[str, Any]]


class LiveUpdateListener:
    def __init__(self, url: str, on_lead: LeadCallback, reconnect_delay: float = 3.0) -> None:
        self.url = url
        self.reconnect_delay = reconnect_delay
        self._on_lead = on_lead
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def handle_message(self, message: Message) -> Optional[Lead]:
        """
        Dispatch one push message.

        Returns:
            The normalized Lead when the message announced a new lead, else None
        """

        if isinstance(message, (str, bytes)):
            try:
                payload = json.loads(message)
            except ValueError:
                logger.warning("Ignoring malformed push message")
                return None
        else:
            payload = message

        if not isinstance(payload, Mapping) or payload.get("type") != NEW_LEAD_MESSAGE:
            return None

        lead = normalize_lead(payload.get("user"))
        self._on_lead(lead)
        return lead

    async def run(self) -> None:
        """Connect, dispatch messages, reconnect on loss; returns once stopped."""

        while not self._stopping:
            try:
                async with websockets.connect(self.url) as connection:
                    logger.info("Push channel connected: %s", self.url)
                    async for message in connection:
                        try:
                            self.handle_message(message)
                        except Exception:
                            logger.exception("Failed to apply push message")
            except (OSError, websockets.WebSocketException) as exc:
                logger.warning("Push channel lost (%s); reconnecting in %.1fs", exc, self.reconnect_delay)
            except Exception:
                logger.exception("Push channel failed; reconnecting in %.1fs", self.reconnect_delay)
            else:
                logger.warning("Push channel closed; reconnecting in %.1fs", self.reconnect_delay)

            if self._stopping:
                break
            await asyncio.sleep(self.reconnect_delay)

    def start(self) -> None:
        """Start the listener task on the running loop (no-op if already running)."""

        if self.running:
            return
        self._stopping = False
        self._task = asyncio.get_running_loop().create_task(self.run())

    async def stop(self) -> None:
        """Close the connection and cancel any pending reconnect."""

        self._stopping = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
