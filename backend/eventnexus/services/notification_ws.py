from __future__ import annotations
from typing import Dict, Set
from fastapi import WebSocket
import asyncio
import json
import logging

logger = logging.getLogger(__name__)

class NotificationConnectionManager:
    """Manager of WebSocket connections per user id.
    We keep a set of active WebSockets for each user.
    """
    def __init__(self) -> None:
        self._user_sockets: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Remember the server loop so threadpool handlers can hand pushes over to it."""
        self._loop = loop

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._user_sockets.setdefault(user_id, set()).add(websocket)

    async def disconnect(self, user_id: str, websocket: WebSocket):
        async with self._lock:
            conns = self._user_sockets.get(user_id)
            if conns and websocket in conns:
                conns.remove(websocket)
                if not conns:
                    self._user_sockets.pop(user_id, None)

    async def send_to_user(self, user_id: str, payload: dict):
        # Send to every open tab/session of the user
        message = json.dumps(payload, ensure_ascii=False, default=str)
        async with self._lock:
            conns = list(self._user_sockets.get(user_id, []))
        for ws in conns:
            try:
                await ws.send_text(message)
            except Exception:
                logger.debug("dropping dead websocket for user %s", user_id)
                await self.disconnect(user_id, ws)

    def push_threadsafe(self, user_id: str, payload: dict) -> bool:
        """Schedule send_to_user from a worker thread. False when no loop is bound."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return False
        asyncio.run_coroutine_threadsafe(self.send_to_user(user_id, payload), loop)
        return True

manager = NotificationConnectionManager()
