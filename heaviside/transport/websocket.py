from __future__ import annotations

import asyncio
from typing import Any, Optional, Set

from fastapi import WebSocket

from ..common.logger import get_logger
from ..events.models import WILDCARD_ORIGIN
from .codec import encode_frame
from .window import OPAQUE_ORIGIN, origin_matches

log = get_logger("bridge")


class WebSocketWindow:
    """A connected bridge peer, usable as a publish target.

    `post_message` is fire-and-forget: the frame is sent by a task on the
    running loop and the caller gets no completion signal.
    """

    def __init__(self, websocket: WebSocket, *, peer_id: str, origin: Optional[str] = None) -> None:
        self.websocket = websocket
        self.peer_id = peer_id
        self.origin = origin or OPAQUE_ORIGIN
        self._pending: Set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"WebSocketWindow({self.peer_id!r}, origin={self.origin!r})"

    def post_message(self, message: Any, target_origin: str = WILDCARD_ORIGIN) -> None:
        if not origin_matches(target_origin, self.origin):
            return
        frame = encode_frame(message)
        task = asyncio.get_running_loop().create_task(self._send(frame))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, frame: dict) -> None:
        try:
            await self.websocket.send_json(frame)
        except Exception:  # noqa: BLE001
            # peer went away between publish and send; nothing to deliver to
            log.debug("dropping frame for disconnected peer %s", self.peer_id)

    async def drain(self) -> None:
        """Wait for frames already handed to the loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
