from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Set

import httpx

from ..common.logger import get_logger
from ..events.models import WILDCARD_ORIGIN
from ..transport.codec import encode_frame
from ..transport.window import origin_matches

log = get_logger("remote")


@dataclass(frozen=True)
class RemoteHubConfig:
    base_url: str
    origin: str
    sender_origin: Optional[str] = None
    messages_path: str = "/v1/messages"
    timeout_s: float = 10.0


class RemoteHubWindow:
    """Another hub reached over HTTP, usable as a publish target.

    Contract:
    - post_message(envelope, target_origin) returns at once; the POST to the
      remote `/v1/messages` runs as a task on the current loop.
    - the remote hub's receiver decides what to do with the frame.
    - transport errors are logged, never raised to the publisher.
    """

    def __init__(self, cfg: RemoteHubConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg
        self.origin = cfg.origin
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"RemoteHubWindow({self.cfg.base_url!r}, origin={self.origin!r})"

    def post_message(self, message: Any, target_origin: str = WILDCARD_ORIGIN) -> None:
        if not origin_matches(target_origin, self.origin):
            return
        frame = encode_frame(message)
        task = asyncio.get_running_loop().create_task(self.asend(frame))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def asend(self, frame: dict) -> bool:
        url = self.cfg.base_url.rstrip("/") + self.cfg.messages_path
        headers = {"Content-Type": "application/json"}
        if self.cfg.sender_origin:
            headers["Origin"] = self.cfg.sender_origin

        timeout = httpx.Timeout(self.cfg.timeout_s)
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                resp = await client.post(url, headers=headers, json=frame)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("posting to %s failed: %s", url, e)
            return False
        return True

    async def drain(self) -> None:
        """Wait for posts already handed to the loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
