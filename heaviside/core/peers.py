from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..common.trace import utc_now_iso
from ..transport.window import MessageTarget


@dataclass
class PeerState:
    id: str
    origin: str
    window: MessageTarget
    connected_at_utc: str


class PeerRegistry:
    """Bridge peers currently connected to this hub."""

    def __init__(self) -> None:
        self._items: Dict[str, PeerState] = {}

    def add(
        self,
        *,
        peer_id: str,
        origin: str,
        window: MessageTarget,
        connected_at_utc: Optional[str] = None,
    ) -> PeerState:
        state = PeerState(
            id=peer_id,
            origin=origin,
            window=window,
            connected_at_utc=connected_at_utc or utc_now_iso(),
        )
        self._items[peer_id] = state
        return state

    def remove(self, peer_id: str) -> bool:
        return self._items.pop(peer_id, None) is not None

    def get(self, peer_id: str) -> Optional[PeerState]:
        return self._items.get(peer_id)

    def snapshot(self) -> list[PeerState]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)
