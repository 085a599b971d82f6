from __future__ import annotations

import itertools
from typing import Dict, Iterator, List, Optional

from ..events.models import Callback, Subscription


class SubscriptionRegistry:
    """Channel key -> subscriptions, in subscribe order.

    Ids come from a counter owned by the registry: they start at 1, only
    grow, and are never handed out twice (not even after unsubscribe), so
    ``unsubscribe`` can find a subscription without knowing its channel.
    """

    def __init__(self) -> None:
        self._items: Dict[str, List[Subscription]] = {}
        self._ids: Iterator[int] = itertools.count(1)

    def add(self, channel: str, callback: Callback) -> Optional[int]:
        # soft failure: callers subscribe opportunistically
        if not callable(callback):
            return None
        if not isinstance(channel, str) or not channel:
            return None

        sub = Subscription(id=next(self._ids), channel=channel, callback=callback)
        self._items.setdefault(channel, []).append(sub)
        return sub.id

    def remove(self, sub_id: int) -> bool:
        for channel, subs in self._items.items():
            for idx in range(len(subs) - 1, -1, -1):
                if subs[idx].id == sub_id:
                    del subs[idx]
                    if not subs:
                        del self._items[channel]
                    return True
        return False

    def snapshot(self, channel: str) -> tuple[Subscription, ...]:
        """Subscriptions for ``channel`` as they are right now, subscribe order."""
        return tuple(self._items.get(channel, ()))

    def channels(self) -> dict[str, int]:
        return {channel: len(subs) for channel, subs in self._items.items()}

    def __len__(self) -> int:
        return sum(len(subs) for subs in self._items.values())
