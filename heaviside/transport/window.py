from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..common.errors import HeavisideError
from ..events.models import WILDCARD_ORIGIN

# Origin reported for messages whose sender is unknown.
OPAQUE_ORIGIN = "null"


@dataclass(frozen=True)
class MessageEvent:
    data: Any
    origin: str = OPAQUE_ORIGIN
    source: Optional[Any] = None
    type: str = "message"


Listener = Callable[[MessageEvent], None]


class MessageTarget(Protocol):
    """A window handle: something messages can be posted to."""

    def post_message(self, message: Any, target_origin: str = WILDCARD_ORIGIN) -> None:
        ...


class MessageSource(Protocol):
    """Where inbound ``message`` events come from."""

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        ...

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        ...


def origin_matches(target_origin: str, origin: str) -> bool:
    return target_origin == WILDCARD_ORIGIN or target_origin == origin


class EventTarget:
    """Listener bookkeeping shared by the window implementations."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        bucket = self._listeners.setdefault(event_type, [])
        if listener not in bucket:
            bucket.append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        bucket = self._listeners.get(event_type)
        if bucket and listener in bucket:
            bucket.remove(listener)

    def listener_count(self, event_type: str = "message") -> int:
        return len(self._listeners.get(event_type, ()))

    def dispatch_event(self, event: MessageEvent) -> None:
        """Deliver ``event`` to the current listeners, synchronously."""
        for listener in list(self._listeners.get(event.type, ())):
            listener(event)


class LocalWindow(EventTarget):
    """In-process stand-in for a browser window / iframe.

    ``post_message`` behaves like the browser primitive:
    - the target origin must be ``"*"`` or equal this window's origin,
      otherwise the message is dropped without error;
    - the message is cloned, so sender and receiver never share objects;
    - delivery happens on a later turn of the event loop.
    """

    def __init__(
        self,
        origin: str,
        *,
        name: str = "",
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__()
        self.origin = origin
        self.name = name or origin
        self._loop = loop

    def __repr__(self) -> str:
        return f"LocalWindow({self.name!r}, origin={self.origin!r})"

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise HeavisideError("post_message needs a running event loop") from e

    def post_message(
        self,
        message: Any,
        target_origin: str = WILDCARD_ORIGIN,
        *,
        source: Optional["LocalWindow"] = None,
    ) -> None:
        loop = self._get_loop()
        if not origin_matches(target_origin, self.origin):
            return

        event = MessageEvent(
            data=copy.deepcopy(message),
            origin=source.origin if source is not None else OPAQUE_ORIGIN,
            source=source,
        )
        loop.call_soon(self.dispatch_event, event)

    def proxy_for(self, source: "LocalWindow") -> "WindowProxy":
        """Handle to this window as seen from ``source`` (events carry its origin)."""
        return WindowProxy(self, source)


class WindowProxy:
    """A ``MessageTarget`` bound to the window that holds it."""

    def __init__(self, target: LocalWindow, source: LocalWindow) -> None:
        self.target = target
        self.source = source

    def post_message(self, message: Any, target_origin: str = WILDCARD_ORIGIN) -> None:
        self.target.post_message(message, target_origin, source=self.source)
