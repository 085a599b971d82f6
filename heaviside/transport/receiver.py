from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from ..common.errors import HeavisideError
from ..common.logger import get_logger
from ..events.models import is_envelope
from .window import MessageEvent, MessageSource

if TYPE_CHECKING:
    from ..events.bus import Heaviside

log = get_logger("receiver")


def split_envelope(data: Any) -> Optional[tuple[Any, Any]]:
    """Return ``(channel, payload)`` for a sentinel-tagged sequence, else None.

    The payload is rebuilt from what follows the channel key:
    nothing -> None, one fragment -> that fragment, more -> the fragment list.
    """
    if not is_envelope(data):
        return None
    try:
        items = list(data)
    except TypeError:
        return None
    if not items:
        return None

    channel, rest = items[0], items[1:]
    if not rest:
        return channel, None
    if len(rest) == 1:
        return channel, rest[0]
    return channel, rest


class CrossWindowReceiver:
    """Feeds inbound cross-window messages into a hub's local dispatch.

    Only the sentinel marker is checked; the sender's origin is not.
    """

    def __init__(self, hub: Heaviside) -> None:
        self.hub = hub
        self._source: Optional[MessageSource] = None

    @property
    def attached(self) -> bool:
        return self._source is not None

    def attach(self, source: MessageSource) -> None:
        if self._source is source:
            return
        if self._source is not None:
            raise HeavisideError("receiver is already attached to another source")
        source.add_event_listener("message", self.handle_event)
        self._source = source

    def detach(self) -> None:
        if self._source is None:
            return
        self._source.remove_event_listener("message", self.handle_event)
        self._source = None

    def handle_event(self, event: MessageEvent) -> None:
        parsed = split_envelope(event.data)
        if parsed is None:
            log.debug("ignoring non-heaviside message from %s", event.origin)
            return
        channel, payload = parsed
        self.hub.dispatch(channel, payload)
