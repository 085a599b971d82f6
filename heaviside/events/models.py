from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

Callback = Callable[..., Any]

# Attribute carried by every envelope this package produces.
SENTINEL_ATTR = "_is_heaviside"

WILDCARD_ORIGIN = "*"

DEFAULT_ROUTE_FIELD = "messageKey"


@dataclass(frozen=True)
class Subscription:
    id: int
    channel: str
    callback: Callback


class Envelope(list):
    """Cross-window envelope: ``[channel_key, *payload_fragments]``.

    Note:
    - The sentinel is an attribute on the list, not an element, so the
      element layout stays ``[key, ...]`` for receivers.
    - ``copy.deepcopy`` keeps the attribute, which is what in-process
      windows rely on when they clone a posted message.
    """

    def __init__(self, items: Any = ()) -> None:
        super().__init__(items)
        setattr(self, SENTINEL_ATTR, True)


def is_envelope(data: Any) -> bool:
    """True when ``data`` carries a truthy sentinel marker."""
    return bool(getattr(data, SENTINEL_ATTR, False))
