from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from ..common.errors import HeavisideError
from ..common.logger import get_logger
from ..core.registry import SubscriptionRegistry
from .models import DEFAULT_ROUTE_FIELD, WILDCARD_ORIGIN, Callback, Envelope
from .params import extract_params

if TYPE_CHECKING:
    from ..transport.receiver import CrossWindowReceiver
    from ..transport.window import MessageSource, MessageTarget

_UNSET: Any = object()


def is_window(obj: Any) -> bool:
    """Anything with a callable ``post_message`` is treated as a window handle."""
    return callable(getattr(obj, "post_message", None))


class Heaviside:
    """Pub/sub hub usable in-window and across windows.

    Each hub owns its registry; there is no module-level state, so several
    hubs can coexist (one per window, one per test).

    Warning: cross-window publishes default to the wildcard target origin
    ``"*"``, which lets any window receive the message. Pass an explicit
    origin (or configure ``default_target_origin``) when the payload matters.
    """

    def __init__(
        self,
        *,
        registry: Optional[SubscriptionRegistry] = None,
        route_field: str = DEFAULT_ROUTE_FIELD,
        default_target_origin: str = WILDCARD_ORIGIN,
        isolate_callback_errors: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.registry = registry or SubscriptionRegistry()
        self.route_field = route_field
        self.default_target_origin = default_target_origin
        self.isolate_callback_errors = isolate_callback_errors
        self.log = logger or get_logger("bus")
        self._receiver: Optional[CrossWindowReceiver] = None

    # -------------------------
    # Subscriptions
    # -------------------------

    def subscribe(self, channel: str, callback: Callback) -> Optional[int]:
        """Register ``callback`` on ``channel``; None when it is not callable."""
        return self.registry.add(channel, callback)

    def unsubscribe(self, sub_id: int) -> bool:
        return self.registry.remove(sub_id)

    # -------------------------
    # Dispatch
    # -------------------------

    def dispatch(self, channel: Any, payload: Any = None) -> int:
        """Call every subscriber of ``channel``, newest first.

        Iterates over a snapshot taken before the first callback runs:
        subscriptions added during the walk wait for the next publish, and
        ones removed during the walk still get this message.

        Returns the number of callbacks invoked.
        """
        if not channel or not isinstance(channel, str):
            return 0
        subs = self.registry.snapshot(channel)
        if not subs:
            return 0

        params = extract_params(payload, self.route_field)
        called = 0
        for sub in reversed(subs):
            called += 1
            if not self.isolate_callback_errors:
                sub.callback(*params)
                continue
            try:
                sub.callback(*params)
            except Exception:
                self.log.exception("subscriber %s on %r failed", sub.id, channel)
        return called

    # -------------------------
    # Publish
    # -------------------------

    def publish(
        self,
        target: Any,
        key: Any = None,
        data: Any = _UNSET,
        target_origin: Optional[str] = None,
    ) -> None:
        """Publish locally, or to another window when ``target`` is one.

        - ``publish("topic", payload)`` dispatches synchronously here.
        - ``publish(window, "topic", payload, origin)`` posts an envelope to
          ``window`` and dispatches nothing locally.
        """
        if is_window(target):
            self.publish_to_window(target, key, data, target_origin)
        else:
            self.publish_local(target, key)

    def publish_local(self, channel: str, payload: Any = None) -> int:
        return self.dispatch(channel, payload)

    def publish_to_window(
        self,
        target: MessageTarget,
        key: Any,
        data: Any = _UNSET,
        target_origin: Optional[str] = None,
    ) -> Envelope:
        if target_origin is None:
            target_origin = self.default_target_origin
        elif not target_origin:
            # an empty origin must not widen to the wildcard
            raise HeavisideError("target_origin must be '*' or an origin, not empty")

        envelope = self.build_envelope(key, data)
        target.post_message(envelope, target_origin)
        return envelope

    @staticmethod
    def build_envelope(key: Any, data: Any = _UNSET) -> Envelope:
        if isinstance(key, str):
            envelope = Envelope([key])
        elif isinstance(key, (list, tuple)):
            envelope = Envelope(key)
        else:
            raise HeavisideError(f"cannot build an envelope from key {key!r}")

        if data is not _UNSET and data is not None:
            envelope.append(data)
        return envelope

    # -------------------------
    # Receiver lifecycle
    # -------------------------

    def listen(self, source: MessageSource) -> CrossWindowReceiver:
        """Start dispatching sentinel-tagged messages that arrive on ``source``."""
        from ..transport.receiver import CrossWindowReceiver

        if self._receiver is None:
            self._receiver = CrossWindowReceiver(self)
        self._receiver.attach(source)
        return self._receiver

    def close(self) -> None:
        if self._receiver is not None:
            self._receiver.detach()
            self._receiver = None
