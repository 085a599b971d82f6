from __future__ import annotations

from typing import Any

from ..events.models import Envelope, is_envelope
from ..models import WsEnvelopeFrame


def encode_frame(envelope: Any) -> dict[str, Any]:
    """JSON-ready frame for an envelope.

    JSON arrays cannot carry attributes, so the sentinel moves next to the
    data as ``_isHeaviside``.
    """
    frame = WsEnvelopeFrame(data=list(envelope), is_heaviside=is_envelope(envelope))
    return frame.model_dump(by_alias=True)


def decode_frame(frame: WsEnvelopeFrame) -> Any:
    """Envelope when the frame is flagged, otherwise the bare data list."""
    if frame.is_heaviside:
        return Envelope(frame.data)
    return list(frame.data)
