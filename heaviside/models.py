from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# -------------------------
# HTTP envelopes & errors
# -------------------------

class OkEnvelope(BaseModel):
    status: Literal["ok"] = "ok"
    trace_id: str
    data: Any


class ErrorEnvelope(BaseModel):
    status: Literal["error"] = "error"
    code: str
    message: str
    trace_id: str
    data: Any = Field(default_factory=dict)


# -------------------------
# Channels & peers
# -------------------------

class ChannelItem(BaseModel):
    channel: str
    subscribers: int


class ChannelsResponse(BaseModel):
    items: List[ChannelItem]


class PeerItem(BaseModel):
    id: str
    origin: str
    connected_at_utc: str


class PeersResponse(BaseModel):
    items: List[PeerItem]


# -------------------------
# Publishing
# -------------------------

PublishTarget = Literal["local", "peer", "broadcast"]


class PublishRequest(BaseModel):
    channel: str = Field(min_length=1)
    payload: Any = None
    target: PublishTarget = "local"
    peer_id: Optional[str] = None
    target_origin: Optional[str] = Field(default=None, min_length=1)


class PublishResult(BaseModel):
    target: PublishTarget
    posted_to: List[str] = Field(default_factory=list)
    invoked: int = 0


# -------------------------
# Wire frames
# -------------------------

class WsEnvelopeFrame(BaseModel):
    """JSON form of an envelope: ``{"type", "_isHeaviside", "data"}``."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["heaviside.envelope"] = "heaviside.envelope"
    is_heaviside: bool = Field(default=False, alias="_isHeaviside")
    data: List[Any] = Field(default_factory=list)


class WsErrorFrame(BaseModel):
    type: Literal["heaviside.error"] = "heaviside.error"
    code: str
    message: str


class WsWelcomeFrame(BaseModel):
    type: Literal["heaviside.welcome"] = "heaviside.welcome"
    peer_id: str
    origin: str
    hub_origin: str
