from __future__ import annotations

from fastapi import APIRouter, Request

from ..common.errors import ApiError
from ..common.logger import get_logger
from ..common.trace import new_trace_id, utc_now_iso
from ..core.peers import PeerRegistry
from ..events.bus import Heaviside
from ..models import (
    ChannelItem,
    ChannelsResponse,
    OkEnvelope,
    PeerItem,
    PeersResponse,
    PublishRequest,
    PublishResult,
    WsEnvelopeFrame,
)
from ..transport.codec import decode_frame
from ..transport.window import OPAQUE_ORIGIN, MessageEvent

router = APIRouter()

log = get_logger("http")


def ok(trace_id: str, data: dict):
    return OkEnvelope(trace_id=trace_id, data=data)


@router.get("/health")
def health_check(request: Request):
    trace_id = new_trace_id()
    data = {
        "service": "heaviside",
        "origin": request.app.state.config.origin,
        "time_utc": utc_now_iso(),
    }
    return ok(trace_id, data).model_dump()


@router.get("/channels")
def list_channels(request: Request):
    trace_id = new_trace_id()
    hub: Heaviside = request.app.state.hub
    items = [ChannelItem(channel=c, subscribers=n) for c, n in sorted(hub.registry.channels().items())]
    return ok(trace_id, ChannelsResponse(items=items).model_dump()).model_dump()


@router.get("/peers")
def list_peers(request: Request):
    trace_id = new_trace_id()
    peers: PeerRegistry = request.app.state.peers
    items = [PeerItem(id=p.id, origin=p.origin, connected_at_utc=p.connected_at_utc) for p in peers.snapshot()]
    return ok(trace_id, PeersResponse(items=items).model_dump()).model_dump()


@router.post("/publish")
async def publish(request: Request, body: PublishRequest):
    # cross-window sends need the running loop
    trace_id = new_trace_id()
    hub: Heaviside = request.app.state.hub
    peers: PeerRegistry = request.app.state.peers

    result = PublishResult(target=body.target)

    if body.target == "local":
        try:
            result.invoked = hub.publish_local(body.channel, body.payload)
        except Exception as e:  # noqa: BLE001
            log.exception("local publish on %r failed", body.channel)
            raise ApiError(code="DISPATCH_FAILED", message=str(e), http_status=500)
        return ok(trace_id, result.model_dump()).model_dump()

    if body.target == "peer":
        if not body.peer_id:
            raise ApiError(code="INVALID_ARGUMENT", message="peer_id is required for target=peer")
        peer = peers.get(body.peer_id)
        if peer is None:
            raise ApiError(code="NOT_FOUND", message="peer not found", http_status=404)
        targets = [peer]
    else:
        targets = peers.snapshot()

    for p in targets:
        hub.publish_to_window(p.window, body.channel, body.payload, body.target_origin)
        result.posted_to.append(p.id)
    return ok(trace_id, result.model_dump()).model_dump()


@router.post("/messages")
async def receive_message(request: Request, body: WsEnvelopeFrame):
    """Inbound cross-window message posted over HTTP (see RemoteHubWindow).

    Runs on the loop thread, like frames from the WS bridge, so subscribers
    can publish onward to other windows.
    """
    trace_id = new_trace_id()
    origin = request.headers.get("origin") or OPAQUE_ORIGIN
    event = MessageEvent(data=decode_frame(body), origin=origin)
    try:
        request.app.state.window.dispatch_event(event)
    except Exception as e:  # noqa: BLE001
        log.exception("dispatch of posted message failed")
        raise ApiError(code="DISPATCH_FAILED", message=str(e), http_status=500)
    return ok(trace_id, {"received": True}).model_dump()
