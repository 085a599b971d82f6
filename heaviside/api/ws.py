from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..common.logger import get_logger
from ..common.trace import new_id
from ..models import WsEnvelopeFrame, WsErrorFrame, WsWelcomeFrame
from ..transport.codec import decode_frame
from ..transport.websocket import WebSocketWindow
from ..transport.window import MessageEvent

router = APIRouter()

log = get_logger("bridge")


@router.websocket("/ws/bridge")
async def ws_bridge(websocket: WebSocket):
    """Bridge a remote window into this hub.

    Inbound envelope frames are delivered to the hub's own window, where the
    receiver decides whether they are ours. Outbound publishes reach the
    peer through the `WebSocketWindow` registered in `app.state.peers`.
    """
    await websocket.accept()

    state = websocket.app.state
    peer = WebSocketWindow(websocket, peer_id=new_id(), origin=websocket.headers.get("origin"))
    state.peers.add(peer_id=peer.peer_id, origin=peer.origin, window=peer)
    log.info("peer %s connected from %s", peer.peer_id, peer.origin)

    async def send_error(code: str, message: str) -> None:
        await websocket.send_json(WsErrorFrame(code=code, message=message).model_dump())

    async def handle_raw(raw_text: str) -> None:
        # tolerate invalid JSON and keep connection open
        try:
            obj = json.loads(raw_text)
        except ValueError:
            await send_error("INVALID_ARGUMENT", "invalid JSON")
            return

        if not isinstance(obj, dict):
            await send_error("INVALID_ARGUMENT", "frame must be a JSON object")
            return

        t = obj.get("type")
        if t != "heaviside.envelope":
            await send_error("INVALID_ARGUMENT", f"unknown frame type: {t!r}")
            return

        try:
            frame = WsEnvelopeFrame.model_validate(obj)
        except ValidationError as e:
            await send_error("INVALID_ARGUMENT", str(e))
            return

        event = MessageEvent(data=decode_frame(frame), origin=peer.origin, source=peer)
        try:
            state.window.dispatch_event(event)
        except Exception as e:  # noqa: BLE001
            log.exception("dispatch of frame from peer %s failed", peer.peer_id)
            await send_error("DISPATCH_FAILED", str(e))

    try:
        welcome = WsWelcomeFrame(peer_id=peer.peer_id, origin=peer.origin, hub_origin=state.config.origin)
        await websocket.send_json(welcome.model_dump())
        while True:
            raw = await websocket.receive_text()
            await handle_raw(raw)
    except WebSocketDisconnect:
        pass
    finally:
        state.peers.remove(peer.peer_id)
        log.info("peer %s disconnected", peer.peer_id)
