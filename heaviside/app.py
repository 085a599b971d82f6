from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from .api.http import router as http_router
from .api.ws import router as ws_router
from .common.errors import ApiError
from .common.logger import setup_logger
from .common.trace import new_trace_id
from .core.config import ConfigManager, HubConfig
from .core.peers import PeerRegistry
from .events.bus import Heaviside
from .models import ErrorEnvelope
from .modules.remote_window import RemoteHubConfig, RemoteHubWindow
from .transport.window import LocalWindow


def build_hub(cfg: HubConfig) -> Heaviside:
    return Heaviside(
        route_field=cfg.route_field,
        default_target_origin=cfg.default_target_origin,
        isolate_callback_errors=cfg.isolate_callback_errors,
    )


def remote_window(cfg: HubConfig, base_url: str, origin: str, **kwargs) -> RemoteHubWindow:
    """Publish target for another hub, using this hub's remote settings."""
    return RemoteHubWindow(
        RemoteHubConfig(
            base_url=base_url,
            origin=origin,
            sender_origin=cfg.origin,
            messages_path=cfg.remote.messages_path,
            timeout_s=cfg.remote.timeout_s,
        ),
        **kwargs,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # detach the receiver so the hub window stops dispatching
    app.state.hub.close()


def create_app(cfg: Optional[HubConfig] = None, *, hub: Optional[Heaviside] = None) -> FastAPI:
    """Serve a hub over HTTP + WebSocket.

    Run with: uvicorn --factory heaviside.app:create_app  (pip install heaviside[serve])
    """
    app = FastAPI(title="Heaviside Hub", lifespan=_lifespan)

    # CORS (dev-friendly; tighten in prod)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    cfg = cfg or ConfigManager().load()
    app.state.config = cfg
    app.state.logger = setup_logger(level=cfg.log_level)

    # Dependency injection via app.state
    app.state.hub = hub or build_hub(cfg)
    app.state.window = LocalWindow(cfg.origin, name="hub")
    app.state.peers = PeerRegistry()
    app.state.hub.listen(app.state.window)

    @app.exception_handler(ApiError)
    async def api_error_handler(_, exc: ApiError):
        trace_id = new_trace_id()
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorEnvelope(
                code=exc.code,
                message=exc.message,
                trace_id=trace_id,
                data=exc.data,
            ).model_dump(),
        )

    app.include_router(http_router, prefix="/v1")
    app.include_router(ws_router, prefix="/v1")
    return app
