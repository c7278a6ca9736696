from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from race.logic.paragraph import RemoteParagraphProvider, StaticParagraphProvider
from race.messaging.router import MessageRouter
from race.server.settings import RaceServerSettings
from race.server.websocket import websocket_endpoint
from race.session.manager import SessionManager
from shared.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from race.logic.paragraph import ParagraphProvider

logger = structlog.get_logger()


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    settings: RaceServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "active_rooms": session_manager.room_count,
            "connections": session_manager.connection_count,
            "max_rooms": settings.max_rooms,
        },
    )


async def list_rooms(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    rooms = [room.model_dump(mode="json") for room in session_manager.get_rooms_info()]
    return JSONResponse({"rooms": rooms})


def build_paragraph_provider(settings: RaceServerSettings) -> ParagraphProvider:
    if settings.offline_paragraphs:
        return StaticParagraphProvider()
    return RemoteParagraphProvider(
        url=settings.paragraph_url,
        timeout_seconds=settings.paragraph_timeout_seconds,
    )


def create_app(
    settings: RaceServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
    paragraph_provider: ParagraphProvider | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = RaceServerSettings()

    if session_manager is None:
        if paragraph_provider is None:
            paragraph_provider = build_paragraph_provider(settings)
        session_manager = SessionManager(
            paragraph_provider,
            settings=settings.race_settings(),
            max_rooms=settings.max_rooms,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/rooms", list_rooms, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
        WebSocketRoute("/ws/{room_id}", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        session_manager.shutdown()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("race server ready", max_rooms=settings.max_rooms)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (uvicorn --factory)."""
    settings = RaceServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
