"""
Chessroom API и WebSocket.
"""
import logging

import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .session import GameSession
from .session import session as default_session
from .ws_handlers import ws_session_loop
from .ws_manager import ConnectionRegistry
from .ws_manager import manager as default_manager

config = get_config()

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app(
    session: GameSession | None = None,
    registry: ConnectionRegistry | None = None,
) -> FastAPI:
    session = session if session is not None else default_session
    registry = registry if registry is not None else default_manager

    app = FastAPI(title="Chessroom API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/state")
    def state():
        return {**session.snapshot(), "connections": len(registry)}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_session_loop(ws, session, registry)

    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
