"""
Shared fixtures: a fresh GameSession and ConnectionRegistry per test,
a fake websocket for driving the registry and handlers without a server,
and a TestClient bound to an app built around those two objects.
"""

import asyncio
from typing import Any, Iterable, Iterator

import pytest
from fastapi.testclient import TestClient

from chessroom.main import create_app
from chessroom.session import GameSession
from chessroom.ws_manager import ConnectionRegistry


class FakeWebSocket:
    """
    Records every payload sent to it. `delays` holds a per-send delay for the
    first sends (later sends are immediate); `fail` makes every send raise.
    `frames` are returned by receive() in order, after which it blocks.
    """

    def __init__(
        self,
        fail: bool = False,
        delays: Iterable[float] = (),
        frames: Iterable[dict[str, Any]] = (),
    ) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail = fail
        self.delays = list(delays)
        self.frames = list(frames)
        self.accepted = False

    async def accept(self) -> None:
        self.accepted = True

    async def receive(self) -> dict[str, Any]:
        if self.frames:
            # let writer tasks flush before the next frame
            await asyncio.sleep(0.01)
            return self.frames.pop(0)
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)

    def kinds(self) -> list[str]:
        return [p["kind"] for p in self.sent]


@pytest.fixture
def fake_ws() -> type[FakeWebSocket]:
    return FakeWebSocket


@pytest.fixture
def game_session() -> GameSession:
    return GameSession()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry(send_timeout=0.5)


@pytest.fixture
def client(
    game_session: GameSession, registry: ConnectionRegistry
) -> Iterator[TestClient]:
    """One TestClient context so every websocket shares a single event loop."""
    app = create_app(session=game_session, registry=registry)
    with TestClient(app) as test_client:
        yield test_client
