"""
Менеджер WebSocket: живые подключения по id, отправка одному и рассылка всем.
О шахматах ничего не знает.

У каждого подключения своя очередь исходящих и задача-писатель:
отправка ставит сообщение в очередь и сразу возвращается, порядок
сообщений для одного подключения сохраняется.
"""
import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket

from .config import get_config
from .constants import MessageKind

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, connection_id: str):
        self.ws = ws
        self.id = connection_id
        self.outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.writer: asyncio.Task | None = None


class ConnectionRegistry:
    def __init__(self, send_timeout: float | None = None):
        self._by_id: dict[str, Connection] = {}
        self._send_timeout = send_timeout

    @property
    def send_timeout(self) -> float:
        if self._send_timeout is None:
            return get_config().send_timeout_seconds
        return self._send_timeout

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._by_id

    def connection_ids(self) -> list[str]:
        return list(self._by_id)

    def connect(self, ws: WebSocket) -> Connection:
        conn = Connection(ws, uuid.uuid4().hex)
        self._by_id[conn.id] = conn
        return conn

    def disconnect(self, connection_id: str) -> None:
        conn = self._by_id.pop(connection_id, None)
        if conn and conn.writer:
            conn.writer.cancel()

    def send_to(self, connection_id: str, payload: dict[str, Any]) -> bool:
        conn = self._by_id.get(connection_id)
        if not conn:
            return False
        self._enqueue(conn, payload)
        return True

    def broadcast_move(self, move: dict[str, Any]) -> None:
        self._broadcast([{"kind": MessageKind.MOVE.value, "move": move}])

    def broadcast_state(self, serialized: str) -> None:
        self._broadcast([{"kind": MessageKind.STATE.value, "serialized": serialized}])

    def broadcast_accepted(self, move: dict[str, Any], serialized: str) -> None:
        """Ход и состояние одной рассылкой: каждый получает сначала move, потом state."""
        self._broadcast([
            {"kind": MessageKind.MOVE.value, "move": move},
            {"kind": MessageKind.STATE.value, "serialized": serialized},
        ])

    async def drain(self) -> None:
        """Дождаться, пока все очереди исходящих будут отправлены (или отброшены)."""
        await asyncio.gather(*(c.outbox.join() for c in list(self._by_id.values())))

    def _broadcast(self, payloads: list[dict[str, Any]]) -> None:
        for conn in list(self._by_id.values()):
            for payload in payloads:
                self._enqueue(conn, payload)

    def _enqueue(self, conn: Connection, payload: dict[str, Any]) -> None:
        if conn.writer is None:
            conn.writer = asyncio.get_running_loop().create_task(self._write_loop(conn))
        conn.outbox.put_nowait(payload)

    async def _write_loop(self, conn: Connection) -> None:
        while True:
            payload = await conn.outbox.get()
            try:
                await asyncio.wait_for(conn.ws.send_json(payload), self.send_timeout)
            except Exception as e:
                # Сообщение теряется, подключение остаётся живым
                logger.warning("send to %s failed: %r", conn.id, e)
            finally:
                conn.outbox.task_done()


manager = ConnectionRegistry()
