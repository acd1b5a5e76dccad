"""
Обработка WebSocket: подключение (выдача роли), ходы, отключение.
Каждое входящее сообщение, кроме sync, считается запросом хода.
"""
import json
import logging
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .constants import MessageKind
from .session import GameSession, MoveOutcome, RoleAssignment
from .ws_manager import ConnectionRegistry

logger = logging.getLogger(__name__)


def _parse(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as e:
        # Битый JSON уходит в шлюз ходов как нелегальный ход
        logger.warning("WS: invalid JSON: %s", e)
        return None


async def _receive_frame(ws: WebSocket) -> str | None:
    """Текст кадра; для бинарного кадра — None."""
    message = await ws.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    text = message.get("text")
    if text is None:
        logger.warning("WS: non-text frame")
    return text


def handle_connect(
    ws: WebSocket,
    session: GameSession,
    registry: ConnectionRegistry,
) -> tuple[str, RoleAssignment]:
    conn = registry.connect(ws)
    assignment = session.assign_role(conn.id)
    registry.send_to(
        conn.id,
        {"kind": MessageKind.ROLE.value, "value": assignment.value},
    )
    logger.info("WS: %s connected as %s (%d live)", conn.id, assignment.value, len(registry))
    return conn.id, assignment


def handle_disconnect(
    connection_id: str,
    session: GameSession,
    registry: ConnectionRegistry,
) -> None:
    registry.disconnect(connection_id)
    session.release_role(connection_id)
    logger.info("WS: %s disconnected (%d live)", connection_id, len(registry))


async def handle_move_request(
    connection_id: str,
    proposed: Any,
    session: GameSession,
    registry: ConnectionRegistry,
) -> MoveOutcome:
    """
    Проверить и применить ход. Отказ — только отправителю,
    принятый ход — всем: сначала move, потом state.
    Под блокировкой сообщения только ставятся в очереди, доставки не ждём.
    """
    async with session.lock:
        outcome = session.apply_move(connection_id, proposed)
        if outcome.accepted:
            registry.broadcast_accepted(outcome.move, outcome.serialized)
        else:
            registry.send_to(
                connection_id,
                {"kind": MessageKind.REJECTED.value, "reason": outcome.reason.value},
            )
    return outcome


async def handle_ws_message(
    connection_id: str,
    raw: str | None,
    session: GameSession,
    registry: ConnectionRegistry,
) -> None:
    data = _parse(raw)
    if isinstance(data, dict) and data.get("kind") == MessageKind.SYNC.value:
        registry.send_to(
            connection_id,
            {"kind": MessageKind.STATE.value, "serialized": session.serialize()},
        )
        return
    await handle_move_request(connection_id, data, session, registry)


async def ws_session_loop(
    ws: WebSocket,
    session: GameSession,
    registry: ConnectionRegistry,
) -> None:
    """Принять соединение, выдать роль, дальше цикл приёма сообщений."""
    connection_id = None
    try:
        await ws.accept()
        # Между выдачей роли и присваиванием id нет await
        connection_id, _ = handle_connect(ws, session, registry)
        while True:
            raw = await _receive_frame(ws)
            await handle_ws_message(connection_id, raw, session, registry)
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s connection_id=%s", e.code, connection_id)
    except Exception as e:
        logger.exception("WS: error connection_id=%s: %s", connection_id, e)
    finally:
        if connection_id:
            handle_disconnect(connection_id, session, registry)
