"""
Состояние единственной партии (in-memory): доска, роли, очередь хода.
Легальность ходов, мат и пат, FEN — через python-chess.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import chess
from chess import Board

from .constants import (
    PROMOTION_NAME,
    PROMOTION_PIECE,
    SIDE_COLORS,
    SPECTATOR,
    RejectReason,
    Side,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleAssignment:
    side: Side | None = None

    @property
    def is_spectator(self) -> bool:
        return self.side is None

    @property
    def value(self) -> str:
        return self.side.value if self.side else SPECTATOR


@dataclass(frozen=True)
class MoveOutcome:
    accepted: bool
    reason: RejectReason | None = None
    move: dict[str, Any] | None = None  # ход клиента как есть
    serialized: str | None = None  # FEN после хода

    @classmethod
    def rejected(cls, reason: RejectReason) -> "MoveOutcome":
        return cls(accepted=False, reason=reason)


def echo_move(proposed: Any) -> dict[str, Any]:
    """Ход для рассылки: поля from/to/promotion из запроса без изменений."""
    data = proposed if isinstance(proposed, dict) else {}
    return {
        "from": data.get("from"),
        "to": data.get("to"),
        "promotion": data.get("promotion", PROMOTION_NAME),
    }


def parse_move(board: Board, proposed: Any) -> chess.Move | None:
    """
    Собрать ход из запроса {from, to, promotion}.
    Возвращает None, если запрос не разбирается или ход нелегален.
    Превращение всегда в ферзя, независимо от того, что прислал клиент.
    """
    if not isinstance(proposed, dict):
        return None
    from_sq = proposed.get("from")
    to_sq = proposed.get("to")
    if not isinstance(from_sq, str) or not isinstance(to_sq, str):
        return None
    try:
        from_idx = chess.parse_square(from_sq)
        to_idx = chess.parse_square(to_sq)
    except ValueError:
        return None
    for move in (
        chess.Move(from_idx, to_idx, promotion=PROMOTION_PIECE),
        chess.Move(from_idx, to_idx),
    ):
        if board.is_legal(move):
            return move
    return None


@dataclass
class GameSession:
    board: Board = field(default_factory=Board)
    roles: dict[Side, str | None] = field(
        default_factory=lambda: {Side.FIRST: None, Side.SECOND: None}
    )
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def role_of(self, connection_id: str) -> Side | None:
        """Роль соединения; None — зритель."""
        for side, holder in self.roles.items():
            if holder == connection_id:
                return side
        return None

    def side_to_move(self) -> Side:
        return Side.FIRST if self.board.turn == SIDE_COLORS[Side.FIRST] else Side.SECOND

    def serialize(self) -> str:
        return self.board.fen()

    def assign_role(self, connection_id: str) -> RoleAssignment:
        """
        Первая свободная сторона (сначала FIRST, потом SECOND), иначе зритель.
        Не может завершиться ошибкой.
        """
        current = self.role_of(connection_id)
        if current is not None:
            return RoleAssignment(current)
        for side in (Side.FIRST, Side.SECOND):
            if self.roles[side] is None:
                self.roles[side] = connection_id
                logger.info("Session: %s takes %s", connection_id, side.value)
                return RoleAssignment(side)
        logger.info("Session: %s joins as spectator", connection_id)
        return RoleAssignment()

    def release_role(self, connection_id: str) -> Side | None:
        """Освободить сторону соединения. Для зрителя ничего не делает."""
        side = self.role_of(connection_id)
        if side is not None:
            self.roles[side] = None
            logger.info("Session: %s released %s", connection_id, side.value)
        return side

    def apply_move(self, connection_id: str, proposed: Any) -> MoveOutcome:
        """
        Проверить очередь хода и легальность, применить ход.
        Отказ никогда не меняет доску.
        """
        side = self.side_to_move()
        if self.roles[side] != connection_id:
            logger.info("Session: %s moved out of turn (%s to move)", connection_id, side.value)
            return MoveOutcome.rejected(RejectReason.NOT_YOUR_TURN)
        move = parse_move(self.board, proposed)
        if move is None:
            logger.info("Session: illegal move from %s: %r", connection_id, proposed)
            return MoveOutcome.rejected(RejectReason.ILLEGAL_MOVE)
        self.board.push(move)
        logger.info("Session: %s played %s", side.value, move.uci())
        return MoveOutcome(
            accepted=True,
            move=echo_move(proposed),
            serialized=self.serialize(),
        )

    def snapshot(self) -> dict[str, Any]:
        """Состояние для /state без идентификаторов соединений."""
        return {
            "serialized": self.serialize(),
            "turn": self.side_to_move().value,
            "roles": {side.value: holder is not None for side, holder in self.roles.items()},
        }


# Глобальное состояние (in-memory)
session = GameSession()
