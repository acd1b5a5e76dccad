"""Константы протокола: стороны, роли, типы сообщений."""
from enum import StrEnum

import chess


class Side(StrEnum):
    FIRST = "first"
    SECOND = "second"


SPECTATOR = "spectator"

SIDE_COLORS: dict[Side, chess.Color] = {
    Side.FIRST: chess.WHITE,
    Side.SECOND: chess.BLACK,
}


class MessageKind(StrEnum):
    ROLE = "role"
    REJECTED = "rejected"
    MOVE = "move"
    STATE = "state"
    SYNC = "sync"


class RejectReason(StrEnum):
    NOT_YOUR_TURN = "not_your_turn"
    ILLEGAL_MOVE = "illegal_move"


# Превращение всегда в ферзя
PROMOTION_NAME = "queen"
PROMOTION_PIECE = chess.QUEEN
