"""
Game snapshot and move records shared by the game loop, store, registry and HTTP layer.

A Game is created ongoing, mutated in place by GameRunner after every applied ply,
and leaves `ongoing` exactly once through finish().
"""
from __future__ import annotations

import chess
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .exceptions import GameStateError

ONGOING = "ongoing"
COMPLETED = "completed"
ABANDONED = "abandoned"
ERROR = "error"
STATUSES = (ONGOING, COMPLETED, ABANDONED, ERROR)
TERMINAL_STATUSES = (COMPLETED, ABANDONED, ERROR)

PLAYER1 = "player1"
PLAYER2 = "player2"
DRAW = "draw"
WINNERS = (PLAYER1, PLAYER2, DRAW)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def opponent_of(slot: str) -> str:
    return PLAYER2 if slot == PLAYER1 else PLAYER1


def slot_for_side(side: str) -> str:
    """player1 always plays white."""
    return PLAYER1 if side == "white" else PLAYER2


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


def _parse_ts(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class MoveRecord:
    san_move: str
    thinking: str
    player_slot: str
    model: str
    attempts: int = 1
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "san_move": self.san_move,
            "thinking": self.thinking,
            "player_slot": self.player_slot,
            "model": self.model,
            "attempts": self.attempts,
            "fallback": self.fallback,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MoveRecord":
        return cls(
            san_move=d["san_move"],
            thinking=d.get("thinking", ""),
            player_slot=d["player_slot"],
            model=d.get("model", ""),
            attempts=int(d.get("attempts", 1)),
            fallback=bool(d.get("fallback", False)),
        )


@dataclass
class Game:
    id: str
    player1: str  # white
    player2: str  # black
    status: str = ONGOING
    winner: Optional[str] = None
    move_history: List[str] = field(default_factory=list)
    move_details: List[MoveRecord] = field(default_factory=list)
    current_position: str = chess.STARTING_FEN
    error_reason: Optional[str] = None
    termination_reason: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)
    last_move_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def new(cls, player1: str, player2: str, game_id: str | None = None) -> "Game":
        return cls(id=game_id or uuid.uuid4().hex[:13], player1=player1, player2=player2)

    @property
    def total_moves(self) -> int:
        return len(self.move_history)

    @property
    def is_terminal(self) -> bool:
        return self.status != ONGOING

    def model_for(self, slot: str) -> str:
        return self.player1 if slot == PLAYER1 else self.player2

    def record_move(self, record: MoveRecord, fen_after: str, at: datetime | None = None) -> None:
        """Append one applied ply; history and details always grow together."""
        if self.is_terminal:
            raise GameStateError(f"game {self.id} is {self.status}; cannot record moves")
        self.move_history.append(record.san_move)
        self.move_details.append(record)
        self.current_position = fen_after
        self.last_move_at = at or utc_now()

    def finish(
        self,
        status: str,
        winner: Optional[str] = None,
        termination_reason: Optional[str] = None,
        error_reason: Optional[str] = None,
        at: datetime | None = None,
    ) -> None:
        """Leave `ongoing`. Terminal statuses are final."""
        if self.is_terminal:
            raise GameStateError(f"game {self.id} already {self.status}")
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"not a terminal status: {status}")
        if winner is not None and winner not in WINNERS:
            raise ValueError(f"unknown winner: {winner}")
        if status == COMPLETED and winner is None:
            raise ValueError("completed games need a winner")
        self.status = status
        self.winner = winner
        self.termination_reason = termination_reason
        self.error_reason = error_reason
        self.completed_at = at or utc_now()

    # ---------------- Serialization -----------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player1": self.player1,
            "player2": self.player2,
            "status": self.status,
            "winner": self.winner,
            "move_history": list(self.move_history),
            "move_details": [r.to_dict() for r in self.move_details],
            "current_position": self.current_position,
            "error_reason": self.error_reason,
            "termination_reason": self.termination_reason,
            "total_moves": self.total_moves,
            "started_at": _iso(self.started_at),
            "last_move_at": _iso(self.last_move_at),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Game":
        status = d.get("status", ONGOING)
        if status not in STATUSES:
            raise ValueError(f"unknown status: {status}")
        return cls(
            id=d["id"],
            player1=d["player1"],
            player2=d["player2"],
            status=status,
            winner=d.get("winner"),
            move_history=list(d.get("move_history") or []),
            move_details=[MoveRecord.from_dict(r) for r in d.get("move_details") or []],
            current_position=d.get("current_position") or chess.STARTING_FEN,
            error_reason=d.get("error_reason"),
            termination_reason=d.get("termination_reason"),
            started_at=_parse_ts(d.get("started_at")) or utc_now(),
            last_move_at=_parse_ts(d.get("last_move_at")),
            completed_at=_parse_ts(d.get("completed_at")),
        )

    def copy(self) -> "Game":
        return Game.from_dict(self.to_dict())
