"""
Referee: rules adapter around a python-chess Board.

- Reports legal moves in SAN, applies SAN tokens, and reports terminal conditions.
- Rebuilds a board from a SAN move list (keeps repetition history intact) or a FEN snapshot.

Used by TurnDriver to list legal moves and by GameRunner to apply moves and evaluate results.
"""
from __future__ import annotations

import chess
from typing import Iterable, Optional


class Referee:
    """Plain chess referee around python-chess Board."""

    def __init__(self, starting_fen: str | None = None):
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()

    @classmethod
    def from_moves(cls, sans: Iterable[str], starting_fen: str | None = None) -> "Referee":
        ref = cls(starting_fen)
        for san in sans:
            if ref.apply_san(san) is None:
                raise ValueError(f"illegal move in history: {san}")
        return ref

    @classmethod
    def from_fen(cls, fen: str) -> "Referee":
        """Position from a FEN snapshot (no move history, so no repetition tracking)."""
        return cls(fen)

    # ---------------- Position queries -----------------
    def legal_moves(self) -> list[str]:
        return [self.board.san(mv) for mv in self.board.legal_moves]

    def turn(self) -> str:
        return "white" if self.board.turn == chess.WHITE else "black"

    def fen(self) -> str:
        return self.board.fen()

    def move_number(self) -> int:
        return self.board.fullmove_number

    def san_history(self) -> list[str]:
        replay = self.board.root()
        sans: list[str] = []
        for mv in self.board.move_stack:
            sans.append(replay.san(mv))
            replay.push(mv)
        return sans

    # ---------------- Move Application -----------------
    def apply_san(self, token: str) -> Optional[str]:
        """Apply a SAN move. Returns the canonical SAN, or None if the move is not legal here."""
        try:
            mv = self.board.parse_san(token)
        except ValueError:
            return None
        san = self.board.san(mv)
        self.board.push(mv)
        return san

    # ---------------- Status -----------------
    def is_checkmate(self) -> bool:
        return self.board.is_checkmate()

    def is_stalemate(self) -> bool:
        return self.board.is_stalemate()

    def is_draw(self) -> bool:
        return self.is_game_over() and not self.is_checkmate()

    def is_game_over(self) -> bool:
        return self.board.is_game_over()

    def termination_reason(self) -> Optional[str]:
        """Derive a readable termination reason from a finished board."""
        if self.board.is_checkmate():
            return "checkmate"
        if self.is_stalemate():
            return "stalemate"
        if self.board.is_insufficient_material():
            return "insufficient_material"
        if self.board.is_seventyfive_moves():
            return "seventyfive_move_rule"
        if self.board.is_fivefold_repetition():
            return "fivefold_repetition"
        if self.board.is_game_over():
            return "game_over"
        return None
