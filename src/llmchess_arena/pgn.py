"""PGN export for finished or in-progress games."""
from __future__ import annotations

import chess
import chess.pgn
from urllib.parse import quote

from .models import COMPLETED, DRAW, PLAYER1, PLAYER2, Game

EVENT = "AI Chess Battle"
SITE = "LLM Chess Arena"


def result_tag(game: Game) -> str:
    """Decisive result only for completed games; everything else stays '*'."""
    if game.status != COMPLETED:
        return "*"
    return {PLAYER1: "1-0", PLAYER2: "0-1", DRAW: "1/2-1/2"}.get(game.winner, "*")


def export_pgn(game: Game, white_label: str | None = None, black_label: str | None = None) -> str:
    pgn_game = chess.pgn.Game()
    pgn_game.headers["Event"] = EVENT
    pgn_game.headers["Site"] = SITE
    pgn_game.headers["Date"] = game.started_at.strftime("%Y.%m.%d") if game.started_at else "????.??.??"
    pgn_game.headers["Round"] = "1"
    pgn_game.headers["White"] = white_label or game.player1
    pgn_game.headers["Black"] = black_label or game.player2
    pgn_game.headers["Result"] = result_tag(game)
    pgn_game.headers["GameId"] = game.id
    pgn_game.headers["Status"] = game.status

    board = chess.Board()
    node = pgn_game
    for san in game.move_history:
        mv = board.parse_san(san)
        board.push(mv)
        node = node.add_variation(mv)
    exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
    return pgn_game.accept(exporter)


def lichess_url(pgn: str) -> str:
    return "https://lichess.org/paste?pgn=" + quote(pgn, safe="")
