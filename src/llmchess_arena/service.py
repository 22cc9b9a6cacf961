"""Orchestration between the HTTP layer, the game loop and persistence."""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from .config import SETTINGS
from .game import GameConfig, GameRunner
from .llm_play import TurnDriver
from .models import ABANDONED, COMPLETED, DRAW, ERROR, ONGOING, PLAYER1, PLAYER2, Game, utc_now
from .pgn import export_pgn, lichess_url
from .registry import GameRegistry
from .store import GameStore

log = logging.getLogger("service")

Spawner = Callable[[GameRunner], None]


def _start_game_thread(runner: GameRunner) -> None:
    t = threading.Thread(target=runner.play, name=f"game-{runner.game.id}", daemon=True)
    t.start()


def _empty_stats() -> Dict[str, int]:
    return {"wins": 0, "losses": 0, "draws": 0, "total": 0, "ongoing": 0, "abandoned": 0}


def game_payload(game: Game) -> Dict[str, Any]:
    """Game snapshot plus PGN and lichess link once at least one move was played."""
    data = game.to_dict()
    pgn = export_pgn(game) if game.move_history else None
    data["pgn"] = pgn
    data["lichess_url"] = lichess_url(pgn) if pgn else None
    return data


def status_filter(include_ongoing: bool = True, include_abandoned: bool = True) -> Optional[List[str]]:
    """Statuses to list; None means all."""
    if not include_ongoing and not include_abandoned:
        return [COMPLETED]
    if not include_ongoing:
        return [COMPLETED, ABANDONED, ERROR]
    if not include_abandoned:
        return [COMPLETED, ONGOING]
    return None


class ArenaService:
    """Creates games, runs each on its own thread, and answers read requests."""

    def __init__(
        self,
        store: GameStore,
        registry: GameRegistry,
        cfg: GameConfig | None = None,
        driver_factory: Callable[[], TurnDriver] | None = None,
        spawner: Spawner = _start_game_thread,
    ) -> None:
        self.store = store
        self.registry = registry
        self.cfg = cfg or GameConfig()
        self.driver_factory = driver_factory or (lambda: TurnDriver(prompt_cfg=self.cfg.prompt_cfg))
        self.spawner = spawner

    # -- Commands --
    def start_game(self, player1: str, player2: str, api_key: Optional[str] = None) -> Game:
        """Create a game, persist its first snapshot and start the loop in the background."""
        player1 = str(player1 or "").strip()
        player2 = str(player2 or "").strip()
        if not player1 or not player2:
            raise ValueError("Both players are required")
        if player1 == player2:
            raise ValueError("Players must be different")

        game = Game.new(player1, player2)
        self.registry.put(game)
        stored = self.store.upsert(game)
        log.info("Created game %s: %s vs %s", game.id, player1, player2)

        runner = GameRunner(
            game,
            self.store,
            registry=self.registry,
            driver=self.driver_factory(),
            cfg=self.cfg,
            api_key=api_key,
        )
        self.spawner(runner)
        return stored

    def mark_abandoned(self, timeout_minutes: int | None = None) -> int:
        minutes = SETTINGS.abandon_timeout_min if timeout_minutes is None else timeout_minutes
        cutoff = utc_now() - timedelta(minutes=minutes)
        return self.store.bulk_mark_abandoned(cutoff, reason=f"Game abandoned after {minutes} minutes of inactivity")

    # -- Queries --
    def get_game(self, game_id: str) -> Optional[Game]:
        """Latest known snapshot: in-process registry first, then the store."""
        return self.registry.get(game_id) or self.store.find_by_id(game_id)

    def list_games(self, include_ongoing: bool = True, include_abandoned: bool = True, limit: int | None = None) -> List[Game]:
        if limit is not None and limit < 1:
            raise ValueError("limit must be at least 1")
        self.mark_abandoned()
        return self.store.find_many(status_filter(include_ongoing, include_abandoned), limit=limit)

    def scoreboard(self, include_ongoing: bool = True, include_abandoned: bool = True) -> Dict[str, Dict[str, int]]:
        """Per-model tallies. Wins, losses and draws only count completed games."""
        board: Dict[str, Dict[str, int]] = {}
        for game in self.list_games(include_ongoing, include_abandoned):
            p1 = board.setdefault(game.player1, _empty_stats())
            p2 = board.setdefault(game.player2, _empty_stats())
            p1["total"] += 1
            p2["total"] += 1
            if game.status == ONGOING:
                p1["ongoing"] += 1
                p2["ongoing"] += 1
            elif game.status in (ABANDONED, ERROR):
                p1["abandoned"] += 1
                p2["abandoned"] += 1
            elif game.status == COMPLETED:
                if game.winner == DRAW:
                    p1["draws"] += 1
                    p2["draws"] += 1
                elif game.winner == PLAYER1:
                    p1["wins"] += 1
                    p2["losses"] += 1
                elif game.winner == PLAYER2:
                    p2["wins"] += 1
                    p1["losses"] += 1
        return board

    def pgn(self, game_id: str) -> Optional[str]:
        game = self.get_game(game_id)
        return export_pgn(game) if game else None
