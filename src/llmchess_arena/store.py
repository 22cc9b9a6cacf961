"""
Game persistence.

- GameStore: the contract GameRunner and ArenaService rely on (upsert / find / query / sweep).
- JsonGameStore: thread-safe keyed map of game snapshots, mirrored to a JSON state file when a
  path is configured (loaded at start, rewritten after every mutation).

A stored game that has left `ongoing` keeps its status; later snapshots with a different
status are ignored and the stored copy is returned instead.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from .models import ABANDONED, ONGOING, Game

log = logging.getLogger("store")


class GameStore(Protocol):
    """Persistence layer used by the game loop and the service."""

    def upsert(self, game: Game) -> Game:
        """Create or replace the record for game.id and return the stored snapshot."""
        ...

    def find_by_id(self, game_id: str) -> Game | None:
        ...

    def find_many(self, statuses: Iterable[str] | None = None, limit: int | None = None) -> List[Game]:
        """Games filtered by status, newest started_at first."""
        ...

    def bulk_mark_abandoned(self, cutoff: datetime, reason: str | None = None) -> int:
        """Abandon ongoing games idle since before cutoff. Returns the number changed."""
        ...


class JsonGameStore:
    def __init__(self, path: str | os.PathLike | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._games: Dict[str, dict] = self._load_state()

    # ---------------- File mirror -----------------
    def _load_state(self) -> Dict[str, dict]:
        if not self.path or not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            log.exception("Failed to load state from %s; starting fresh", self.path)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _save_state(self) -> None:
        if not self.path:
            return
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(self._games, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

    # ---------------- Contract -----------------
    def upsert(self, game: Game) -> Game:
        snapshot = game.to_dict()
        with self._lock:
            existing = self._games.get(game.id)
            if existing and existing.get("status") != ONGOING and existing.get("status") != snapshot["status"]:
                log.warning(
                    "Ignoring %s snapshot for game %s; stored status is %s",
                    snapshot["status"], game.id, existing.get("status"),
                )
                return Game.from_dict(existing)
            self._games[game.id] = snapshot
            self._save_state()
        return Game.from_dict(snapshot)

    def find_by_id(self, game_id: str) -> Optional[Game]:
        with self._lock:
            data = self._games.get(game_id)
        return Game.from_dict(data) if data else None

    def find_many(self, statuses: Iterable[str] | None = None, limit: int | None = None) -> List[Game]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            games = [Game.from_dict(d) for d in self._games.values()]
        if wanted is not None:
            games = [g for g in games if g.status in wanted]
        games.sort(key=lambda g: g.started_at, reverse=True)
        return games[:limit] if limit is not None else games

    def bulk_mark_abandoned(self, cutoff: datetime, reason: str | None = None) -> int:
        count = 0
        with self._lock:
            for game_id, data in list(self._games.items()):
                game = Game.from_dict(data)
                if game.status != ONGOING:
                    continue
                idle_since = game.last_move_at or game.started_at
                if idle_since >= cutoff:
                    continue
                game.finish(
                    ABANDONED,
                    termination_reason="inactivity",
                    error_reason=reason or f"Game abandoned after inactivity since {cutoff.isoformat()}",
                )
                self._games[game_id] = game.to_dict()
                count += 1
            if count:
                self._save_state()
        if count:
            log.info("Marked %d inactive games as abandoned", count)
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
