"""
In-memory registry of live games.

Process-wide mirror of the latest snapshot per game so status polls do not wait on the store.
Each game thread is the only writer for its own key; readers get copies and may see a
slightly stale snapshot. Terminal games are evicted once older than the TTL.
"""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .config import SETTINGS
from .models import Game


class GameRegistry:
    def __init__(self, ttl_s: float | None = None, clock: Callable[[], float] = time.time):
        self.ttl_s = SETTINGS.registry_ttl_s if ttl_s is None else ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._games: Dict[str, Tuple[Game, float]] = {}

    def put(self, game: Game) -> None:
        with self._lock:
            self._games[game.id] = (game.copy(), self._clock())
        self.evict_expired()

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            entry = self._games.get(game_id)
        return entry[0].copy() if entry else None

    def evict_expired(self) -> int:
        """Drop terminal games not updated within ttl_s. Ongoing games are never evicted."""
        now = self._clock()
        with self._lock:
            expired = [gid for gid, (g, updated) in self._games.items() if g.is_terminal and now - updated > self.ttl_s]
            for gid in expired:
                self._games.pop(gid, None)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)

    def __contains__(self, game_id: object) -> bool:
        with self._lock:
            return game_id in self._games
