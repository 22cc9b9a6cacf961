"""
Single-game runner and config.

- GameConfig: knobs for the ply cap, pacing between plies and prompting.
- GameRunner: drives one model-vs-model game to a terminal status using python-chess.
  - Asks TurnDriver for each ply, applies the move through Referee, records the MoveRecord.
  - Mirrors the snapshot into the GameRegistry and persists it to the GameStore after every ply
    and on every status transition (persistence failures are logged, never rolled back).
  - Never raises from play(): failures end the game as `abandoned` or `error`.

"""
from __future__ import annotations
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .config import SETTINGS
from .exceptions import IllegalMoveRejected
from .llm_play import TurnDriver
from .models import (
    ABANDONED,
    COMPLETED,
    DRAW,
    ERROR,
    Game,
    MoveRecord,
    opponent_of,
    slot_for_side,
)
from .prompting import PromptConfig
from .referee import Referee
from .registry import GameRegistry
from .store import GameStore


@dataclass
class GameConfig:
    max_plies: int = SETTINGS.max_plies  # 100 moves per side
    pace_min_s: float = SETTINGS.pace_min_s
    pace_max_s: float = SETTINGS.pace_max_s
    prompt_cfg: PromptConfig = field(default_factory=PromptConfig)


class GameRunner:
    def __init__(
        self,
        game: Game,
        store: GameStore,
        registry: GameRegistry | None = None,
        driver: TurnDriver | None = None,
        cfg: GameConfig | None = None,
        api_key: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        self.log = logging.getLogger("GameRunner")
        self.game = game
        self.store = store
        self.registry = registry
        self.cfg = cfg or GameConfig()
        self.driver = driver or TurnDriver(prompt_cfg=self.cfg.prompt_cfg)
        self.api_key = api_key
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.ref: Referee | None = None

    def play(self) -> Game:
        """Run the game to a terminal status and return the final snapshot."""
        self.log.info("Starting game %s: %s (white) vs %s (black)", self.game.id, self.game.player1, self.game.player2)
        try:
            self._run()
        except Exception as exc:  # noqa: BLE001
            self.log.exception("Game %s crashed", self.game.id)
            if not self.game.is_terminal:
                self.game.finish(ERROR, termination_reason="error", error_reason=f"Simulation error: {exc}")
                self._publish()
        self.log.info(
            "Game %s finished status=%s winner=%s reason=%s plies=%d",
            self.game.id, self.game.status, self.game.winner, self.game.termination_reason, self.game.total_moves,
        )
        return self.game

    # ---------------- Loop -----------------
    def _run(self) -> None:
        self.ref = Referee.from_moves(self.game.move_history)
        plies = self.game.total_moves
        while not self.game.is_terminal:
            if self.ref.is_game_over() or plies >= self.cfg.max_plies:
                self._finish_from_board(plies)
                return
            side = self.ref.turn()
            slot = slot_for_side(side)
            model = self.game.model_for(slot)
            self.log.info("Game %s move %d%s (%s): %s is thinking", self.game.id, self.ref.move_number(), "" if side == "white" else "...", side, model)
            try:
                if not self._play_ply(slot, model):
                    return
            except IllegalMoveRejected as exc:
                self.log.error("Game %s: %s", self.game.id, exc)
                self._transition(ABANDONED, winner=opponent_of(slot), termination_reason="illegal_move", error_reason=str(exc))
                return
            except Exception as exc:  # noqa: BLE001
                self.log.exception("Error processing move for %s in game %s", model, self.game.id)
                self._transition(ERROR, winner=opponent_of(slot), termination_reason="error", error_reason=f"Error in move processing: {exc}")
                return
            plies += 1
            if self.game.is_terminal:
                return
            if not self.ref.is_game_over() and plies < self.cfg.max_plies:
                self._pace()

    def _play_ply(self, slot: str, model: str) -> bool:
        """One ply. Returns False when the game ended during it (resignation)."""
        choice = self.driver.play_ply(self.ref, model, self.api_key)
        if choice.resigned:
            self.log.info("%s resigned in game %s", model, self.game.id)
            self._transition(COMPLETED, winner=opponent_of(slot), termination_reason="resignation")
            return False
        san = self.ref.apply_san(choice.move)
        if san is None:
            raise IllegalMoveRejected(choice.move)
        record = MoveRecord(
            san_move=san,
            thinking=choice.thinking,
            player_slot=slot,
            model=model,
            attempts=choice.attempts,
            fallback=choice.fallback,
        )
        self.game.record_move(record, self.ref.fen())
        self.log.info("Game %s: %s played %s%s", self.game.id, model, san, " (random fallback)" if choice.fallback else "")
        self._publish()
        return True

    def _finish_from_board(self, plies: int) -> None:
        if self.ref.is_checkmate():
            # The side to move is mated, so the side that just moved wins.
            winner = opponent_of(slot_for_side(self.ref.turn()))
            reason = "checkmate"
        elif self.ref.is_draw():
            winner = DRAW
            reason = self.ref.termination_reason()
        else:
            winner = DRAW
            reason = "max_plies"
            self.log.info("Game %s reached the %d ply limit", self.game.id, plies)
        self._transition(COMPLETED, winner=winner, termination_reason=reason)

    def _pace(self) -> None:
        if self.cfg.pace_max_s <= 0:
            return
        self.sleep(self.rng.uniform(max(0.0, self.cfg.pace_min_s), self.cfg.pace_max_s))

    # ---------------- State publication -----------------
    def _transition(self, status: str, winner: Optional[str] = None, termination_reason: Optional[str] = None, error_reason: Optional[str] = None) -> None:
        self.game.finish(status, winner=winner, termination_reason=termination_reason, error_reason=error_reason)
        self._publish()

    def _publish(self) -> None:
        """Mirror to the registry, then persist (best effort).

        If the store already holds the game in a terminal status (e.g. swept as inactive),
        the stored snapshot is adopted and the loop stops.
        """
        if self.registry is not None:
            self.registry.put(self.game)
        try:
            stored = self.store.upsert(self.game)
        except Exception:  # noqa: BLE001
            self.log.exception("Failed to persist game %s", self.game.id)
            return
        if stored.is_terminal and stored.status != self.game.status:
            self.log.warning("Game %s is %s in the store; stopping", self.game.id, stored.status)
            self.game = stored
            if self.registry is not None:
                self.registry.put(self.game)
