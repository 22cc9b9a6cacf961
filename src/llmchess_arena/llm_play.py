from __future__ import annotations
"""
Turn driver: one ply of model play.

Builds the move prompt, calls the completion client with bounded retries, extracts a
legal move from the reply, and falls back to a uniformly random legal move when every
attempt fails. A literal 'resign' answer is handed back without touching the board.

The driver has no side effects beyond logging; GameRunner applies and records the move.
"""
import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .config import SETTINGS
from .exceptions import UpstreamError
from .llm_client import Completion, complete
from .move_extractor import MARKER_RE, RESIGN, extract, find_resignation
from .prompting import PromptConfig, build_move_messages
from .referee import Referee

FALLBACK_EXCERPT_CHARS = 500

CompleteFn = Callable[[str, List[Dict[str, str]], Optional[str]], Completion]


@dataclass(frozen=True)
class MoveChoice:
    """Outcome of one ply: a legal SAN move, or a resignation."""

    move: str
    thinking: str
    resigned: bool = False
    fallback: bool = False
    attempts: int = 0
    raw: str = ""


def fallback_thinking(model: str, attempts: int, last_response: str) -> str:
    excerpt = last_response[:FALLBACK_EXCERPT_CHARS]
    if len(last_response) > FALLBACK_EXCERPT_CHARS:
        excerpt += "..."
    return (
        f"Failed to extract valid move from model {model} after {attempts} attempts. "
        f"Random fallback move selected. Last response: {excerpt}"
    )


class TurnDriver:
    def __init__(
        self,
        complete_fn: CompleteFn = complete,
        prompt_cfg: PromptConfig | None = None,
        max_attempts: int | None = None,
        retry_backoff_s: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ):
        self.log = logging.getLogger("TurnDriver")
        self.complete_fn = complete_fn
        self.prompt_cfg = prompt_cfg or PromptConfig()
        self.max_attempts = max(1, max_attempts if max_attempts is not None else SETTINGS.max_attempts)
        self.retry_backoff_s = SETTINGS.retry_backoff_s if retry_backoff_s is None else retry_backoff_s
        self.sleep = sleep
        self.rng = rng or random.Random()

    def build_messages(self, referee: Referee) -> List[Dict[str, str]]:
        return build_move_messages(
            side=referee.turn(),
            move_number=referee.move_number(),
            fen=referee.fen(),
            legal_moves=referee.legal_moves(),
            history=referee.san_history(),
            prompt_cfg=self.prompt_cfg,
        )

    def play_ply(self, referee: Referee, model: str, api_key: Optional[str] = None) -> MoveChoice:
        """Choose a move for the side to move. AuthError propagates; everything else is absorbed."""
        legal = referee.legal_moves()
        side = referee.turn()
        messages = self.build_messages(referee)
        last_raw = ""
        for attempt in range(1, self.max_attempts + 1):
            final = attempt == self.max_attempts
            try:
                rsp = self.complete_fn(model, messages, api_key)
            except UpstreamError as exc:
                self.log.warning("Model %s (%s) failed on attempt %d/%d: %s", model, side, attempt, self.max_attempts, exc)
                if not final:
                    self._backoff()
                continue
            last_raw = rsp.text
            self.log.debug("=== %s (%s) response, attempt %d ===\n%s", model, side, attempt, rsp.text)

            if find_resignation(rsp.text):
                self.log.info("Model %s (%s) resigned", model, side)
                thinking = MARKER_RE.split(rsp.text, maxsplit=1)[0].strip()
                return MoveChoice(RESIGN, thinking, resigned=True, attempts=attempt, raw=rsp.text)

            result = extract(rsp.text, legal)
            if result is not None:
                self.log.info("Model %s (%s) chose %s via %s on attempt %d", model, side, result.move, result.strategy, attempt)
                return MoveChoice(result.move, result.thinking, attempts=attempt, raw=rsp.text)

            self.log.info("No legal move in reply from %s (%s) on attempt %d/%d", model, side, attempt, self.max_attempts)
            if not final:
                self._backoff()
        return self._fallback(model, side, legal, last_raw)

    def _backoff(self) -> None:
        if self.retry_backoff_s > 0:
            self.sleep(self.retry_backoff_s)

    def _fallback(self, model: str, side: str, legal: Sequence[str], last_raw: str) -> MoveChoice:
        move = self.rng.choice(list(legal))
        self.log.warning("All %d attempts failed for %s (%s); random fallback %s", self.max_attempts, model, side, move)
        return MoveChoice(
            move,
            fallback_thinking(model, self.max_attempts, last_raw),
            fallback=True,
            attempts=self.max_attempts,
            raw=last_raw,
        )
