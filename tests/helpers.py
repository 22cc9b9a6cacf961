"""Fakes shared by the test modules."""
from __future__ import annotations

from typing import Dict, List

from llmchess_arena.llm_client import Completion
from llmchess_arena.llm_play import MoveChoice
from llmchess_arena.store import JsonGameStore


class ScriptedCompletion:
    """Completion function returning canned replies in order (the last one repeats).

    Replies that are exceptions are raised instead of returned.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: List[tuple] = []

    def __call__(self, model, messages, api_key=None):
        self.calls.append((model, messages, api_key))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return Completion(text=reply, usage={"total_tokens": 42})


class PerModelCompletion:
    """Routes each call to a ScriptedCompletion keyed by model id."""

    def __init__(self, scripts: Dict[str, list]):
        self.scripts = {model: ScriptedCompletion(replies) for model, replies in scripts.items()}

    def __call__(self, model, messages, api_key=None):
        return self.scripts[model](model, messages, api_key)


class ScriptedDriver:
    """Stands in for TurnDriver; plays a fixed list of moves ('resign' resigns)."""

    def __init__(self, moves, on_call=None):
        self.moves = list(moves)
        self.calls: List[str] = []
        self.on_call = on_call

    def play_ply(self, referee, model, api_key=None):
        self.calls.append(model)
        if self.on_call:
            self.on_call(len(self.calls))
        move = self.moves.pop(0)
        if isinstance(move, Exception):
            raise move
        if move == "resign":
            return MoveChoice("resign", "I see no way out.", resigned=True, attempts=1)
        return MoveChoice(move, f"thinking about {move}", attempts=1)


class RecordingStore(JsonGameStore):
    """In-memory store that keeps every snapshot it was asked to persist."""

    def __init__(self, path=None):
        super().__init__(path)
        self.snapshots: List[dict] = []

    def upsert(self, game):
        self.snapshots.append(game.to_dict())
        return super().upsert(game)


class FailingStore(JsonGameStore):
    def upsert(self, game):
        raise OSError("disk full")


FOOLS_MATE = ["f3", "e5", "g4", "Qh4#"]
