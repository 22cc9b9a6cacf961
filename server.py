"""
Flask server for LLM Chess Arena.

Wires the JSON game store, the in-memory registry and the background game threads into
the HTTP API (see llmchess_arena.api for the routes). Games are persisted to the state file
configured by LLMCHESS_STATE_PATH (default games_state.json).
"""
from __future__ import annotations

import logging
import os

from llmchess_arena.api import create_app
from llmchess_arena.config import SETTINGS
from llmchess_arena.registry import GameRegistry
from llmchess_arena.service import ArenaService
from llmchess_arena.store import JsonGameStore

logging.basicConfig(
    level=getattr(logging, SETTINGS.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

service = ArenaService(store=JsonGameStore(SETTINGS.state_path), registry=GameRegistry())
app = create_app(service)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 8000)), debug=False, threaded=True)
