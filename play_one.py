import argparse
import logging

from llmchess_arena.config import SETTINGS
from llmchess_arena.game import GameConfig, GameRunner
from llmchess_arena.models import Game
from llmchess_arena.pgn import export_pgn, lichess_url
from llmchess_arena.store import JsonGameStore


if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Play one model-vs-model game in the terminal.")
    ap.add_argument("--white", required=True, help="Model playing white (player1), optionally 'model:provider'")
    ap.add_argument("--black", required=True, help="Model playing black (player2), optionally 'model:provider'")
    ap.add_argument("--max-plies", type=int, default=SETTINGS.max_plies)
    ap.add_argument("--no-pace", action="store_true", help="Skip the pause between plies")
    ap.add_argument("--state", default=None, help="Optional JSON state file to persist the game to")
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--api-key", default=None, help="Gateway API key (defaults to OPENROUTER_API_KEY)")
    ap.add_argument("--log-level", default=SETTINGS.log_level, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("play_one")

    if args.white == args.black:
        raise SystemExit("Players must be different")

    cfg = GameConfig(max_plies=args.max_plies)
    if args.no_pace:
        cfg.pace_min_s = cfg.pace_max_s = 0.0

    store = JsonGameStore(args.state)
    game = Game.new(args.white, args.black)
    store.upsert(game)
    game = GameRunner(game, store, cfg=cfg, api_key=args.api_key).play()

    pgn = export_pgn(game)
    print("Status:", game.status)
    print("Winner:", game.winner)
    print("Termination:", game.termination_reason)
    if game.error_reason:
        print("Error:", game.error_reason)
    print("PGN:\n", pgn)
    print("Analyse:", lichess_url(pgn))

    if args.pgn_out:
        with open(args.pgn_out, "w", encoding="utf-8") as f:
            f.write(pgn)
        log.info("Wrote PGN to %s", args.pgn_out)
