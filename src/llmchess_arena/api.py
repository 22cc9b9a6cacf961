"""
Flask API over ArenaService.

Endpoints:
- POST /api/chess/start              -> create a game and start it in the background
- GET  /api/chess/game/<id>          -> latest game snapshot (poll this ~1/s while ongoing)
- GET  /api/chess/game/<id>/pgn      -> PGN download
- GET  /api/chess/games              -> game list (includeOngoing, includeAbandoned, limit)
- GET  /api/chess/scoreboard         -> per-model win/loss/draw tallies
"""
from __future__ import annotations

from flask import Flask, Response, jsonify, request

from .pgn import lichess_url
from .service import ArenaService, game_payload


def _flag(name: str) -> bool:
    return request.args.get(name) != "false"


def create_app(service: ArenaService) -> Flask:
    app = Flask(__name__)

    @app.route("/api/chess/start", methods=["POST"])
    def start_game():
        data = request.get_json(silent=True) or {}
        try:
            game = service.start_game(data.get("player1"), data.get("player2"), api_key=data.get("userApiKey"))
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(game.to_dict())

    @app.route("/api/chess/game/<game_id>", methods=["GET"])
    def game_status(game_id: str):
        game = service.get_game(game_id)
        if not game:
            return jsonify({"error": "Game not found"}), 404
        return jsonify(game_payload(game))

    @app.route("/api/chess/game/<game_id>/pgn", methods=["GET"])
    def game_pgn(game_id: str):
        pgn = service.pgn(game_id)
        if pgn is None:
            return jsonify({"error": "Game not found"}), 404
        return Response(
            pgn,
            mimetype="text/plain",
            headers={
                "Content-Disposition": f'attachment; filename="chess-game-{game_id}.pgn"',
                "X-Lichess-Url": lichess_url(pgn),
            },
        )

    @app.route("/api/chess/games", methods=["GET"])
    def list_games():
        limit = request.args.get("limit")
        try:
            limit_n = int(limit) if limit else None
        except ValueError:
            return jsonify({"error": "limit must be an integer"}), 400
        try:
            games = service.list_games(_flag("includeOngoing"), _flag("includeAbandoned"), limit_n)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify([game_payload(g) for g in games])

    @app.route("/api/chess/scoreboard", methods=["GET"])
    def scoreboard():
        return jsonify(service.scoreboard())

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        # Prevent caching so pollers always see the freshest state
        response.headers["Cache-Control"] = "no-store, max-age=0"
        return response

    @app.route("/api/<path:path>", methods=["OPTIONS"])
    def cors_preflight(path: str):
        return app.make_response(("", 204))

    return app
