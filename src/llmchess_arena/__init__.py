"""
LLM Chess Arena package.

Components:
- game: GameRunner drives one model-vs-model game to a terminal status
- llm_play: TurnDriver plays one ply (prompt, completion, extraction, retries, random fallback)
- move_extractor: cascade of strategies turning free-form replies into a legal SAN move
- llm_client: OpenAI-compatible transport (OpenRouter by default; base_url configurable)
- referee: python-chess Board wrapper used as the rules adapter
- models/store/registry: game snapshot, persistence and in-memory mirror
- service/api: background game threads and the Flask polling surface
- pgn: PGN export
"""
# Package exports are intentionally minimal; import modules directly as needed.
