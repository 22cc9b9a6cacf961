"""
Configuration and environment loading for LLM Chess Arena.

- Loads settings.yml (YAML) from repo root if present; falls back to environment variables.
- Exposes SETTINGS with keys used across the project (API key, gateway URL, pacing and retry knobs).
"""
from dataclasses import dataclass
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()


def _repo_root() -> str:
    # this file: src/llmchess_arena/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.environ.get("LLMCHESS_SETTINGS_PATH") or os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


@dataclass(frozen=True)
class Settings:
    # Auth / endpoint (OpenRouter, OpenAI-compatible wire format)
    llm_api_key: str
    api_base: str
    http_referer: str
    app_title: str

    # Completion / turn knobs
    responses_timeout_s: float
    max_attempts: int
    retry_backoff_s: float

    # Game loop knobs
    max_plies: int
    pace_min_s: float
    pace_max_s: float

    # Storage
    abandon_timeout_min: int
    registry_ttl_s: float
    state_path: str

    log_level: str


SETTINGS = Settings(
    llm_api_key=_get("LLMCHESS_LLM_API_KEY", _get("OPENROUTER_API_KEY", "")),
    api_base=_get("LLMCHESS_LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    http_referer=_get("LLMCHESS_HTTP_REFERER", "http://localhost:3333"),
    app_title=_get("LLMCHESS_APP_TITLE", "Chess Battle App"),
    responses_timeout_s=float(_get("LLMCHESS_RESPONSES_TIMEOUT_S", 120.0, cast=float)),
    max_attempts=int(_get("LLMCHESS_MAX_ATTEMPTS", 3, cast=int)),
    retry_backoff_s=float(_get("LLMCHESS_RETRY_BACKOFF_S", 1.0, cast=float)),
    max_plies=int(_get("LLMCHESS_MAX_PLIES", 200, cast=int)),
    pace_min_s=float(_get("LLMCHESS_PACE_MIN_S", 1.5, cast=float)),
    pace_max_s=float(_get("LLMCHESS_PACE_MAX_S", 3.0, cast=float)),
    abandon_timeout_min=int(_get("LLMCHESS_ABANDON_TIMEOUT_MIN", 30, cast=int)),
    registry_ttl_s=float(_get("LLMCHESS_REGISTRY_TTL_S", 3600.0, cast=float)),
    state_path=_get("LLMCHESS_STATE_PATH", "games_state.json"),
    log_level=_get("LLMCHESS_LOG_LEVEL", "INFO"),
)
