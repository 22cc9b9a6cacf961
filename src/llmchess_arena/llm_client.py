from __future__ import annotations
"""
LLM client facade over OpenRouter (OpenAI-compatible transport; configurable base URL).

The rest of the code should not care which SDK is in use. This module talks to
the gateway with `model` + `messages` and returns the raw reply text plus token usage.

Model identifiers may carry a provider suffix ("base-model:provider"); the request is
then pinned to that provider with fallbacks disabled so comparisons are reproducible.
"""
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging

from openai import OpenAI, OpenAIError

from .config import SETTINGS
from .exceptions import AuthError, UpstreamError

log = logging.getLogger("llm_client")

DEFAULT_MAX_TOKENS = 800
DEFAULT_TEMPERATURE = 0.8


@dataclass
class Completion:
    text: str
    usage: Dict[str, int] = field(default_factory=dict)


def split_model_identifier(model_identifier: str) -> tuple[str, Optional[str]]:
    """'base-model:provider' -> ('base-model', 'provider'); no suffix -> (model, None)."""
    base, sep, provider = model_identifier.partition(":")
    return base, (provider.strip() or None) if sep else None


def request_params(model_identifier: str) -> Dict[str, Any]:
    """Chat-completions kwargs for a model, including per-model tuning and provider pinning."""
    base, provider = split_model_identifier(model_identifier)
    params: Dict[str, Any] = {
        "model": base,
        "max_tokens": DEFAULT_MAX_TOKENS,
        "temperature": DEFAULT_TEMPERATURE,
    }
    # Some models need different parameters
    if "qwen" in base.lower():
        params["max_tokens"] = 1000
        params["temperature"] = 0.7
    if provider:
        params["extra_body"] = {"provider": {"order": [provider], "allow_fallbacks": False}}
    return params


@lru_cache(maxsize=32)
def _client_for(api_key: str) -> OpenAI:
    # Retries are owned by the turn driver; the SDK must fail fast.
    return OpenAI(
        api_key=api_key,
        base_url=SETTINGS.api_base or None,
        timeout=SETTINGS.responses_timeout_s,
        max_retries=0,
        default_headers={"HTTP-Referer": SETTINGS.http_referer, "X-Title": SETTINGS.app_title},
    )


# ------------------------- Chat wrapper -------------------------
def complete(model_identifier: str, messages: List[Dict[str, str]], api_key: Optional[str] = None) -> Completion:
    """Send one chat request and return the reply text.

    Raises AuthError when no key is configured and UpstreamError on any transport
    failure or a body without usable text.
    """
    if not model_identifier:
        raise ValueError("Model is required")
    key = api_key or SETTINGS.llm_api_key
    if not key:
        raise AuthError("No OpenRouter API key available")
    params = request_params(model_identifier)
    log.debug("Requesting %s (params=%s)", model_identifier, {k: v for k, v in params.items() if k != "model"})
    try:
        rsp = _client_for(key).chat.completions.create(messages=messages, **params)
    except OpenAIError as exc:
        raise UpstreamError(f"Model {model_identifier} request failed: {exc}") from exc
    text = _extract_text(rsp, model_identifier)
    return Completion(text=text, usage=_usage_dict(rsp))


def _as_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for c in content:
            if isinstance(c, dict):
                if c.get("type") == "text" and isinstance(c.get("text"), str):
                    parts.append(c["text"])
                continue
            t = getattr(c, "text", None)
            if isinstance(t, str):
                parts.append(t)
        return "\n".join(parts).strip()
    return ""


def _extract_text(rsp: Any, model_identifier: str) -> str:
    """Prefer message.content; some providers put the whole reply in message.reasoning."""
    choices = getattr(rsp, "choices", None)
    message = getattr(choices[0], "message", None) if choices else None
    if message is None:
        raise UpstreamError(f"Invalid response structure from {model_identifier}")
    text = _as_text(getattr(message, "content", None)) or _as_text(getattr(message, "reasoning", None))
    if not text:
        raise UpstreamError(f"No content found in response from {model_identifier}")
    return text


def _usage_dict(rsp: Any) -> Dict[str, int]:
    usage = getattr(rsp, "usage", None)
    if usage is None:
        return {}
    data = usage.model_dump() if hasattr(usage, "model_dump") else usage
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if isinstance(v, int)}
