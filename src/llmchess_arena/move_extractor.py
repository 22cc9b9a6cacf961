"""
Move extraction for free-form LLM replies.

Runs an ordered cascade of strategies over the reply and returns the first
candidate that matches an entry of the legal-move list:
- "delimiter": the token after a '### MOVE ###' marker.
- "bracketed": a token in square brackets, e.g. [Nf3].
- "trailing_line": scanning lines upwards, the first SAN token that is legal.
- "tail_window": the first legal move found in the last three non-empty lines.
- "anywhere": the first legal move found anywhere in the reply.

Comparison ignores trailing check/mate marks (+/#) and accepts zero-castling (0-0).
A non-None result always carries a move taken from the legal list itself.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

log = logging.getLogger("move_extractor")

RESIGN = "resign"

MARKER_RE = re.compile(r"###\s*MOVE\s*###", re.I)
DELIMITED_RE = re.compile(r"###\s*MOVE\s*###\s*([^\n\r]+)", re.I)
BRACKET_RE = re.compile(r"\[([^\[\]\r\n]{1,24})\]")
SAN_RE = re.compile(
    r"(?<![A-Za-z0-9])"
    r"(?:O-O-O|O-O|0-0-0|0-0|[KQRBN][a-h]?[1-8]?x?[a-h][1-8]|[a-h](?:x[a-h])?[1-8](?:=?[QRBNqrbn])?)"
    r"[+#]?(?![A-Za-z0-9])"
)
MOVE_NUMBER_RE = re.compile(r"^\d+\s*\.+\s*")
CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}
PROMOTION_RE = re.compile(r"^([a-h](?:x[a-h])?[18])=?([QRBNqrbn])$")

_TOKEN_PUNCT = " \t*_`'\"[](){}<>.,;:!?"
TAIL_WINDOW_LINES = 3


@dataclass(frozen=True)
class ExtractResult:
    move: str
    thinking: str
    strategy: str


Strategy = Callable[[str, Sequence[str]], Optional[ExtractResult]]


def strip_annotations(token: str) -> str:
    return token.rstrip("+#")


def _normalize(token: str) -> str:
    bare = strip_annotations(token.strip())
    promo = PROMOTION_RE.match(bare)
    if promo:
        return f"{promo.group(1)}={promo.group(2).upper()}"
    return CASTLE_ZERO.get(bare, bare)


def match_legal(token: str, legal_moves: Sequence[str]) -> Optional[str]:
    """Return the legal-list entry equal to token, ignoring +/# marks; None if absent."""
    if token in legal_moves:
        return token
    wanted = _normalize(token)
    if not wanted:
        return None
    for mv in legal_moves:
        if _normalize(mv) == wanted:
            return mv
    return None


def _clean_token(raw: str) -> str:
    """First word of a marker/bracket payload, without markdown, quotes or a move number."""
    text = raw.strip().strip(_TOKEN_PUNCT)
    text = MOVE_NUMBER_RE.sub("", text)
    words = text.split()
    return words[0].strip(_TOKEN_PUNCT) if words else ""


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def _remove_token(text: str, token: str) -> str:
    pattern = r"(?<![A-Za-z0-9])" + re.escape(token) + r"(?![A-Za-z0-9])"
    return re.sub(pattern, "", text).strip()


def _first_legal_in(fragment: str, legal_moves: Sequence[str]) -> Optional[str]:
    cleaned = _clean_token(fragment)
    mv = match_legal(cleaned, legal_moves) if cleaned else None
    if mv:
        return mv
    for m in SAN_RE.finditer(fragment):
        mv = match_legal(m.group(0), legal_moves)
        if mv:
            return mv
    return None


# ------------------------- Strategies -------------------------
def from_delimiter(text: str, legal_moves: Sequence[str]) -> Optional[ExtractResult]:
    # Last marker wins; earlier ones are usually echoed format examples.
    for m in reversed(list(DELIMITED_RE.finditer(text))):
        mv = _first_legal_in(m.group(1), legal_moves)
        if mv:
            thinking = text[: m.start()].strip()
            return ExtractResult(mv, thinking or "Model provided a move but no analysis was included.", "delimiter")
    return None


def from_brackets(text: str, legal_moves: Sequence[str]) -> Optional[ExtractResult]:
    for m in BRACKET_RE.finditer(text):
        mv = match_legal(_clean_token(m.group(1)), legal_moves)
        if mv:
            thinking = (text[: m.start()] + text[m.end():]).strip()
            return ExtractResult(mv, thinking or "Model provided a move in brackets but no detailed analysis.", "bracketed")
    return None


def from_trailing_lines(text: str, legal_moves: Sequence[str]) -> Optional[ExtractResult]:
    lines = _non_empty_lines(text)
    for idx in range(len(lines) - 1, -1, -1):
        for m in SAN_RE.finditer(lines[idx]):
            mv = match_legal(m.group(0), legal_moves)
            if mv:
                thinking = "\n".join(lines[:idx]).strip()
                return ExtractResult(mv, thinking or "Model provided a move at the end but limited analysis was found.", "trailing_line")
    return None


def from_tail_window(text: str, legal_moves: Sequence[str]) -> Optional[ExtractResult]:
    window = " ".join(_non_empty_lines(text)[-TAIL_WINDOW_LINES:])
    for mv in legal_moves:
        bare = strip_annotations(mv)
        if bare and bare in window:
            thinking = _remove_token(text, bare)
            return ExtractResult(mv, thinking or "Model provided a move but analysis extraction was limited.", "tail_window")
    return None


def from_anywhere(text: str, legal_moves: Sequence[str]) -> Optional[ExtractResult]:
    for mv in legal_moves:
        bare = strip_annotations(mv)
        if bare and bare in text:
            return ExtractResult(mv, text.strip() or "Move found in response but detailed analysis extraction failed.", "anywhere")
    return None


STRATEGIES: tuple[Strategy, ...] = (
    from_delimiter,
    from_brackets,
    from_trailing_lines,
    from_tail_window,
    from_anywhere,
)


def extract(response_text: str, legal_moves: Sequence[str], strategies: Sequence[Strategy] = STRATEGIES) -> Optional[ExtractResult]:
    """Return the first strategy hit whose move is in legal_moves, or None when nothing matches."""
    if not response_text or not legal_moves:
        return None
    for strategy in strategies:
        result = strategy(response_text, legal_moves)
        if result is not None:
            log.debug("Extracted %s via %s", result.move, result.strategy)
            return result
    log.debug("No legal move found in reply (%d chars)", len(response_text))
    return None


def find_resignation(response_text: str) -> bool:
    """True when the last marker, or the last bracket on the final line, carries the literal word 'resign'."""
    if not response_text:
        return False
    delimited = list(DELIMITED_RE.finditer(response_text))
    if delimited:
        return _clean_token(delimited[-1].group(1)).lower() == RESIGN
    # Without a marker only a bracket closing out the reply counts.
    lines = _non_empty_lines(response_text)
    brackets = list(BRACKET_RE.finditer(lines[-1])) if lines else []
    return bool(brackets) and _clean_token(brackets[-1].group(1)).lower() == RESIGN


__all__ = [
    "ExtractResult",
    "STRATEGIES",
    "extract",
    "find_resignation",
    "match_legal",
    "strip_annotations",
]
