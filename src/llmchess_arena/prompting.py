"""
Prompt builders and config for LLM move requests using a modular template.

Callers supply optional system instructions and a template string with placeholders
that are substituted per turn: {SIDE_TO_MOVE}, {MOVE_NUMBER}, {FEN}, {LEGAL_MOVES}, {SAN_HISTORY}.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

DEFAULT_TEMPLATE = """You are an expert chess player playing as {SIDE_TO_MOVE}. It's move {MOVE_NUMBER} of the game.

Current position (FEN): {FEN}
Your possible legal moves: {LEGAL_MOVES}
Game history so far: {SAN_HISTORY}

Provide a detailed analysis of the position considering:
1. Material balance and piece activity
2. King safety and pawn structure
3. Tactical opportunities (checks, captures, threats)
4. Strategic plans and positional factors
5. Your opponent's last move and potential threats
6. Candidate moves and their pros/cons

CRITICAL REQUIREMENT: You MUST end your response with your move in this EXACT format. NO EXCEPTIONS:
### MOVE ###
[move]

DO NOT include anything after the move. DO NOT add explanations after the move.
The format "### MOVE ###" followed by your chosen move MUST be the last thing in your response.

EXAMPLE of correct response format:
Looking at the current position, I need to consider my development and central control. The pawn structure is still symmetrical, and both kings are safe. My main candidates are:

1. e4 - This controls the center and opens lines for my pieces
2. Nf3 - Develops a piece and supports central control
3. d4 - Another central pawn move

I think e4 is the strongest choice because it immediately stakes a claim in the center and allows for quick development.

### MOVE ###
e4

REMEMBER: Your move MUST be one of these legal moves: {LEGAL_MOVES}
REMEMBER: You MUST end with "### MOVE ###" followed by your chosen move.
REMEMBER: Nothing should come after your move choice.

Now analyze the position and provide your move:"""


@dataclass
class PromptConfig:
    """Configuration for shaping move prompts using a custom template."""

    template: str = DEFAULT_TEMPLATE
    system_instructions: Optional[str] = None  # sent as a system message when set


def render_custom_prompt(template: str, values: Dict[str, str]) -> str:
    """Replace known placeholders in the template. Unknown tokens are left intact."""
    rendered = template or ""
    for key, val in values.items():
        rendered = rendered.replace(f"{{{key}}}", val)
    return rendered


def build_move_messages(
    side: str,
    move_number: int,
    fen: str,
    legal_moves: Sequence[str],
    history: Sequence[str],
    prompt_cfg: PromptConfig | None = None,
) -> List[Dict[str, str]]:
    """Construct chat messages for one move request."""
    cfg = prompt_cfg or PromptConfig()
    values = {
        "SIDE_TO_MOVE": side,
        "MOVE_NUMBER": str(move_number),
        "FEN": fen,
        "LEGAL_MOVES": ", ".join(legal_moves),
        "SAN_HISTORY": " ".join(history) or "(none)",
    }
    messages: List[Dict[str, str]] = []
    if cfg.system_instructions:
        messages.append({"role": "system", "content": cfg.system_instructions})
    messages.append({"role": "user", "content": render_custom_prompt(cfg.template, values)})
    return messages
