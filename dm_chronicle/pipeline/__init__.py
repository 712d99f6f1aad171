"""Turn-resolution pipeline.

Executes the full turn loop for one player action:
  1. Load the game, check ownership and the scenario, compute effective attributes.
  2. Append the player's action to the dialogue history.
  3. parse_intent   — LLM returns a ParsedAction (JSON); apply it, including
                      any d20 skill check; recompute effective attributes.
  4. narrative      — LLM narrates the action, given history and the mechanics
                      summary from step 3 (prose only).
  5. extract_delta  — LLM reads the narration back and returns a ProposedDelta
                      (JSON, no skill check); apply it.
  6. Append the narration as a narrator entry.
  7. Persist with a version check and return a TurnResult.

Stages never run concurrently and none is skipped; an empty delta is simply a
no-op. A narration failure at any stage degrades the turn: a placeholder
narrator entry is written and the state is still saved.

Turns on the same game are serialised by a per-game asyncio.Lock.
"""

from .core import NARRATOR_UNAVAILABLE, resolve_turn  # noqa: F401
from .stages import (  # noqa: F401
    EMPTY_NARRATIVE,
    extract_delta,
    generate_narrative,
    parse_intent,
)
