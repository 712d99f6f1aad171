"""The three narration-service stages of a turn.

Each stage builds its messages, makes exactly one LLM call and returns a typed
value. Any failure — transport, template or structured output that does not
match the schema — is raised as LLMError for the orchestrator to degrade.
"""

import json
import logging
from collections.abc import Mapping

from pydantic import BaseModel, ValidationError

from dm_chronicle.llm import LLM, ChatMessage, LLMError
from dm_chronicle.models import (
    DialogueEntry,
    GameState,
    ParsedAction,
    ProposedDelta,
    Scenario,
)
from dm_chronicle.prompts import (
    EXTRACT_DELTA_PROMPT,
    EXTRACT_DELTA_SCHEMA,
    NARRATIVE_PROMPT,
    PARSE_INTENT_PROMPT,
    PARSE_INTENT_SCHEMA,
    PromptError,
    build_context,
    render_prompt,
)

logger = logging.getLogger(__name__)

EMPTY_NARRATIVE = "The narrator is momentarily lost for words. The story continues..."


def _parse_json_output(text: str) -> dict:
    """Parse a JSON object from LLM output, stripping markdown fences."""
    if not isinstance(text, str):
        raise LLMError(f"Narration backend returned {type(text).__name__}, expected text")
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    if not cleaned:
        return {}
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise LLMError(f"Structured output is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError(f"Structured output must be a JSON object, got {type(data).__name__}")
    return data


def _validate(model: type[BaseModel], data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise LLMError(f"Structured output does not match the {model.__name__} schema: {e}") from e


def _render(template: str, ctx: dict) -> str:
    try:
        return render_prompt(template, ctx)
    except PromptError as e:
        raise LLMError(str(e)) from e


async def parse_intent(
    llm: LLM,
    action: str,
    state: GameState,
    scenario: Scenario,
    effective_attributes: Mapping[str, int],
) -> ParsedAction:
    """Stage 1: turn the player's free text into a ParsedAction."""
    ctx = build_context(state, scenario, effective_attributes, schema=PARSE_INTENT_SCHEMA)
    messages: list[ChatMessage] = [
        {"role": "system", "content": _render(PARSE_INTENT_PROMPT, ctx)},
        {"role": "user", "content": action},
    ]
    text = await llm("parse_intent", messages, json_output=True)
    parsed = _validate(ParsedAction, _parse_json_output(text))
    logger.debug("parsed intent type=%s roll=%s", parsed.action_type, parsed.requires_dice_roll)
    return parsed


async def generate_narrative(
    llm: LLM,
    history: list[DialogueEntry],
    action: str,
    mechanics: str,
    state: GameState,
    scenario: Scenario,
    effective_attributes: Mapping[str, int],
    history_window: int = 0,
    length_hint: int = 600,
) -> str:
    """Stage 2: free-form narration of the action and its resolved mechanics.

    `history` is the dialogue before this turn's player entry; the action is
    sent as the final user message. history_window > 0 keeps only the most
    recent entries.
    """
    ctx = build_context(
        state, scenario, effective_attributes,
        mechanics=mechanics, length_hint=length_hint,
    )
    recent = history[-history_window:] if history_window > 0 else history
    messages: list[ChatMessage] = [
        {"role": "system", "content": _render(NARRATIVE_PROMPT, ctx)},
    ]
    for entry in recent:
        messages.append({
            "role": "user" if entry.role == "player" else "assistant",
            "content": entry.text,
        })
    messages.append({"role": "user", "content": action})

    text = await llm("narrative", messages)
    if not isinstance(text, str):
        raise LLMError(f"Narration backend returned {type(text).__name__}, expected text")
    text = text.strip()
    return text or EMPTY_NARRATIVE


async def extract_delta(
    llm: LLM,
    narrative: str,
    state: GameState,
    scenario: Scenario,
    effective_attributes: Mapping[str, int],
) -> ProposedDelta:
    """Stage 3: pull the state changes implied by the narration."""
    ctx = build_context(state, scenario, effective_attributes, schema=EXTRACT_DELTA_SCHEMA)
    messages: list[ChatMessage] = [
        {"role": "system", "content": _render(EXTRACT_DELTA_PROMPT, ctx)},
        {"role": "user", "content": narrative},
    ]
    text = await llm("extract_delta", messages, json_output=True)
    return _validate(ProposedDelta, _parse_json_output(text))
