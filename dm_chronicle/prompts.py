"""Handlebars prompt rendering for the three narration stages."""

import json
from collections.abc import Callable, Mapping
from typing import Any

import pybars

from dm_chronicle.models import GameState, ParsedAction, ProposedDelta, Scenario

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_json(this, value):
    """{{{json value}}} — compact JSON dump of a context value."""
    return json.dumps(value, ensure_ascii=False)


_HELPERS: dict[str, Callable] = {
    "json": _helper_json,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

_STATE_BLOCK = """\
## Current Game State
Scenario: {{{scenario_name}}}
Character: {{{character_name}}}
Location: {{{location}}}
Attributes: {{{json attributes}}}
Inventory: {{{json inventory}}}
Skills: {{{json skills}}}
Story progress: {{{json flags}}}
"""

PARSE_INTENT_PROMPT = """\
You are an analysis assistant for a tabletop role-playing game. Read the \
player's action and identify their intent, the type of action, its target, \
the attribute it relies on and any state changes the action directly causes \
(items gained or spent, attributes, skills, location, story flags).

When the outcome of the action is uncertain, set requires_dice_roll to true \
and give relevant_attribute (one of the character's attributes) and \
difficulty_class (usually 10-20).

""" + _STATE_BLOCK + """
## JSON Schema
{{{schema}}}

Return exactly one JSON object matching the schema, with no other text or \
markdown. Omit fields or use empty arrays when nothing changes. If \
action_type is "skill_check", always provide relevant_attribute and \
difficulty_class.\
"""

NARRATIVE_PROMPT = """\
You are an experienced, witty and inventive Dungeon Master running the \
scenario "{{{scenario_name}}}".
{{#if scenario_description}}
{{{scenario_description}}}
{{/if}}
The story began at: {{{starting_point}}}

Narrate what happens in response to the player's latest action. Weave the \
mechanics already resolved this turn into the story: how the character's \
attributes and skills shaped the attempt, items found or used, where they \
are now, and any story milestones. Report outcomes and consequences; never \
ask the player to roll dice or make any explicit game-mechanics choice.

## Resolved This Turn
{{#if mechanics}}
{{{mechanics}}}
{{else}}
No mechanical changes.
{{/if}}

""" + _STATE_BLOCK + """
## Output Requirements
1. Prose only. No JSON, lists of stats or other structured data.
2. A short but complete scene: what the character does, how the world \
reacts, and a natural opening for the next decision.
3. Keep it within about {{length_hint}} tokens.
4. Guide through description rather than offering numbered options.
5. If a check was made, state clearly whether it succeeded or failed.
6. Keep a light touch of humour.\
"""

EXTRACT_DELTA_PROMPT = """\
You are a precise state parser. The user message is a passage of Dungeon \
Master narration. Extract only the explicit game-state changes it describes: \
items gained or lost, attribute changes, skills learned, forgotten, improved \
or deteriorated, a change of location, and story-flag updates.

""" + _STATE_BLOCK + """
The state above is for reference only; base every change on the narration.

## JSON Schema
{{{schema}}}

Return exactly one JSON object matching the schema, with no other text or \
markdown. If the narration describes no state changes, return {}.\
"""


def _schema_text(model: type) -> str:
    return json.dumps(model.model_json_schema(), indent=2)


PARSE_INTENT_SCHEMA = _schema_text(ParsedAction)
EXTRACT_DELTA_SCHEMA = _schema_text(ProposedDelta)


# ── Context building ─────────────────────────────────────


def build_context(
    state: GameState,
    scenario: Scenario,
    effective_attributes: Mapping[str, int],
    mechanics: str | None = None,
    length_hint: int | None = None,
    schema: str | None = None,
) -> dict[str, Any]:
    """Assemble template variables from game state.

    Returns a dict suitable for passing to render_prompt().
    """
    ctx: dict[str, Any] = {
        "scenario_name": scenario.name,
        "scenario_description": scenario.description,
        "starting_point": scenario.starting_point,
        "character_name": state.character_name or "the adventurer",
        "location": state.current_location,
        "attributes": dict(effective_attributes),
        "inventory": [i.model_dump() for i in state.inventory],
        "skills": [s.model_dump(exclude_none=True) for s in state.skills],
        "flags": dict(state.flags),
    }
    if mechanics is not None:
        ctx["mechanics"] = mechanics
    if length_hint is not None:
        ctx["length_hint"] = length_hint
    if schema is not None:
        ctx["schema"] = schema
    return ctx
