"""Tests for Handlebars prompt rendering and context building."""

import json

import pytest

from dm_chronicle import storage
from dm_chronicle.characters import new_game_state
from dm_chronicle.models import InventoryItem
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


@pytest.fixture
def game():
    scenario = storage.get_scenario("goblin-market")
    state = new_game_state(scenario, "Wren", skills=["Stealth"])
    state.inventory = [InventoryItem(item="Copper coins", quantity=12)]
    state.flags = {"met_gatekeeper": True}
    return state, scenario


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "Wren"}) == "Hello Wren!"


def test_triple_stash_does_not_escape():
    assert render_prompt("{{{text}}}", {"text": "a & b"}) == "a & b"


def test_json_helper():
    out = render_prompt("{{{json value}}}", {"value": {"Strength": 5}})
    assert json.loads(out) == {"Strength": 5}


def test_if_block():
    tpl = "{{#if mechanics}}M: {{mechanics}}{{else}}none{{/if}}"
    assert render_prompt(tpl, {"mechanics": "roll"}) == "M: roll"
    assert render_prompt(tpl, {}) == "none"


def test_bad_template_raises_prompt_error():
    with pytest.raises(PromptError):
        render_prompt("{{#if x}}unclosed", {"x": True})


def test_build_context(game):
    state, scenario = game
    ctx = build_context(state, scenario, {"Strength": 5, "Agility": 7})
    assert ctx["scenario_name"] == "The Goblin Market"
    assert ctx["character_name"] == "Wren"
    assert ctx["location"] == scenario.starting_point
    assert ctx["attributes"] == {"Strength": 5, "Agility": 7}
    assert ctx["inventory"] == [{"item": "Copper coins", "quantity": 12}]
    assert ctx["skills"][0]["skill_name"] == "Stealth"
    assert ctx["flags"] == {"met_gatekeeper": True}
    assert "mechanics" not in ctx
    assert "schema" not in ctx


def test_build_context_without_character_name(game):
    state, scenario = game
    state.character_name = ""
    assert build_context(state, scenario, {})["character_name"] == "the adventurer"


def test_parse_intent_prompt_includes_state_and_schema(game):
    state, scenario = game
    ctx = build_context(state, scenario, {"Agility": 7}, schema=PARSE_INTENT_SCHEMA)
    out = render_prompt(PARSE_INTENT_PROMPT, ctx)
    assert "Character: Wren" in out
    assert "Copper coins" in out
    assert '"requires_dice_roll"' in out
    assert "{{" not in out


def test_narrative_prompt_includes_mechanics_and_length(game):
    state, scenario = game
    ctx = build_context(
        state, scenario, {"Agility": 7},
        mechanics="Agility check (DC 12): rolled 14 (d20) + 7 (Agility) = 21. Result: success.",
        length_hint=450,
    )
    out = render_prompt(NARRATIVE_PROMPT, ctx)
    assert "The Goblin Market" in out
    assert "Agility check (DC 12)" in out
    assert "about 450 tokens" in out
    assert "never ask the player to roll dice" in out


def test_narrative_prompt_without_mechanics(game):
    state, scenario = game
    ctx = build_context(state, scenario, {}, mechanics="", length_hint=600)
    assert "No mechanical changes." in render_prompt(NARRATIVE_PROMPT, ctx)


def test_extract_delta_prompt_includes_schema(game):
    state, scenario = game
    ctx = build_context(state, scenario, {}, schema=EXTRACT_DELTA_SCHEMA)
    out = render_prompt(EXTRACT_DELTA_PROMPT, ctx)
    assert '"item_changes"' in out
    assert "return {}" in out
