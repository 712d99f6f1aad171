"""Tests for the state delta applier."""

import logging
import random

from dm_chronicle.deltas import apply_delta
from dm_chronicle.models import (
    GameState,
    InventoryItem,
    ParsedAction,
    PlayerSkill,
    ProposedDelta,
)


def _state(**overrides) -> GameState:
    data = {
        "scenario_id": "goblin-market",
        "scenario_name": "The Goblin Market",
        "base_attributes": {"Strength": 5, "Agility": 5},
        "selected_customizations": {"upbringing": "Dockside Urchin"},
        "current_location": "The gate",
        "character_name": "Wren",
    }
    data.update(overrides)
    return GameState.model_validate(data)


def _never_roll() -> int:
    raise AssertionError("no roll expected")


# ── No-op deltas ─────────────────────────────────────────


def test_empty_delta_changes_nothing():
    state = _state(
        inventory=[{"item": "sword", "quantity": 1}],
        skills=[{"skill_name": "Stealth", "level": 2}],
        flags={"door_open": True},
    )
    before = state.model_dump()
    report = apply_delta(state, ProposedDelta(), {"Strength": 5}, roller=_never_roll)
    assert state.model_dump() == before
    assert report.summary == ""
    assert report.skill_check is None


def test_empty_lists_and_nulls_change_nothing():
    state = _state()
    before = state.model_dump()
    delta = ProposedDelta.model_validate({
        "item_changes": [], "attribute_changes": None, "skill_changes": [],
        "location_update": None, "story_flags": [],
    })
    apply_delta(state, delta, {}, roller=_never_roll)
    assert state.model_dump() == before


def test_empty_parsed_action_changes_nothing():
    state = _state()
    before = state.model_dump()
    apply_delta(state, ParsedAction(), {}, roller=_never_roll)
    assert state.model_dump() == before


# ── Items ────────────────────────────────────────────────


def test_removing_last_item_drops_entry():
    state = _state(inventory=[{"item": "sword", "quantity": 1}])
    apply_delta(state, ProposedDelta(item_changes=[{"item": "sword", "quantity_change": -1}]), {})
    assert state.inventory == []


def test_overdrawn_item_drops_entry():
    state = _state(inventory=[{"item": "arrows", "quantity": 3}])
    apply_delta(state, ProposedDelta(item_changes=[{"item": "arrows", "quantity_change": -10}]), {})
    assert state.inventory == []


def test_item_added_to_existing_entry():
    state = _state(inventory=[{"item": "arrows", "quantity": 3}])
    apply_delta(state, ProposedDelta(item_changes=[{"item": "arrows", "quantity_change": 2}]), {})
    assert state.inventory == [InventoryItem(item="arrows", quantity=5)]


def test_new_item_appended_in_order():
    state = _state(inventory=[{"item": "rope", "quantity": 1}])
    delta = ProposedDelta(item_changes=[
        {"item": "lantern", "quantity_change": 1},
        {"item": "coins", "quantity_change": 12},
    ])
    apply_delta(state, delta, {})
    assert [i.item for i in state.inventory] == ["rope", "lantern", "coins"]


def test_removing_unheld_item_is_noop():
    state = _state()
    report = apply_delta(state, ProposedDelta(item_changes=[{"item": "ghost", "quantity_change": -2}]), {})
    assert state.inventory == []
    assert report.summary == ""


def test_item_match_is_exact():
    state = _state(inventory=[{"item": "Sword", "quantity": 1}])
    apply_delta(state, ProposedDelta(item_changes=[{"item": "sword", "quantity_change": 1}]), {})
    assert [(i.item, i.quantity) for i in state.inventory] == [("Sword", 1), ("sword", 1)]


def test_inventory_never_holds_non_positive_quantities():
    rng = random.Random(1234)
    names = ["sword", "rope", "coins", "torch"]
    state = _state()
    for _ in range(300):
        changes = [
            {"item": rng.choice(names), "quantity_change": rng.randint(-4, 4)}
            for _ in range(rng.randint(0, 4))
        ]
        apply_delta(state, ProposedDelta(item_changes=changes), {})
        assert all(entry.quantity > 0 for entry in state.inventory)
        assert len({entry.item for entry in state.inventory}) == len(state.inventory)


# ── Attributes ───────────────────────────────────────────


def test_attribute_change_updates_base():
    state = _state()
    apply_delta(state, ProposedDelta(attribute_changes=[{"attribute": "Strength", "value_change": -2}]), {})
    assert state.base_attributes["Strength"] == 3


def test_unknown_attribute_created_with_warning(caplog):
    state = _state()
    with caplog.at_level(logging.WARNING, logger="dm_chronicle.deltas"):
        apply_delta(state, ProposedDelta(attribute_changes=[{"attribute": "Luck", "value_change": 2}]), {})
    assert state.base_attributes["Luck"] == 2
    assert "Luck" in caplog.text


# ── Skills ───────────────────────────────────────────────


def test_learning_twice_does_not_duplicate():
    state = _state()
    delta = ProposedDelta(skill_changes=[{"skill_name": "stealth", "type": "learn", "value": 1}])
    apply_delta(state, delta, {})
    apply_delta(state, delta, {})
    assert state.skills == [PlayerSkill(skill_name="stealth", level=1)]


def test_learn_defaults_to_level_one():
    state = _state()
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Haggling", "type": "learn"}]), {})
    assert state.skills[0].level == 1


def test_learn_uses_given_level():
    state = _state()
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Haggling", "type": "learn", "value": 3}]), {})
    assert state.skills[0].level == 3


def test_improve_adds_to_level():
    state = _state(skills=[{"skill_name": "Stealth", "level": 2}])
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "improve", "value": 2}]), {})
    assert state.skills[0].level == 4


def test_improve_skill_without_level_starts_from_zero():
    state = _state(skills=[{"skill_name": "Stealth"}])
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "improve", "value": 1}]), {})
    assert state.skills[0].level == 1


def test_improve_unknown_skill_is_noop():
    state = _state()
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "improve", "value": 1}]), {})
    assert state.skills == []


def test_deteriorate_floors_at_zero():
    state = _state(skills=[{"skill_name": "Stealth", "level": 2}])
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "deteriorate", "value": 5}]), {})
    assert state.skills[0].level == 0


def test_forget_removes_skill():
    state = _state(skills=[{"skill_name": "Stealth", "level": 2}, {"skill_name": "Haggling", "level": 1}])
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "forget"}]), {})
    assert [s.skill_name for s in state.skills] == ["Haggling"]


def test_forget_unknown_skill_is_noop():
    state = _state(skills=[{"skill_name": "Haggling", "level": 1}])
    apply_delta(state, ProposedDelta(skill_changes=[{"skill_name": "Stealth", "type": "forget"}]), {})
    assert [s.skill_name for s in state.skills] == ["Haggling"]


def test_skill_names_stay_unique():
    rng = random.Random(99)
    names = ["Stealth", "Haggling", "Appraisal"]
    ops = ["learn", "forget", "improve", "deteriorate"]
    state = _state()
    for _ in range(300):
        changes = [
            {"skill_name": rng.choice(names), "type": rng.choice(ops), "value": rng.randint(0, 3)}
            for _ in range(rng.randint(0, 3))
        ]
        apply_delta(state, ProposedDelta(skill_changes=changes), {})
        skill_names = [s.skill_name for s in state.skills]
        assert len(skill_names) == len(set(skill_names))
        assert all((s.level or 0) >= 0 for s in state.skills)


# ── Location and flags ───────────────────────────────────


def test_location_overwritten():
    state = _state()
    report = apply_delta(state, ProposedDelta(location_update="The cheese stall"), {})
    assert state.current_location == "The cheese stall"
    assert "The cheese stall" in report.summary


def test_blank_location_ignored():
    state = _state()
    apply_delta(state, ProposedDelta(location_update="  "), {})
    assert state.current_location == "The gate"


def test_story_flags_overwrite_and_insert():
    state = _state(flags={"quest": "started"})
    delta = ProposedDelta(story_flags=[
        {"flag": "quest", "value": "complete"},
        {"flag": "door_unlocked", "value": True},
        {"flag": "coins_owed", "value": 12},
    ])
    apply_delta(state, delta, {})
    assert state.flags == {"quest": "complete", "door_unlocked": True, "coins_owed": 12}


# ── Skill check ──────────────────────────────────────────


def _check_action(**fields) -> ParsedAction:
    data = {
        "requested_action": "climb the wall",
        "action_type": "skill_check",
        "relevant_attribute": "Agility",
        "difficulty_class": 17,
        "requires_dice_roll": True,
    }
    data.update(fields)
    return ParsedAction.model_validate(data)


def test_skill_check_uses_effective_attributes():
    state = _state()
    report = apply_delta(state, _check_action(), {"Agility": 3}, roller=lambda: 15)
    assert report.skill_check.success is True
    assert report.skill_check.total == 18
    assert "Agility check (DC 17)" in report.summary
    assert "success" in report.summary


def test_skill_check_natural_one_fails():
    state = _state()
    report = apply_delta(
        state, _check_action(difficulty_class=5, relevant_attribute="Strength"),
        {"Strength": 10}, roller=lambda: 1,
    )
    assert report.skill_check.success is False
    assert report.skill_check.critical == "failure"


def test_skill_check_missing_attribute_counts_as_zero():
    state = _state()
    report = apply_delta(state, _check_action(relevant_attribute="Luck"), {"Agility": 9}, roller=lambda: 16)
    assert report.skill_check.modifier == 0
    assert report.skill_check.success is False


def test_skill_check_not_written_to_state():
    state = _state()
    before = state.model_dump()
    apply_delta(state, _check_action(), {"Agility": 3}, roller=lambda: 15)
    assert state.model_dump() == before


def test_incomplete_check_request_does_not_roll():
    state = _state()
    for action in (
        _check_action(requires_dice_roll=False),
        _check_action(relevant_attribute=None),
        _check_action(difficulty_class=None),
    ):
        report = apply_delta(state, action, {"Agility": 3}, roller=_never_roll)
        assert report.skill_check is None


def test_plain_delta_never_rolls():
    state = _state()
    delta = ProposedDelta.model_validate({
        "requires_dice_roll": True, "relevant_attribute": "Agility", "difficulty_class": 10,
    })
    report = apply_delta(state, delta, {"Agility": 3}, roller=_never_roll)
    assert report.skill_check is None


# ── Ordering and summary ─────────────────────────────────


def test_summary_lists_changes_in_fixed_order():
    state = _state()
    action = _check_action(
        item_changes=[{"item": "rope", "quantity_change": 1}],
        attribute_changes=[{"attribute": "Agility", "value_change": 1}],
        skill_changes=[{"skill_name": "Climbing", "type": "learn"}],
        location_update="The wall top",
        story_flags=[{"flag": "wall_climbed", "value": True}],
    )
    report = apply_delta(state, action, {"Agility": 6}, roller=lambda: 12)
    lines = report.summary.split("\n")
    assert [line.split(":")[0] for line in lines] == [
        "Item changes",
        "Attribute changes",
        "Skill changes",
        "Location update",
        "Story flags",
        "Agility check (DC 17)",
    ]
    assert str(report) == report.summary
