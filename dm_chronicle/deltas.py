"""State delta applier.

Merges one ProposedDelta into a GameState in place, in a fixed order:

  1. item changes       — add to an existing entry (exact name), drop it at <= 0,
                          append new entries only for positive changes
  2. attribute changes  — add to base attributes, creating unknown ones
  3. skill changes      — learn / improve / deteriorate / forget
  4. location update    — overwrite
  5. story flags        — overwrite or insert
  6. skill check        — ParsedAction only: one d20 against the difficulty class

Every step is best-effort: an entry that makes no sense for the current state
is skipped, never an error for the whole delta. The returned summary is the
mechanical context handed to the narrative stage; the skill check outcome is
recorded there and in the report, never in the state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from dm_chronicle.dice import Roller, resolve_skill_check, roll_d20
from dm_chronicle.models import (
    GameState,
    InventoryItem,
    ParsedAction,
    PlayerSkill,
    ProposedDelta,
    SkillCheckResult,
)

logger = logging.getLogger(__name__)


@dataclass
class DeltaReport:
    summary: str
    skill_check: SkillCheckResult | None = None

    def __str__(self) -> str:
        return self.summary


def _signed(value: int) -> str:
    return f"{value:+d}"


def _apply_items(state: GameState, delta: ProposedDelta) -> list[str]:
    applied = []
    for change in delta.item_changes or []:
        name = change.item.strip()
        if not name or change.quantity_change == 0:
            continue
        for i, entry in enumerate(state.inventory):
            if entry.item == name:
                entry.quantity += change.quantity_change
                if entry.quantity <= 0:
                    state.inventory.pop(i)
                break
        else:
            if change.quantity_change <= 0:
                logger.warning("Ignoring removal of unheld item %r", name)
                continue
            state.inventory.append(
                InventoryItem(item=name, quantity=change.quantity_change)
            )
        applied.append(f"{name} {_signed(change.quantity_change)}")
    return applied


def _apply_attributes(state: GameState, delta: ProposedDelta) -> list[str]:
    applied = []
    for change in delta.attribute_changes or []:
        name = change.attribute.strip()
        if not name:
            continue
        if name in state.base_attributes:
            state.base_attributes[name] += change.value_change
        else:
            logger.warning("Delta changes unknown attribute %r; creating it", name)
            state.base_attributes[name] = change.value_change
        applied.append(f"{name} {_signed(change.value_change)}")
    return applied


def _find_skill(state: GameState, name: str) -> int | None:
    for i, skill in enumerate(state.skills):
        if skill.skill_name == name:
            return i
    return None


def _apply_skills(state: GameState, delta: ProposedDelta) -> list[str]:
    applied = []
    for change in delta.skill_changes or []:
        name = change.skill_name.strip()
        if not name:
            continue
        index = _find_skill(state, name)

        if change.type == "learn":
            if index is not None:
                continue
            level = max(0, change.value or 1)
            state.skills.append(PlayerSkill(skill_name=name, level=level))
            applied.append(f"learned {name} (level {level})")
            continue

        if index is None:
            logger.warning("Ignoring %s of unknown skill %r", change.type, name)
            continue
        skill = state.skills[index]

        if change.type == "forget":
            state.skills.pop(index)
            applied.append(f"forgot {name}")
        elif change.value is None:
            continue
        elif change.type == "improve":
            skill.level = max(0, (skill.level or 0) + change.value)
            applied.append(f"{name} improved to {skill.level}")
        elif change.type == "deteriorate":
            skill.level = max(0, (skill.level or 0) - change.value)
            applied.append(f"{name} deteriorated to {skill.level}")
    return applied


def _apply_flags(state: GameState, delta: ProposedDelta) -> list[str]:
    applied = []
    for update in delta.story_flags or []:
        flag = update.flag.strip()
        if not flag:
            continue
        state.flags[flag] = update.value
        applied.append(f"{flag}={update.value!r}")
    return applied


def _describe_check(check: SkillCheckResult) -> str:
    line = (
        f"{check.attribute} check (DC {check.difficulty}): rolled {check.roll} (d20) "
        f"+ {check.modifier} ({check.attribute}) = {check.total}. "
        f"Result: {'success' if check.success else 'failure'}."
    )
    if check.critical == "success":
        line += " Natural 20, a critical success."
    elif check.critical == "failure":
        line += " Natural 1, a critical failure."
    return line


def apply_delta(
    state: GameState,
    delta: ProposedDelta,
    effective_attributes: Mapping[str, int],
    roller: Roller = roll_d20,
) -> DeltaReport:
    """Apply delta to state in place and describe what changed."""
    lines: list[str] = []

    items = _apply_items(state, delta)
    if items:
        lines.append(f"Item changes: {', '.join(items)}.")

    attributes = _apply_attributes(state, delta)
    if attributes:
        lines.append(f"Attribute changes: {', '.join(attributes)}.")

    skills = _apply_skills(state, delta)
    if skills:
        lines.append(f"Skill changes: {'; '.join(skills)}.")

    location = (delta.location_update or "").strip()
    if location:
        state.current_location = location
        lines.append(f"Location update: the player is now at {location}.")

    flags = _apply_flags(state, delta)
    if flags:
        lines.append(f"Story flags: {', '.join(flags)}.")

    check = None
    if isinstance(delta, ParsedAction):
        request = delta.skill_check_request()
        if request is not None:
            check = resolve_skill_check(
                request.attribute,
                request.difficulty,
                effective_attributes.get(request.attribute, 0),
                roller(),
            )
            lines.append(_describe_check(check))

    return DeltaReport(summary="\n".join(lines), skill_check=check)
