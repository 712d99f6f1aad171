"""Character creation — point allocation, customization defaults, intro narration.

Every scenario attribute starts at BASE_ATTRIBUTE_VALUE. The player spends
exactly TOTAL_BONUS_POINTS on top of that and may not lower any attribute
below the base. Each customization category takes exactly one option,
defaulting to the category's first option.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from dm_chronicle.errors import CharacterError
from dm_chronicle.models import DialogueEntry, GameState, PlayerSkill, Scenario

BASE_ATTRIBUTE_VALUE = 5
TOTAL_BONUS_POINTS = 10


def default_attributes(scenario: Scenario) -> dict[str, int]:
    return {name: BASE_ATTRIBUTE_VALUE for name in scenario.attributes}


def default_customizations(scenario: Scenario) -> dict[str, str]:
    """First option of every category that has any."""
    selections = {}
    for key, category in scenario.customizations.items():
        first = next(iter(category.options), None)
        if first is not None:
            selections[key] = first
    return selections


def validate_allocation(scenario: Scenario, base_attributes: Mapping[str, int]) -> None:
    """Raise CharacterError unless base_attributes is a complete, fully spent allocation."""
    expected = set(scenario.attributes)
    given = set(base_attributes)
    if given != expected:
        missing = sorted(expected - given)
        unknown = sorted(given - expected)
        raise CharacterError(
            f"Attributes must match the scenario (missing: {missing}, unknown: {unknown})"
        )
    for name, value in base_attributes.items():
        if value < BASE_ATTRIBUTE_VALUE:
            raise CharacterError(
                f"Attribute {name} cannot be below the base value {BASE_ATTRIBUTE_VALUE}"
            )
    spent = sum(v - BASE_ATTRIBUTE_VALUE for v in base_attributes.values())
    if spent != TOTAL_BONUS_POINTS:
        raise CharacterError(
            f"Exactly {TOTAL_BONUS_POINTS} bonus points must be allocated, got {spent}"
        )


def _resolve_customizations(
    scenario: Scenario, overrides: Mapping[str, str] | None
) -> dict[str, str]:
    selections = default_customizations(scenario)
    for key, option in (overrides or {}).items():
        category = scenario.customizations.get(key)
        if category is None:
            raise CharacterError(f"Unknown customization category: {key}")
        if option not in category.options:
            raise CharacterError(f"Unknown option {option!r} for {key}")
        selections[key] = option
    return selections


def _starting_skills(scenario: Scenario, names: Iterable[str] | None) -> list[PlayerSkill]:
    skills: list[PlayerSkill] = []
    for name in names or []:
        base = scenario.skills.get(name)
        if base is None:
            raise CharacterError(f"Unknown skill: {name}")
        if any(s.skill_name == name for s in skills):
            continue
        skills.append(PlayerSkill(skill_name=name, level=1, description=base.description))
    return skills


def intro_text(
    scenario: Scenario,
    character_name: str,
    base_attributes: Mapping[str, int],
    selections: Mapping[str, str],
    skills: list[PlayerSkill],
) -> str:
    """The opening narrator message summarising the new character."""
    lines = [
        f"Welcome to your new adventure, {character_name}!",
        "",
        f'Your story begins at "{scenario.starting_point}".',
        "",
        "Your attributes:",
    ]
    lines.extend(f"- {name}: {value}" for name, value in base_attributes.items())

    if selections:
        lines += ["", "Your background:"]
        for key, option_key in selections.items():
            category = scenario.customizations.get(key)
            if category is None or option_key not in category.options:
                continue
            option = category.options[option_key]
            lines.append(f"- {category.description or key}: {option_key} - {option.description}")
            if option.attribute_bonus:
                bonuses = ", ".join(f"{attr} {bonus:+d}" for attr, bonus in option.attribute_bonus.items())
                lines.append(f"  (attribute bonus: {bonuses})")

    if skills:
        lines += ["", "Your starting skills:"]
        for skill in skills:
            base = scenario.skills.get(skill.skill_name)
            governing = base.attribute if base else "unknown"
            lines.append(f"- {skill.skill_name}: {skill.description or ''} (governed by {governing})")

    lines += ["", "Are you ready to begin your journey?"]
    return "\n".join(lines)


def new_game_state(
    scenario: Scenario,
    character_name: str,
    base_attributes: Mapping[str, int] | None = None,
    selected_customizations: Mapping[str, str] | None = None,
    skills: Iterable[str] | None = None,
) -> GameState:
    """Build the initial game state for a freshly created character."""
    name = character_name.strip()
    if not name:
        raise CharacterError("Character name must not be empty")

    if base_attributes is None:
        attributes = default_attributes(scenario)
    else:
        validate_allocation(scenario, base_attributes)
        attributes = {k: base_attributes[k] for k in scenario.attributes}

    selections = _resolve_customizations(scenario, selected_customizations)
    starting_skills = _starting_skills(scenario, skills)

    intro = DialogueEntry(
        role="narrator",
        text=intro_text(scenario, name, attributes, selections, starting_skills),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    return GameState(
        scenario_id=scenario.id,
        scenario_name=scenario.name,
        base_attributes=attributes,
        selected_customizations=selections,
        current_location=scenario.starting_point,
        character_name=name,
        inventory=[],
        skills=starting_skills,
        flags={},
        dialogue_history=[intro],
    )
