"""Core domain models.

All pipeline stages and storage functions operate on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Story flags hold scalars only, so persistence and comparison stay well-defined.
FlagValue = bool | int | float | str

DialogueRole = Literal["player", "narrator"]

SkillChangeType = Literal["learn", "forget", "improve", "deteriorate"]

ActionType = Literal[
    "movement",
    "interaction",
    "combat",
    "skill_check",
    "item_use",
    "query",
    "other",
]


# ---------------------------------------------------------------------------
# Scenario catalog
# ---------------------------------------------------------------------------

class CustomizationOption(BaseModel):
    description: str = ""
    attribute_bonus: dict[str, int] = Field(default_factory=dict)


class CustomizationCategory(BaseModel):
    description: str = ""
    options: dict[str, CustomizationOption] = Field(default_factory=dict)


class BaseSkill(BaseModel):
    attribute: str  # governing attribute name
    description: str = ""


class Scenario(BaseModel):
    """A static setting template. Read-only once loaded from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    attributes: dict[str, str]  # attribute name -> description
    skills: dict[str, BaseSkill] = Field(default_factory=dict)
    starting_point: str
    customizations: dict[str, CustomizationCategory] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

class InventoryItem(BaseModel):
    item: str
    quantity: int = Field(gt=0)


class PlayerSkill(BaseModel):
    skill_name: str
    level: int | None = Field(default=None, ge=0)
    description: str | None = None


class DialogueEntry(BaseModel):
    """A single entry in a game's append-only dialogue history."""

    role: DialogueRole
    text: str
    timestamp: str  # ISO-8601, UTC


class GameState(BaseModel):
    """The persisted game-state document, one per session.

    Effective attributes are not stored. They are derived from
    base_attributes + selected_customizations + the scenario on every read.
    """

    model_config = ConfigDict(validate_assignment=True)

    scenario_id: str
    scenario_name: str
    base_attributes: dict[str, int] = Field(default_factory=dict)
    selected_customizations: dict[str, str] = Field(default_factory=dict)
    current_location: str = ""
    character_name: str = ""
    inventory: list[InventoryItem] = Field(default_factory=list)
    skills: list[PlayerSkill] = Field(default_factory=list)
    flags: dict[str, FlagValue] = Field(default_factory=dict)
    dialogue_history: list[DialogueEntry] = Field(default_factory=list)


class GameRecord(BaseModel):
    """A stored game session."""

    id: str
    owner_id: str
    scenario_id: str
    name: str
    is_active: bool = False
    created_at: str
    updated_at: str
    version: int = 1
    state: GameState


class GameSummary(BaseModel):
    id: str
    name: str
    scenario_id: str
    is_active: bool
    updated_at: str


# ---------------------------------------------------------------------------
# Proposed deltas (structured narration-service output)
# ---------------------------------------------------------------------------

class ItemChange(BaseModel):
    item: str
    quantity_change: int


class AttributeChange(BaseModel):
    attribute: str
    value_change: int


class SkillChange(BaseModel):
    skill_name: str
    type: SkillChangeType
    value: int | None = None


class FlagUpdate(BaseModel):
    flag: str
    value: FlagValue


class ProposedDelta(BaseModel):
    """State changes proposed by one narration-service call.

    Every field is optional; None and [] both mean "no changes of that kind".
    """

    model_config = ConfigDict(extra="ignore")

    item_changes: list[ItemChange] | None = None
    attribute_changes: list[AttributeChange] | None = None
    skill_changes: list[SkillChange] | None = None
    location_update: str | None = None
    story_flags: list[FlagUpdate] | None = None


class SkillCheckRequest(BaseModel):
    attribute: str
    difficulty: int


class ParsedAction(ProposedDelta):
    """Intent-parsing output: a ProposedDelta plus an optional skill check."""

    requested_action: str = ""
    action_type: ActionType = "other"
    target: str | None = None
    relevant_attribute: str | None = None
    difficulty_class: int | None = None
    requires_dice_roll: bool = False

    def skill_check_request(self) -> SkillCheckRequest | None:
        if not self.requires_dice_roll:
            return None
        if not self.relevant_attribute or self.difficulty_class is None:
            return None
        return SkillCheckRequest(
            attribute=self.relevant_attribute,
            difficulty=self.difficulty_class,
        )


# ---------------------------------------------------------------------------
# Turn results
# ---------------------------------------------------------------------------

class SkillCheckResult(BaseModel):
    attribute: str
    difficulty: int
    roll: int
    modifier: int
    total: int
    success: bool
    critical: Literal["success", "failure"] | None = None


TurnOutcome = Literal["success", "degraded"]


class TurnResult(BaseModel):
    """What one resolved turn hands back to the caller."""

    outcome: TurnOutcome
    narrative: str
    mechanics: str = ""
    skill_check: SkillCheckResult | None = None
    error: str | None = None
    state: GameState
    effective_attributes: dict[str, int]
