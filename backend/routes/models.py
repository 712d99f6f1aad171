"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel, Field

from dm_chronicle.models import GameRecord, GameState


class ResolveAttributesBody(BaseModel):
    base_attributes: dict[str, int] = Field(default_factory=dict)
    selected_customizations: dict[str, str] = Field(default_factory=dict)


class CreateGame(BaseModel):
    scenario_id: str
    character_name: str
    base_attributes: dict[str, int] | None = None
    selected_customizations: dict[str, str] | None = None
    skills: list[str] | None = None


class TurnBody(BaseModel):
    action: str


class GameView(BaseModel):
    """A game as shown to its owner, with effective attributes derived on read."""

    id: str
    name: str
    scenario_id: str
    is_active: bool
    created_at: str
    updated_at: str
    state: GameState
    effective_attributes: dict[str, int]

    @classmethod
    def from_record(cls, record: GameRecord, effective_attributes: dict[str, int]) -> "GameView":
        return cls(
            id=record.id,
            name=record.name,
            scenario_id=record.scenario_id,
            is_active=record.is_active,
            created_at=record.created_at,
            updated_at=record.updated_at,
            state=record.state,
            effective_attributes=effective_attributes,
        )
