"""Game CRUD + turn endpoints. Every game route is scoped to the calling user."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from dm_chronicle import storage
from dm_chronicle.attributes import resolve_attributes
from dm_chronicle.characters import new_game_state
from dm_chronicle.errors import (
    AccessDenied,
    CharacterError,
    CorruptGameError,
    GameNotFound,
    PersistenceError,
    ScenarioNotFound,
)
from dm_chronicle.llm import LLM
from dm_chronicle.models import GameRecord
from dm_chronicle.pipeline import resolve_turn

from backend.dependencies import current_user, get_llm

from .models import CreateGame, GameView, TurnBody

logger = logging.getLogger(__name__)

router = APIRouter()


def _owned_game(game_id: str, user_id: str) -> GameRecord:
    try:
        record = storage.get_game(game_id)
    except CorruptGameError as e:
        logger.error(str(e))
        raise HTTPException(500, "Game data is unreadable")
    if record is None:
        raise HTTPException(404, "Game not found")
    if record.owner_id != user_id:
        raise HTTPException(403, "You do not have access to this game")
    return record


def _view(record: GameRecord) -> GameView:
    scenario = storage.get_scenario(record.scenario_id)
    if scenario is None:
        effective = dict(record.state.base_attributes)
    else:
        effective = resolve_attributes(
            record.state.base_attributes, record.state.selected_customizations, scenario
        )
    return GameView.from_record(record, effective)


@router.get("/games")
async def list_games(user_id: str = Depends(current_user)):
    """List the caller's games, most recently played first."""
    return storage.list_games(user_id)


@router.post("/games", status_code=201)
async def create_game(body: CreateGame, user_id: str = Depends(current_user)):
    """Create a character and its game session."""
    scenario = storage.get_scenario(body.scenario_id)
    if not scenario:
        raise HTTPException(404, "Scenario not found")
    try:
        state = new_game_state(
            scenario,
            body.character_name,
            base_attributes=body.base_attributes,
            selected_customizations=body.selected_customizations,
            skills=body.skills,
        )
        record = storage.create_game(user_id, scenario.id, state.character_name, state)
    except CharacterError as e:
        raise HTTPException(400, str(e))
    except PersistenceError as e:
        logger.error(f"Failed to create game: {e}")
        raise HTTPException(500, "Failed to save game state")
    return _view(record)


@router.get("/games/{game_id}")
async def get_game(game_id: str, user_id: str = Depends(current_user)):
    """Get a game with its effective attributes."""
    return _view(_owned_game(game_id, user_id))


@router.delete("/games/{game_id}")
async def delete_game(game_id: str, user_id: str = Depends(current_user)):
    """Delete a game and its state."""
    _owned_game(game_id, user_id)
    storage.delete_game(game_id)
    return {"ok": True}


@router.post("/games/{game_id}/activate")
async def activate_game(game_id: str, user_id: str = Depends(current_user)):
    """Make this the caller's active game."""
    _owned_game(game_id, user_id)
    try:
        record = storage.set_active_game(game_id)
    except PersistenceError as e:
        logger.error(f"Failed to activate game: {e}")
        raise HTTPException(500, "Failed to save game state")
    if record is None:
        raise HTTPException(404, "Game not found")
    return _view(record)


@router.post("/games/{game_id}/turns")
async def take_turn(
    game_id: str,
    body: TurnBody,
    user_id: str = Depends(current_user),
    llm: LLM = Depends(get_llm),
):
    """Submit a player action and run the turn pipeline."""
    try:
        return await resolve_turn(
            session_id=game_id, user_id=user_id, action=body.action, llm=llm,
        )
    except GameNotFound:
        raise HTTPException(404, "Game not found")
    except ScenarioNotFound:
        raise HTTPException(404, "Scenario not found")
    except AccessDenied:
        raise HTTPException(403, "You do not have access to this game")
    except CorruptGameError as e:
        logger.error(str(e))
        raise HTTPException(500, "Game data is unreadable")
    except PersistenceError:
        raise HTTPException(500, "Failed to save game state")
    except ValueError as e:
        raise HTTPException(400, str(e))
