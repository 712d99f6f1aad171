"""Game session storage: one JSON document per game.

Each write bumps the record's version. put_game() accepts the version the
caller loaded and refuses to overwrite a newer record, so two turns racing on
the same game can't silently lose an update.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from dm_chronicle.errors import (
    CorruptGameError,
    GameNotFound,
    PersistenceError,
    StaleGameError,
)
from dm_chronicle.models import GameRecord, GameState, GameSummary

from .core import games_dir

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _game_path(game_id: str) -> Path:
    return games_dir() / f"{game_id}.json"


def _write_record(record: GameRecord) -> None:
    try:
        _game_path(record.id).write_text(record.model_dump_json(indent=2))
    except OSError as e:
        raise PersistenceError(f"Failed to write game {record.id}: {e}") from e


def _load_record(path: Path) -> GameRecord:
    try:
        return GameRecord.model_validate_json(path.read_text())
    except (OSError, ValidationError) as e:
        raise CorruptGameError(f"Game file {path.name} is unreadable: {e}") from e


def _owner_records(owner_id: str | None = None) -> list[GameRecord]:
    """Every readable record, optionally for one owner. Corrupt files are logged and skipped."""
    records = []
    for path in games_dir().glob("*.json"):
        try:
            record = _load_record(path)
        except CorruptGameError as e:
            logger.warning(f"Skipping game file: {e}")
            continue
        if owner_id is None or record.owner_id == owner_id:
            records.append(record)
    return records


def get_game(game_id: str) -> GameRecord | None:
    """Load one game. Raises CorruptGameError if the file exists but is unreadable."""
    path = _game_path(game_id)
    if not path.is_file():
        return None
    return _load_record(path)


def create_game(
    owner_id: str, scenario_id: str, name: str, state: GameState
) -> GameRecord:
    now = _now()
    record = GameRecord(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        scenario_id=scenario_id,
        name=name,
        created_at=now,
        updated_at=now,
        state=state,
    )
    _write_record(record)
    return record


def put_game(
    game_id: str, state: GameState, expected_version: int | None = None
) -> GameRecord:
    """Replace a game's state. Raises StaleGameError on a version mismatch."""
    record = get_game(game_id)
    if record is None:
        raise GameNotFound(game_id)
    if expected_version is not None and record.version != expected_version:
        raise StaleGameError(
            f"Game {game_id} is at version {record.version}, expected {expected_version}"
        )
    record.state = state
    record.version += 1
    record.updated_at = _now()
    _write_record(record)
    return record


def list_games(owner_id: str) -> list[GameSummary]:
    """Owner's games, most recently updated first."""
    results = [
        GameSummary.model_validate(record.model_dump()) for record in _owner_records(owner_id)
    ]
    results.sort(key=lambda g: g.updated_at, reverse=True)
    return results


def delete_game(game_id: str) -> bool:
    path = _game_path(game_id)
    if not path.is_file():
        return False
    path.unlink()
    return True


def set_active_game(game_id: str) -> GameRecord | None:
    """Mark one game active, deactivating the owner's others first."""
    record = get_game(game_id)
    if record is None:
        return None
    for other in _owner_records(record.owner_id):
        if other.id != game_id and other.is_active:
            other.is_active = False
            _write_record(other)
    record.is_active = True
    _write_record(record)
    return record
