"""Turn orchestrator: loads a game, runs the three stages, persists the result."""

import asyncio
import logging
import weakref
from datetime import datetime, timezone

from dm_chronicle import storage
from dm_chronicle.attributes import resolve_attributes
from dm_chronicle.deltas import apply_delta
from dm_chronicle.dice import Roller, roll_d20
from dm_chronicle.errors import (
    AccessDenied,
    GameNotFound,
    PersistenceError,
    ScenarioNotFound,
)
from dm_chronicle.llm import LLM, LLMError
from dm_chronicle.models import DialogueEntry, SkillCheckResult, TurnResult

from .stages import extract_delta, generate_narrative, parse_intent

logger = logging.getLogger(__name__)

NARRATOR_UNAVAILABLE = (
    "The narrator could not respond; a rift in the weave of the story swallowed "
    "their words. (error: {error})"
)

_session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _session_lock(session_id: str) -> asyncio.Lock:
    """One lock per game so concurrent turns on the same game run one at a time."""
    lock = _session_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _session_locks[session_id] = lock
    return lock


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


async def resolve_turn(
    *,
    session_id: str,
    user_id: str,
    action: str,
    llm: LLM,
    roller: Roller = roll_d20,
) -> TurnResult:
    """Execute one player turn and return the persisted outcome.

    Raises GameNotFound / AccessDenied / ScenarioNotFound before touching the
    state, and PersistenceError if the final save fails. Narration failures
    never raise: the turn completes as "degraded" with a placeholder narrator
    entry and whatever changes were applied before the failure.
    """
    action = action.strip()
    if not action:
        raise ValueError("Action text must not be empty")

    async with _session_lock(session_id):
        return await _run_turn(session_id, user_id, action, llm, roller)


async def _run_turn(
    session_id: str, user_id: str, action: str, llm: LLM, roller: Roller
) -> TurnResult:
    record = storage.get_game(session_id)
    if record is None:
        raise GameNotFound(session_id)
    if record.owner_id != user_id:
        raise AccessDenied(f"User {user_id} does not own game {session_id}")
    scenario = storage.get_scenario(record.scenario_id)
    if scenario is None:
        raise ScenarioNotFound(record.scenario_id)

    config = storage.get_config()
    state = record.state

    def effective() -> dict[str, int]:
        return resolve_attributes(state.base_attributes, state.selected_customizations, scenario)

    # 1-2. Player entry goes in first so it survives any later failure
    prior_history = list(state.dialogue_history)
    state.dialogue_history.append(
        DialogueEntry(role="player", text=action, timestamp=_timestamp())
    )

    mechanics_parts: list[str] = []
    skill_check: SkillCheckResult | None = None
    error: str | None = None

    try:
        # 3. Intent parsing
        parsed = await parse_intent(llm, action, state, scenario, effective())
        report = apply_delta(state, parsed, effective(), roller=roller)
        skill_check = report.skill_check
        if report.summary:
            mechanics_parts.append(report.summary)

        # 4. Narrative generation
        narrative = await generate_narrative(
            llm, prior_history, action, report.summary, state, scenario, effective(),
            history_window=int(config.get("history_window", 0)),
            length_hint=int(config.get("narrative_length_hint", 600)),
        )

        # 5. Delta extraction from the narrative
        extracted = await extract_delta(llm, narrative, state, scenario, effective())
        narrative_report = apply_delta(state, extracted, effective(), roller=roller)
        if narrative_report.summary:
            mechanics_parts.append(narrative_report.summary)
    except LLMError as e:
        logger.warning(f"Narration failed for game {session_id}: {e}")
        error = str(e)
        narrative = NARRATOR_UNAVAILABLE.format(error=error)

    # 6. Narrator entry
    state.dialogue_history.append(
        DialogueEntry(role="narrator", text=narrative, timestamp=_timestamp())
    )

    # 7. Persist
    try:
        saved = storage.put_game(session_id, state, expected_version=record.version)
    except PersistenceError:
        logger.error(f"Failed to save game {session_id}", exc_info=True)
        raise
    except OSError as e:
        logger.error(f"Failed to save game {session_id}: {e}")
        raise PersistenceError(f"Failed to save game {session_id}") from e

    return TurnResult(
        outcome="degraded" if error else "success",
        narrative=narrative,
        mechanics="\n".join(mechanics_parts),
        skill_check=skill_check,
        error=error,
        state=saved.state,
        effective_attributes=effective(),
    )
