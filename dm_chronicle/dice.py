"""d20 skill checks."""

from __future__ import annotations

import random
from collections.abc import Callable

from dm_chronicle.models import SkillCheckResult

Roller = Callable[[], int]

CRITICAL_FAILURE = 1
CRITICAL_SUCCESS = 20


def roll_d20() -> int:
    return random.randint(1, 20)


def resolve_skill_check(
    attribute: str, difficulty: int, attribute_value: int, roll: int
) -> SkillCheckResult:
    """Compare roll + attribute against the difficulty class.

    A natural 1 always fails and a natural 20 always succeeds, whatever the
    arithmetic says.
    """
    total = roll + attribute_value
    success = total >= difficulty
    critical = None
    if roll == CRITICAL_FAILURE:
        success = False
        critical = "failure"
    elif roll == CRITICAL_SUCCESS:
        success = True
        critical = "success"
    return SkillCheckResult(
        attribute=attribute,
        difficulty=difficulty,
        roll=roll,
        modifier=attribute_value,
        total=total,
        success=success,
        critical=critical,
    )
