"""Read-only scenario catalog, loaded once from presets/scenarios/*.json."""

import json
import logging

from pydantic import ValidationError

from dm_chronicle.models import Scenario

from .core import scenarios_dir

logger = logging.getLogger(__name__)

_catalog: dict[str, Scenario] | None = None


def _load_catalog() -> dict[str, Scenario]:
    global _catalog
    if _catalog is not None:
        return _catalog

    catalog: dict[str, Scenario] = {}
    if scenarios_dir().is_dir():
        for path in sorted(scenarios_dir().glob("*.json")):
            try:
                scenario = Scenario.model_validate(json.loads(path.read_text()))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping invalid scenario file {path.name}: {e}")
                continue
            if scenario.id in catalog:
                logger.warning(f"Duplicate scenario id {scenario.id!r} in {path.name}; skipped")
                continue
            catalog[scenario.id] = scenario
    _catalog = catalog
    return _catalog


def list_scenarios() -> list[Scenario]:
    return list(_load_catalog().values())


def get_scenario(scenario_id: str) -> Scenario | None:
    return _load_catalog().get(scenario_id)
