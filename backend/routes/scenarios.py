"""Scenario catalog endpoints."""

from fastapi import APIRouter, HTTPException

from dm_chronicle import storage
from dm_chronicle.attributes import resolve_attributes

from .models import ResolveAttributesBody

router = APIRouter()


@router.get("/scenarios")
async def list_scenarios():
    """List all scenarios in the catalog."""
    return storage.list_scenarios()


@router.get("/scenarios/{scenario_id}")
async def get_scenario(scenario_id: str):
    """Get a single scenario definition."""
    scenario = storage.get_scenario(scenario_id)
    if not scenario:
        raise HTTPException(404, "Scenario not found")
    return scenario


@router.post("/scenarios/{scenario_id}/attributes")
async def preview_attributes(scenario_id: str, body: ResolveAttributesBody):
    """Resolve effective attributes for a draft allocation (character creation preview)."""
    scenario = storage.get_scenario(scenario_id)
    if not scenario:
        raise HTTPException(404, "Scenario not found")
    return resolve_attributes(body.base_attributes, body.selected_customizations, scenario)
