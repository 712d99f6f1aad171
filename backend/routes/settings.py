"""Health check and settings endpoints.

Settings are shared by every player. Any signed-in user may read them with
the narrator API key masked; only ids listed in ADMIN_USER_IDS may change them.
"""

import copy

from fastapi import APIRouter, Depends

from dm_chronicle import storage

from backend.dependencies import current_user, require_admin

router = APIRouter()


def _public_config(config: dict) -> dict:
    """Config with the narrator api_key replaced by an api_key_set flag."""
    public = copy.deepcopy(config)
    narrator = public.get("narrator", {})
    narrator["api_key_set"] = bool(narrator.pop("api_key", ""))
    return public


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/settings", dependencies=[Depends(current_user)])
async def get_settings():
    """Get app settings (narrator connection, stage sampling, context sizes)."""
    return _public_config(storage.get_config())


@router.patch("/settings", dependencies=[Depends(require_admin)])
async def update_settings(body: dict):
    """Update app settings (partial merge). Admins only."""
    return _public_config(storage.update_config(body))
