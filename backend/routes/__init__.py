"""FastAPI API endpoints under /api.

Endpoint groups: health + settings, scenarios (catalog + attribute preview),
games (CRUD, activation, turns). Game routes take the caller's id from the
X-User-Id header set by the identity provider in front of the service.
"""

from fastapi import APIRouter

from .games import router as games_router
from .scenarios import router as scenarios_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(scenarios_router)
router.include_router(games_router)
