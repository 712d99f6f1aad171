"""Request dependencies: caller identity and the narration client."""

import logging
import os

from fastapi import Depends, Header, HTTPException, status

from dm_chronicle import storage
from dm_chronicle.llm import LLM, HttpLLM

logger = logging.getLogger(__name__)

DEFAULT_NARRATOR_URL = "https://api.openai.com"


async def current_user(x_user_id: str | None = Header(default=None)) -> str:
    """The caller's id, as asserted by the upstream identity provider."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        logger.warning("Auth failure: missing X-User-Id header")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user_id


def admin_ids() -> set[str]:
    """User ids allowed to change shared settings, from ADMIN_USER_IDS (comma-separated)."""
    return {uid.strip() for uid in os.getenv("ADMIN_USER_IDS", "").split(",") if uid.strip()}


async def require_admin(user_id: str = Depends(current_user)) -> str:
    if user_id not in admin_ids():
        logger.warning(f"Settings change refused for non-admin user {user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user_id


def build_llm(config: dict) -> HttpLLM:
    """Narration client from stored config, with blanks filled from the environment."""
    conn = config["narrator"]
    return HttpLLM(
        provider_url=conn.get("provider_url") or os.getenv("NARRATOR_URL", DEFAULT_NARRATOR_URL),
        api_key=conn.get("api_key") or os.getenv("NARRATOR_API_KEY") or os.getenv("OPENAI_API_KEY", ""),
        provider_format=conn.get("provider_format") or "openai",
        model=conn.get("model") or os.getenv("NARRATOR_MODEL", ""),
        timeout=float(conn.get("timeout") or 60),
        stage_options=config.get("stages", {}),
    )


async def get_llm() -> LLM:
    return build_llm(storage.get_config())
