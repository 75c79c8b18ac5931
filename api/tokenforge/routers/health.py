import logging

from fastapi import APIRouter

from ..core.config import settings
from ..services.openrouter import health_check as openrouter_health, is_configured

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/healthz")
async def health():
    """Health check. The LLM upstream is only probed outside dev/test."""
    if not is_configured():
        llm_healthy = False
    elif settings.service_env in {"dev", "test"}:
        # Skip external OpenRouter health in dev/test to keep healthz fast
        llm_healthy = True
    else:
        try:
            llm_healthy = await openrouter_health()
        except Exception as e:
            logger.warning(f"OpenRouter health check failed: {e}")
            llm_healthy = False

    if not llm_healthy:
        return {"ok": False, "status": "degraded", "services": {"llm": False}}
    return {"ok": True, "status": "healthy", "services": {"llm": True}}
