"""Health check endpoints — service liveness and per-model reachability."""

from fastapi import APIRouter, Depends, Query

from chat_backend.application.schemas import ModelHealthResponse
from chat_backend.application.services import ModelHealthProbe, resolve_model_candidates
from chat_backend.config import get_settings
from chat_backend.infrastructure.dependencies import get_model_health_probe

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    """Returns the current application health status."""
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
    }


@router.get("/health/models", response_model=list[ModelHealthResponse])
async def model_health(
    force: bool = Query(default=False, description="Ignore cached results"),
    probe: ModelHealthProbe = Depends(get_model_health_probe),
) -> list[ModelHealthResponse]:
    """Probe every configured model candidate.

    Results are cached for a short TTL; ``force=true`` bypasses the cache.
    Reporting only: the outcome never changes which candidates a chat
    request tries.
    """
    results = []
    for candidate in resolve_model_candidates(get_settings()):
        health = await probe.probe(candidate, force=force)
        results.append(
            ModelHealthResponse(
                model=candidate.model_id,
                endpoint=candidate.endpoint,
                ok=health.ok,
                latency_ms=health.latency_ms,
                checked_at=health.checked_at,
                error=health.error,
            )
        )
    return results
