"""Runtime model settings endpoints."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, status

from chat_backend.application.schemas.settings import (
    AvailableModel,
    CandidateSchema,
    ModelSettingsResponse,
    ModelSettingsUpdate,
)
from chat_backend.application.services import settings_service
from chat_backend.infrastructure.dependencies import get_http_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["Settings"])


def _current() -> ModelSettingsResponse:
    return ModelSettingsResponse(
        models=settings_service.get_model_settings(),
        labels=settings_service.MODEL_LABELS,
        candidates=[
            CandidateSchema(endpoint=c.endpoint, model=c.model_id)
            for c in settings_service.get_candidate_order()
        ],
    )


@router.get("/models", response_model=ModelSettingsResponse)
async def get_models():
    """Effective model ids and the candidate order they produce."""
    return _current()


@router.put("/models", response_model=ModelSettingsResponse)
async def put_models(body: ModelSettingsUpdate):
    unknown = sorted(set(body.models) - set(settings_service.MODEL_KEYS))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown model keys: {', '.join(unknown)}",
        )
    settings_service.update_model_settings(body.models)
    return _current()


@router.get("/available-models", response_model=list[AvailableModel])
async def get_available_models(http_client: httpx.AsyncClient = Depends(get_http_client)):
    try:
        models = await settings_service.fetch_available_models(http_client)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Model list request failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to fetch models: {exc}",
        ) from exc
    return [AvailableModel(**m) for m in models]
