"""V1 API router — aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from chat_backend.presentation.api.v1.endpoints.health import router as health_router
from chat_backend.presentation.api.v1.endpoints.chat import router as chat_router
from chat_backend.presentation.api.v1.endpoints.conversations import router as conversations_router
from chat_backend.presentation.api.v1.endpoints.settings import router as settings_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(chat_router)
router.include_router(conversations_router)
router.include_router(settings_router)
