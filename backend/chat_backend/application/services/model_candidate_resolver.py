"""Builds the ordered list of backend models a request may try."""

import logging

from chat_backend.config import Settings
from chat_backend.domain.entities import ModelCandidate

logger = logging.getLogger(__name__)


def resolve_model_candidates(
    settings: Settings, model_override: str | None = None
) -> list[ModelCandidate]:
    """Return the candidates in retry order: primary, then fallback.

    A caller-pinned ``model_override`` is the only candidate and runs on
    the primary endpoint; fallback is not attempted. A candidate without
    its own credential uses the default OpenRouter key. An empty list is
    returned when nothing is configured.
    """
    default_credential = settings.openrouter_api_key.strip()
    primary_endpoint = settings.chat_primary_base_url.strip()
    primary_credential = settings.chat_primary_api_key.strip() or default_credential

    override = (model_override or "").strip()
    if override:
        return [
            ModelCandidate(
                endpoint=primary_endpoint,
                model_id=override,
                credential=primary_credential,
            )
        ]

    candidates: list[ModelCandidate] = []

    primary_model = settings.chat_primary_model.strip()
    if primary_endpoint and primary_model:
        candidates.append(
            ModelCandidate(
                endpoint=primary_endpoint,
                model_id=primary_model,
                credential=primary_credential,
            )
        )

    fallback_endpoint = settings.chat_fallback_base_url.strip()
    fallback_model = settings.chat_fallback_model.strip()
    if fallback_endpoint and fallback_model:
        fallback = ModelCandidate(
            endpoint=fallback_endpoint,
            model_id=fallback_model,
            credential=settings.chat_fallback_api_key.strip() or default_credential,
        )
        if all(
            (c.endpoint, c.model_id) != (fallback.endpoint, fallback.model_id)
            for c in candidates
        ):
            candidates.append(fallback)

    if not candidates:
        logger.warning("No chat model candidates configured")
    return candidates
