"""Runtime chat model selection.

The primary and fallback model ids can be switched without a restart: the
overrides are written to ``data/settings.json``, which ``Settings`` merges
on load, and the settings cache is dropped so the next request resolves
its candidates from the new values.
"""

import json
import logging
from pathlib import Path
from typing import Any

import httpx

from chat_backend.application.services.model_candidate_resolver import resolve_model_candidates
from chat_backend.config import get_settings
from chat_backend.domain.entities import ModelCandidate

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path("data/settings.json")

MODEL_LABELS = {
    "chat_primary_model": "Primary chat model",
    "chat_fallback_model": "Fallback chat model",
}
MODEL_KEYS = list(MODEL_LABELS)


def _load_overrides() -> dict[str, Any]:
    try:
        data = json.loads(SETTINGS_FILE.read_text("utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable %s: %s", SETTINGS_FILE, exc)
        return {}
    return data if isinstance(data, dict) else {}


def get_model_settings() -> dict[str, str]:
    """Effective model id per key (override file first, then environment)."""
    settings = get_settings()
    return {key: getattr(settings, key) for key in MODEL_KEYS}


def get_candidate_order() -> list[ModelCandidate]:
    return resolve_model_candidates(get_settings())


def update_model_settings(updates: dict[str, str]) -> dict[str, str]:
    """Store the given overrides and return the effective values.

    Keys outside ``MODEL_KEYS`` are ignored here; the API rejects them
    before this point. A blank value removes the override so the
    environment default applies again.
    """
    overrides = _load_overrides()
    for key in MODEL_KEYS:
        if key not in updates:
            continue
        value = updates[key].strip()
        if value:
            overrides[key] = value
        else:
            overrides.pop(key, None)

    SETTINGS_FILE.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_FILE.write_text(json.dumps(overrides, indent=2), encoding="utf-8")
    get_settings.cache_clear()

    effective = get_model_settings()
    logger.info("Chat models now %s", effective)
    return effective


async def fetch_available_models(http_client: httpx.AsyncClient) -> list[dict[str, str]]:
    """List ``{id, name}`` for every model on the default endpoint, by name.

    Raises:
        httpx.HTTPError: The endpoint could not be reached or answered >= 400.
        ValueError: The body was not JSON.
    """
    settings = get_settings()
    response = await http_client.get(
        f"{settings.openrouter_base_url.rstrip('/')}/models",
        headers={
            "Authorization": f"Bearer {settings.openrouter_api_key}",
            "X-Title": settings.openrouter_app_name,
        },
        timeout=15.0,
    )
    response.raise_for_status()

    models = [
        {"id": item["id"], "name": item.get("name") or item["id"]}
        for item in response.json().get("data", [])
        if isinstance(item, dict) and item.get("id")
    ]
    return sorted(models, key=lambda m: m["name"].lower())
