"""Per-category log levels driven by Settings.

Each ``log_level_*`` field governs a group of logger names, so SQL echo,
outbound HTTP chatter or the candidate loop can be turned up or down
independently. ``setup_logging()`` runs once from the application lifespan.
"""

import logging
import sys

from chat_backend.config import Settings, get_settings

LOG_FORMAT = "%(levelname)-8s %(name)s - %(message)s"

# StageLogger instances log under their component name, not a module path.
LOGGER_GROUPS: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_uvicorn": ("uvicorn", "uvicorn.access", "uvicorn.error"),
    "log_level_llm": ("chat_backend.infrastructure.llm",),
    "log_level_mcp": ("chat_backend.infrastructure.mcp",),
    "log_level_orchestrator": (
        "CompletionOrchestrator",
        "ToolCallCoordinator",
        "ModelHealthProbe",
        "chat_backend.application.services",
    ),
}


def _parse_level(raw: str) -> int:
    """Level name to ``logging`` constant; unknown names mean INFO."""
    numeric = getattr(logging, raw.strip().upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO


def category_levels(settings: Settings) -> dict[str, int]:
    """Resolved level for every grouped logger name."""
    levels: dict[str, int] = {}
    for field_name, names in LOGGER_GROUPS.items():
        level = _parse_level(getattr(settings, field_name, "INFO"))
        for name in names:
            levels[name] = level
    return levels


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    root = logging.getLogger()
    root.setLevel(_parse_level(settings.log_level))

    # uvicorn installs its own handler; plain scripts and tests do not.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    for name, level in category_levels(settings).items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Log levels: root=%s %s",
        settings.log_level,
        ", ".join(f"{field}={getattr(settings, field)}" for field in LOGGER_GROUPS),
    )
