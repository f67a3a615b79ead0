"""Colored stage logger — ANSI-colored console logging for reply generation.

Provides a StageLogger with color-coded output per orchestration stage,
making it easy to follow one request (by its trace id) through candidate
attempts, tool rounds and parsing in the terminal.

Color scheme:
    🔵 Blue    — Candidate selection
    🟣 Magenta — Provider calls
    🟡 Yellow  — Tool round
    🟠 Cyan    — Reply parsing
    🟢 Green   — Completion
    🔴 Red     — Errors
    ⚪ Gray    — Details
"""

import logging
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


# ── Stage Definitions ────────────────────────────────────────────────

class ChatStage:
    """Predefined reply-generation stages with colors and icons."""

    CANDIDATE = ("CANDIDATE", _Colors.BLUE, "🎯")
    PROVIDER = ("PROVIDER", _Colors.MAGENTA, "🤖")
    TOOLS = ("TOOLS", _Colors.YELLOW, "🔧")
    PARSE = ("PARSE", _Colors.CYAN, "🧩")
    COMPLETE = ("COMPLETE", _Colors.GREEN, "✅")
    ERROR = ("ERROR", _Colors.RED, "❌")


def _format_details(kwargs: dict[str, Any], color: str) -> str:
    if not kwargs:
        return ""
    details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
    return f" {color}({details}){_Colors.RESET}"


# ── StageLogger ──────────────────────────────────────────────────────

class StageLogger:
    """Color-coded logger for the reply-generation flow.

    Usage:
        log = StageLogger("CompletionOrchestrator")
        log.step_start(ChatStage.PROVIDER, "Calling z-ai/glm-4.7", trace_id=trace_id)
        log.detail("json_mode=True")
        log.step_complete(ChatStage.PROVIDER, "Completion received", trace_id=trace_id)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)
        self._component = component_name

    def step_start(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the start of a step with its stage color."""
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        self._logger.info(formatted + _format_details(kwargs, _Colors.GRAY))

    def step_complete(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log the successful completion of a step."""
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        self._logger.info(formatted + _format_details(kwargs, _Colors.GRAY))

    def step_warning(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        """Log a recoverable problem; the flow continues."""
        label, _, icon = stage
        formatted = (
            f"{_Colors.YELLOW}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.YELLOW}⚠ {message}{_Colors.RESET}"
        )
        self._logger.warning(formatted + _format_details(kwargs, _Colors.GRAY))

    def step_error(
        self,
        stage: tuple[str, str, str],
        message: str,
        error: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        """Log a step error in red."""
        label, _, _ = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted + _format_details(kwargs, _Colors.GRAY))

    def detail(self, message: str, **kwargs: Any) -> None:
        """Log additional detail (gray/dimmed) at debug level."""
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        self._logger.debug(formatted + _format_details(kwargs, _Colors.DIM))
