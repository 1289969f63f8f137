"""Environment-driven settings for the workflow engine."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_TICK_MS = 100
DEFAULT_DOTS_MS = 400


def get_history_db_path() -> Path:
    """Return the path of the SQLite chat history database."""
    env = os.environ.get("AICHAT_WORKFLOW_DB")
    if env:
        return Path(env)

    return Path.home() / ".aichat-workflow" / "chat_history.db"


def get_projects_root() -> Path:
    """Directory holding one working tree per project id."""
    env = os.environ.get("AICHAT_WORKFLOW_PROJECTS")
    if env:
        return Path(env)

    return Path.home() / ".aichat-workflow" / "projects"


def get_page_size() -> int:
    """Number of blocks fetched per history page."""
    return _int_env("AICHAT_WORKFLOW_PAGE_SIZE", DEFAULT_PAGE_SIZE)


def get_tick_interval() -> float:
    """Live timer tick interval, in seconds."""
    return _int_env("AICHAT_WORKFLOW_TICK_MS", DEFAULT_TICK_MS) / 1000


def get_dots_interval() -> float:
    """Thinking-dots animation interval, in seconds."""
    return _int_env("AICHAT_WORKFLOW_DOTS_MS", DEFAULT_DOTS_MS) / 1000


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, value, default)
        return default
    return parsed

