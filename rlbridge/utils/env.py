"""Process environment loading for the CLI entry points."""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)


def load_env_file(path: str | Path | None = None) -> bool:
    """Load ``path`` (or the nearest ``.env`` above the cwd) without overriding set variables."""

    dotenv_path = str(path) if path is not None else find_dotenv(usecwd=True)
    if not dotenv_path:
        return False
    loaded = load_dotenv(dotenv_path, override=False)
    if loaded:
        logger.debug("Loaded environment variables from %s.", dotenv_path)
    return loaded
