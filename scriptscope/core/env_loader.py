"""
Environment loading for ScriptScope.

Provider API keys come from the process environment, optionally filled from
a .env file. The file is found, in order, at $SCRIPTSCOPE_ENV_FILE or by
walking up from the current working directory.

Usage:
    from scriptscope.core.env_loader import get_api_key
    key = get_api_key("OPENAI_API_KEY")
"""

import os
from pathlib import Path
from typing import Iterable, Optional

from dotenv import find_dotenv, load_dotenv

from scriptscope.core.logging_config import get_logger

logger = get_logger("core.env_loader")

ENV_FILE_VARIABLE = "SCRIPTSCOPE_ENV_FILE"

# Alternative names people use for the same credential
API_KEY_FALLBACKS = {
    "GEMINI_API_KEY": ["GOOGLE_API_KEY"],
    "GOOGLE_API_KEY": ["GEMINI_API_KEY"],
    "OPENAI_API_KEY": ["OPENAI_KEY"],
}

_loaded_from: Optional[Path] = None


def find_env_file() -> Optional[Path]:
    """Locate the .env file to load, or None when there is none."""
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            logger.warning(f"{ENV_FILE_VARIABLE} points to a missing file: {path}")
            return None
        return path

    found = find_dotenv(usecwd=True)
    return Path(found) if found else None


def ensure_env_loaded(env_path: Optional[Path] = None) -> bool:
    """
    Load a .env file once per process.

    Args:
        env_path: Explicit file; otherwise find_env_file() decides

    Returns:
        True if a file was loaded by this call
    """
    global _loaded_from

    if _loaded_from is not None:
        return False

    path = Path(env_path) if env_path else find_env_file()
    if path is None or not path.is_file():
        return False

    # Variables already exported in the shell win over .env
    load_dotenv(path, override=False)
    _loaded_from = path
    logger.debug(f"Loaded environment from {path}")
    return True


def loaded_env_file() -> Optional[Path]:
    return _loaded_from


def get_api_key(key_name: str, fallback_keys: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Read an API key, trying key_name first and then each fallback name.

    Blank values count as missing. Fallbacks default to API_KEY_FALLBACKS.
    """
    ensure_env_loaded()

    if fallback_keys is None:
        fallback_keys = API_KEY_FALLBACKS.get(key_name, [])

    for name in [key_name, *fallback_keys]:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None
