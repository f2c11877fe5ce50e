import json
import os
import sys
from typing import Any, Dict, Optional

from colored_logger import get_colored_logger
from .naming import RECIPE_EXT

logger = get_colored_logger(__name__)

DEFAULT_RECIPES_PATH = "recipes"
DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SNIPPET_TOKENS = 32


def _load_env_file(env_path: str) -> None:
    """
    Load key=value pairs from a .env file into os.environ.

    Blank lines and lines starting with # are skipped; surrounding quotes are
    removed from values.
    """
    if not os.path.isfile(env_path):
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue

                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                    value = value[1:-1]

                if key:
                    os.environ[key] = value

        logger.debug(".env file loaded from %s", env_path)

    except OSError as e:
        logger.warning("Failed to load .env file: %s", e)


class Settings:
    """
    Configuration for the recipe index.

    Values come from an optional JSON settings file, then COOKBOOK_*
    environment variables (including those set by a .env file) override them.
    """

    def __init__(self, settings_file: Optional[str] = None, env_file: str = ".env"):
        """
        Args:
            settings_file: Path to a JSON settings file. Exits the program if
                given but missing or invalid.
            env_file: Path to an optional .env file
        """
        _load_env_file(env_file)

        self.raw: Dict[str, Any] = {}
        if settings_file is not None:
            if not os.path.isfile(settings_file):
                logger.critical(
                    "Settings file not found at '%s'. Exiting...", settings_file
                )
                sys.exit(1)

            self.raw = self._load_json(settings_file)
            if not isinstance(self.raw, dict):
                logger.critical(
                    "Settings file '%s' is empty or invalid. Exiting...", settings_file
                )
                sys.exit(1)

        self.recipes_path: str = os.environ.get(
            "COOKBOOK_RECIPES_PATH", self.raw.get("recipes_path", DEFAULT_RECIPES_PATH)
        )
        self.recipe_ext: str = self.raw.get("recipe_ext", RECIPE_EXT)
        self.search_limit: int = self._int_setting(
            "COOKBOOK_SEARCH_LIMIT", "search_limit", DEFAULT_SEARCH_LIMIT
        )
        self.snippet_tokens: int = self._int_setting(
            "COOKBOOK_SNIPPET_TOKENS", "snippet_tokens", DEFAULT_SNIPPET_TOKENS
        )
        self.log_level: str = os.environ.get(
            "COOKBOOK_LOG_LEVEL", self.raw.get("log_level", "INFO")
        ).upper()

        if settings_file is not None:
            logger.info("Settings loaded from '%s'.", settings_file)

    def _int_setting(self, env_key: str, key: str, default: int) -> int:
        value = os.environ.get(env_key, self.raw.get(key, default))
        try:
            value = int(value)
        except (TypeError, ValueError):
            logger.warning("Invalid %s value %r, using %d", key, value, default)
            return default
        if value < 1:
            logger.warning("%s must be positive, using %d", key, default)
            return default
        return value

    def _load_json(self, path: str) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading JSON file '%s': %s", path, e)
            return None
