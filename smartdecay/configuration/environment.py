"""
Environment handling for the decay configuration.

A config value may be a ``${VAR}`` or ``${VAR:-fallback}`` placeholder. When
the placeholder is the whole value it is typed, so
``"total_years": "${DECAY_YEARS:-60}"`` yields an int. Any leaf can also be
overridden by an env var built from its path: ``SIMULATION_DECAY_PERCENT``
replaces ``simulation.decay_percent``.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "SMARTDECAY_CONFIG"
NAMESPACE_ENV = "SMARTDECAY_NAMESPACE"

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_]\w*)(?::-(?P<fallback>[^}]*))?\}")
_INT = re.compile(r"-?\d+")
_LITERALS = {"true": True, "false": False, "null": None, "none": None}


def _typed(text: str) -> Any:
    """Best-effort typing of a value that came out of the environment."""
    stripped = text.strip()
    lowered = stripped.lower()
    if lowered in _LITERALS:
        return _LITERALS[lowered]
    if _INT.fullmatch(stripped):
        return int(stripped)
    try:
        return float(stripped)
    except ValueError:
        pass
    if stripped[:1] in ("{", "[") and stripped[-1:] in ("}", "]"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            logger.warning(f"Environment value looks like JSON but does not parse: {stripped[:40]}")
    return text


class EnvironmentHandler:
    """Placeholder expansion, leaf overrides and config file lookup."""

    @staticmethod
    def load_dotenv() -> None:
        """Pick up a .env file; variables already set in the process are kept."""
        if load_dotenv(override=False):
            logger.debug("Loaded .env file")

    @staticmethod
    def expand_env_string(value: Any) -> Any:
        if not isinstance(value, str):
            return value
        expanded = _PLACEHOLDER.sub(lambda m: os.environ.get(m["name"], m["fallback"] or ""), value)
        if _PLACEHOLDER.fullmatch(value):
            return _typed(expanded)
        return expanded

    @classmethod
    def expand_env_in_obj(cls, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {key: cls.expand_env_in_obj(item) for key, item in obj.items()}
        if isinstance(obj, list):
            return [cls.expand_env_in_obj(item) for item in obj]
        return cls.expand_env_string(obj)

    @staticmethod
    def override_leaf_keys(section: Dict[str, Any], prefix: Optional[str] = None) -> Dict[str, Any]:
        """Replace leaves that have a matching ``SECTION_KEY`` variable.

        Overrides arrive as strings; the pydantic schemas coerce them.
        """
        result: Dict[str, Any] = {}
        for key, value in section.items():
            env_name = f"{prefix}_{key}".upper() if prefix else key.upper()
            if isinstance(value, dict):
                result[key] = EnvironmentHandler.override_leaf_keys(value, env_name)
            else:
                result[key] = os.environ.get(env_name, value)
        return result

    @classmethod
    def process_config_dict(cls, raw: Dict[str, Any]) -> Dict[str, Any]:
        return cls.override_leaf_keys(cls.expand_env_in_obj(raw))

    @staticmethod
    def resolve_config_path(candidate: str) -> str:
        """Absolute path of the config file.

        Falls back to a file of the same name in the working directory. The
        returned path may not exist, in which case defaults apply.
        """
        wanted = Path(os.path.expandvars(candidate)).expanduser()
        for path in (wanted, Path.cwd() / wanted.name):
            if path.exists():
                return str(path.resolve())
        logger.debug(f"No config file at {wanted}; using defaults")
        return str(wanted.absolute())

    @staticmethod
    def get_namespace() -> Optional[str]:
        return os.environ.get(NAMESPACE_ENV) or None
