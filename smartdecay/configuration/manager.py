"""
ConfigManager: the JSON config file turned into validated DecaySettings.

Loading order: .env, the file, placeholder expansion, leaf overrides, then
the active namespace overlay. Namespaces let one file carry several
simulation profiles:

    {"simulation": {"decay_percent": 5},
     "namespaces": {"fast": {"simulation": {"decay_percent": 20}}}}

The active namespace comes from ``SMARTDECAY_NAMESPACE``, then
``namespaces.active``, then ``"default"`` when such an entry exists.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .environment import CONFIG_PATH_ENV, EnvironmentHandler
from .models import ConfigDict
from .schemas import DecaySettings

logger = logging.getLogger(__name__)

ACTIVE_NAMESPACE_KEY = "_active_namespace"


def overlay(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """``base`` with ``patch`` merged in section by section; neither input is modified."""
    merged = dict(base)
    for key, value in patch.items():
        current = merged.get(key)
        merged[key] = overlay(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def _pick_namespace(namespaces: Dict[str, Any]) -> Optional[str]:
    chosen = EnvironmentHandler.get_namespace() or namespaces.get("active")
    if chosen:
        return chosen
    return "default" if "default" in namespaces else None


class ConfigManager:
    """Owns one config file and the settings derived from it."""

    def __init__(self, config_path: Optional[str] = None):
        EnvironmentHandler.load_dotenv()
        self._config_path = EnvironmentHandler.resolve_config_path(
            config_path or os.environ.get(CONFIG_PATH_ENV, "config.json"))
        self._lock = threading.RLock()
        self._loaded_mtime: Optional[float] = None
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _file_mtime(self) -> Optional[float]:
        try:
            return os.path.getmtime(self._config_path)
        except OSError:
            return None

    def _read_file(self) -> Dict[str, Any]:
        try:
            with open(self._config_path, "r") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read config {self._config_path}, using defaults: {e}")
            return {}
        if not isinstance(raw, dict):
            logger.error(f"Config {self._config_path} must hold a JSON object, using defaults")
            return {}
        return raw

    def _load_config(self) -> None:
        with self._lock:
            self._loaded_mtime = self._file_mtime()
            processed = EnvironmentHandler.process_config_dict(self._read_file())
            self._config = self._apply_namespace(processed)
            logger.debug(f"Config {self._config_path}: sections {sorted(k for k in self._config if not k.startswith('_'))}")

    @staticmethod
    def _apply_namespace(processed: Dict[str, Any]) -> Dict[str, Any]:
        namespaces = processed.pop("namespaces", None)
        active = None
        if isinstance(namespaces, dict):
            active = _pick_namespace(namespaces)
            profile = namespaces.get(active) if active else None
            if isinstance(profile, dict):
                processed = overlay(processed, profile)
                logger.debug(f"Namespace '{active}' applied")
        processed[ACTIVE_NAMESPACE_KEY] = active
        return processed

    def reload_if_stale(self, force: bool = False) -> bool:
        """Re-read the file when it changed on disk. Returns True when a reload happened."""
        if not force and self._file_mtime() == self._loaded_mtime:
            return False
        logger.debug(f"Reloading config {self._config_path}")
        self._load_config()
        return True

    def get_config(self) -> Dict[str, Any]:
        return dict(self._config)

    def get_config_dict(self) -> ConfigDict:
        return ConfigDict(self._config, "config")

    def get_section(self, section_name: str, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._config.get(section_name, default or {})

    def get_settings(self) -> DecaySettings:
        """Validated settings; sections the schema does not know are ignored.

        Raises:
            ValueError: a configured value is out of range or of the wrong type
        """
        sections = {name: self._config[name] for name in DecaySettings.model_fields if name in self._config}
        try:
            return DecaySettings.model_validate(sections)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {self._config_path}: {e}") from e

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def active_namespace(self) -> Optional[str]:
        return self._config.get(ACTIVE_NAMESPACE_KEY)
