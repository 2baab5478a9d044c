import threading
from datetime import datetime, timezone
from typing import Optional

from smartdecay.configuration import ConfigDict, ConfigManager, DecaySettings


def now() -> datetime:
    """Aware UTC timestamp used for every record."""
    return datetime.now(timezone.utc)


_manager_lock = threading.RLock()
_shared_manager: Optional[ConfigManager] = None


def _manager(config_path: Optional[str] = None) -> ConfigManager:
    """Process-wide ConfigManager, created on first use and refreshed when its file changes."""
    global _shared_manager
    with _manager_lock:
        if _shared_manager is None:
            _shared_manager = ConfigManager(config_path=config_path)
        else:
            _shared_manager.reload_if_stale()
        return _shared_manager


def get_config(section: Optional[str] = None, config_path: Optional[str] = None) -> ConfigDict:
    """Raw configuration, or one section of it, with fail-fast key access."""
    config = _manager(config_path).get_config_dict()
    if section is None:
        return config
    return ConfigDict(dict(config.get(section) or {}), f"config.{section}")


def get_settings(config_path: Optional[str] = None) -> DecaySettings:
    return _manager(config_path).get_settings()


def clear_config_cache() -> None:
    """Forget the shared manager so the next call reads the environment again."""
    global _shared_manager
    with _manager_lock:
        _shared_manager = None
