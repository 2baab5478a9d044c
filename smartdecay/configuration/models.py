"""
ConfigDict: read-only view over raw config sections that names the missing key.

    config.simulation.decay_percent       # attribute access
    config["baseline"]["seed"]            # KeyError: 'config.baseline.seed' is missing
    config.baseline.get("seed")           # optional lookup
"""

from typing import Any, Dict


def _missing(path: str) -> str:
    return f"Required configuration key '{path}' is missing from the config file"


class ConfigDict(dict):

    def __init__(self, data: Dict[str, Any], path: str = "config"):
        super().__init__(data)
        self._path = path

    def _wrap(self, key: str, value: Any) -> Any:
        return ConfigDict(value, f"{self._path}.{key}") if isinstance(value, dict) else value

    def __getitem__(self, key: str) -> Any:
        try:
            value = super().__getitem__(key)
        except KeyError:
            raise KeyError(_missing(f"{self._path}.{key}")) from None
        return self._wrap(key, value)

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(e.args[0]) from None

    def get(self, key: str, default: Any = None) -> Any:
        return self._wrap(key, super().get(key, default))

    def require(self, *keys: str) -> None:
        """Raise KeyError listing every absent key at once."""
        absent = [f"{self._path}.{key}" for key in keys if key not in self]
        if absent:
            raise KeyError(_missing(", ".join(absent)))

    def __repr__(self) -> str:
        return f"ConfigDict[{self._path}]({dict.__repr__(self)})"
