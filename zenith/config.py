from pathlib import Path

import yaml

ZENITH_DIR = Path.home() / ".zenith"
DB_PATH = ZENITH_DIR / "zenith.db"
TIMERS_PATH = ZENITH_DIR / "timers.json"
CONFIG_PATH = ZENITH_DIR / "config.yaml"
BACKUP_DIR = Path.home() / ".zenith_backups"

DEFAULT_TICK_SECONDS = 1.0
DEFAULT_MIN_SESSION_SECONDS = 1.0


class Config:
    """Single-instance config manager. Load once, cache in memory."""

    _instance: "Config | None" = None
    _data: dict[str, object]

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._load()
        return cls._instance

    def _load(self) -> None:
        """Load config from disk."""
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            loaded = None
        self._data = loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        """Persist config to disk."""
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def reload(self) -> None:
        self._load()

    def get(self, key: str, default: object = None) -> object:
        """Get config value."""
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


_config = Config()


def _positive_float(key: str, default: float) -> float:
    val = _config.get(key)
    if isinstance(val, bool) or not isinstance(val, (int, float)) or val <= 0:
        return default
    return float(val)


def get_tick_seconds() -> float:
    """How often a watching observer recomputes a running timer."""
    return _positive_float("tick_seconds", DEFAULT_TICK_SECONDS)


def get_min_session_seconds() -> float:
    """Chunks at or below this are folded into totals but not logged as sessions."""
    return _positive_float("min_session_seconds", DEFAULT_MIN_SESSION_SECONDS)


def set_value(key: str, value: object) -> None:
    _config.set(key, value)
