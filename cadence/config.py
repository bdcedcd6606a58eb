from pathlib import Path

import yaml

CADENCE_DIR = Path.home() / ".cadence"
DB_PATH = CADENCE_DIR / "cadence.db"
CONFIG_PATH = CADENCE_DIR / "config.yaml"
LOG_DIR = CADENCE_DIR / "logs"

DEFAULT_NUDGE_INTERVAL_DAYS = 7
DEFAULT_MAX_NUDGE_COUNT = 3
DEFAULT_GRACE_PERIOD_DAYS = 0
DEFAULT_PREVIEW_COUNT = 5


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
                self._data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            self._data = {}

    def reload(self) -> None:
        self._load()

    def get(self, key: str, default: object = None) -> object:
        """Get config value."""
        return self._data.get(key, default)


_config = Config()


def _get_int(key: str, default: int) -> int:
    val = _config.get(key)
    if val is None:
        return default
    try:
        parsed = int(str(val))
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def get_nudge_interval_days() -> int:
    """Days a someday task may sit before it is due for review."""
    return _get_int("nudge_interval_days", DEFAULT_NUDGE_INTERVAL_DAYS)


def get_max_nudge_count() -> int:
    """Nudges after which archiving a someday task is suggested."""
    return _get_int("max_nudge_count", DEFAULT_MAX_NUDGE_COUNT)


def get_grace_period_days() -> int:
    """Fallback grace period for habits without their own config."""
    return _get_int("grace_period_days", DEFAULT_GRACE_PERIOD_DAYS)


def get_preview_count() -> int:
    return _get_int("preview_count", DEFAULT_PREVIEW_COUNT)


def get_log_level() -> str:
    val = _config.get("log_level", "INFO")
    return str(val).upper() if val else "INFO"
