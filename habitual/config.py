from pathlib import Path

import yaml

from .core.types import Period

HABITUAL_DIR = Path.home() / ".habitual"
DB_PATH = HABITUAL_DIR / "habitual.db"
CONFIG_PATH = HABITUAL_DIR / "config.yaml"
LOG_PATH = HABITUAL_DIR / "habitual.log"
BACKUP_DIR = Path.home() / ".habitual_backups"


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
        if not CONFIG_PATH.exists():
            self._data = {}
            return
        try:
            with CONFIG_PATH.open() as f:
                self._data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            self._data = {}

    def _save(self) -> None:
        HABITUAL_DIR.mkdir(exist_ok=True)
        with CONFIG_PATH.open("w") as f:
            yaml.dump(self._data, f, default_flow_style=False, allow_unicode=True)

    def get(self, key: str, default: object = None) -> object:
        return self._data.get(key, default)

    def set(self, key: str, value: object) -> None:
        """Set config value and persist."""
        self._data[key] = value
        self._save()


_config = Config()


def get_default_period() -> Period:
    """Analytics window used when none is given. Falls back to a month."""
    val = _config.get("default_period")
    try:
        return Period(str(val).strip().lower()) if val else Period.MONTH
    except ValueError:
        return Period.MONTH


def set_default_period(period: Period) -> None:
    _config.set("default_period", str(period))


def get_log_level() -> str:
    val = _config.get("log_level")
    return str(val).strip().upper() if val else "INFO"
