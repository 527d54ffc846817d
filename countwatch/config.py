## countwatch/config.py

from __future__ import annotations
import os
from pathlib import Path
from typing import Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError

from .errors import ConfigError
from .utils import load_yaml

USERNAME_ENV = "USERNAME"
PASSWORD_ENV = "PASSWORD"
STORAGE_ENV = "PATH_TO_CSV_AND_LOG"
DATABASE_URL_ENV = "DATABASE_URL"
REQUIRED_ENV = (USERNAME_ENV, PASSWORD_ENV)

LOG_FILE_NAME = "log.txt"
SETTINGS_ENV = "COUNTWATCH_SETTINGS"
DEFAULT_SETTINGS_FILE = "config.yaml"


class WatcherSettings(BaseModel):
    poll_seconds: float = Field(15, gt=0)
    file_name: str = "export.csv"


class DatabaseSettings(BaseModel):
    driver: str = "oracle+oracledb"
    dsn: str = "dvrpcprod_tp_tls"
    url: Optional[str] = None


class AlertSettings(BaseModel):
    enabled: bool = True


class Settings(BaseModel):
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)


class Config(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr
    storage_dir: Path
    settings: Settings = Field(default_factory=Settings)

    @property
    def csv_path(self) -> Path:
        return self.storage_dir / self.settings.watcher.file_name

    @property
    def log_path(self) -> Path:
        return self.storage_dir / LOG_FILE_NAME


def storage_dir(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    env = os.environ if environ is None else environ
    value = env.get(STORAGE_ENV)
    return Path(value) if value else None


def resolve_settings_path(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """COUNTWATCH_SETTINGS if set, else ./config.yaml when present."""
    env = os.environ if environ is None else environ
    path = env.get(SETTINGS_ENV)
    if path:
        return path
    if Path(DEFAULT_SETTINGS_FILE).exists():
        return DEFAULT_SETTINGS_FILE
    return None


def load_settings(path: Union[str, Path, None]) -> Settings:
    if path is None:
        return Settings()
    try:
        raw = load_yaml(path)
    except FileNotFoundError as e:
        raise ConfigError(reason=f"settings file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(reason=f"could not read settings file {path}: {e}") from e
    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(reason=f"invalid settings in {path}: {e}") from e


def load_config(environ: Optional[Mapping[str, str]] = None,
                settings_path: Union[str, Path, None] = None) -> Config:
    """Resolve credentials and settings, or raise ConfigError naming what is missing."""
    env = os.environ if environ is None else environ
    missing = {name for name in REQUIRED_ENV if not env.get(name)}
    store = storage_dir(env)
    if store is None:
        missing.add(STORAGE_ENV)
    if missing:
        raise ConfigError(missing)

    settings = load_settings(settings_path)
    url = env.get(DATABASE_URL_ENV)
    if url:
        settings = settings.model_copy(
            update={"database": settings.database.model_copy(update={"url": url})})

    return Config(
        username=env[USERNAME_ENV],
        password=SecretStr(env[PASSWORD_ENV]),
        storage_dir=store,
        settings=settings,
    )
