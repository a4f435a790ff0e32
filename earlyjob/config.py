"""Settings loader.

Secrets come from config/.env (or the process environment); everything else
from config/settings.yaml. Missing files fall back to defaults, malformed
ones are fatal.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from earlyjob.errors import FatalError
from earlyjob.models import SignalEvent
from earlyjob.scrapers.greenhouse import GreenhouseFeed

logger = logging.getLogger(__name__)

ENV_PATH = "config/.env"
DEFAULT_SETTINGS_PATH = "config/settings.yaml"

ENV_OVERRIDES = {
    "ADZUNA_APP_ID": ("adzuna", "app_id"),
    "ADZUNA_APP_KEY": ("adzuna", "app_key"),
    "RAPIDAPI_KEY": ("jsearch", "api_key"),
}


class AdzunaConfig(BaseModel):
    enabled: bool = True
    app_id: str = ""
    app_key: str = ""
    country: str = "us"
    results_per_page: int = 50
    what: Optional[str] = None
    monthly_limit: int = 250


class GreenhouseConfig(BaseModel):
    enabled: bool = True
    feeds: list[GreenhouseFeed] = [
        GreenhouseFeed(
            url="https://boards.greenhouse.io/embed/job_board?for=airbnb&format=rss",
            company="Airbnb",
        )
    ]
    monthly_limit: int = 10000


class JSearchConfig(BaseModel):
    enabled: bool = False
    api_key: str = ""
    query: str = "software engineer"
    remote: bool = False
    monthly_limit: int = 200


class HNHiringConfig(BaseModel):
    enabled: bool = False
    monthly_limit: int = 10000


class Settings(BaseModel):
    db_path: str = "data/earlyjob.db"
    log_level: str = "INFO"
    interval_hours: int = 4
    rotation_window: int = 5
    sources_per_run: int = 2
    request_timeout: float = 30.0
    signals_file: str = "config/signals.yaml"
    adzuna: AdzunaConfig = AdzunaConfig()
    greenhouse: GreenhouseConfig = GreenhouseConfig()
    jsearch: JSearchConfig = JSearchConfig()
    hn_hiring: HNHiringConfig = HNHiringConfig()


def _read_yaml(path: Path):
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FatalError(f"Invalid YAML in {path}: {e}") from e


def load_settings(path: Optional[str] = None) -> Settings:
    load_dotenv(ENV_PATH)

    settings_path = Path(path or DEFAULT_SETTINGS_PATH)
    raw = {}
    if settings_path.exists():
        raw = _read_yaml(settings_path) or {}
        if not isinstance(raw, dict):
            raise FatalError(f"{settings_path} must contain a mapping")
    else:
        logger.warning("Settings file not found at %s, using defaults", settings_path)

    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            raw.setdefault(section, {})[key] = value
    if os.getenv("EARLYJOB_DB_PATH"):
        raw["db_path"] = os.getenv("EARLYJOB_DB_PATH")

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise FatalError(f"Invalid settings in {settings_path}: {e}") from e


def load_signal_events(path: str) -> list[SignalEvent]:
    """Read hiring signal events from a YAML list (or a mapping with `signals`)"""
    signals_path = Path(path)
    if not signals_path.exists():
        raise FatalError(f"Signals file not found: {signals_path}")

    raw = _read_yaml(signals_path) or []
    if isinstance(raw, dict):
        raw = raw.get("signals", [])

    try:
        return [SignalEvent.model_validate(item) for item in raw]
    except ValidationError as e:
        raise FatalError(f"Invalid signal in {signals_path}: {e}") from e
