"""Environment-driven settings for EnkaBot."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import bool_from_env, float_from_env, int_from_env, path_from_env, str_from_env

BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_PAGE_BASE_URL = "https://enka.network"
DEFAULT_API_BASE_URL = "https://enka.network"
DEFAULT_DATA_SOURCE = "https://raw.githubusercontent.com/EnkaNetwork/API-docs/master/store"
DEFAULT_CACHE_MAX_AGE_MS = 300_000
DEFAULT_NAV_TIMEOUT_MS = 60_000
DEFAULT_WATERMARK = "EnkaBot & Enka Network"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    cache_max_age_ms: int = DEFAULT_CACHE_MAX_AGE_MS
    page_base_url: str = DEFAULT_PAGE_BASE_URL
    api_base_url: str = DEFAULT_API_BASE_URL
    data_source: str = DEFAULT_DATA_SOURCE
    navigation_timeout_ms: int = DEFAULT_NAV_TIMEOUT_MS
    capture_timeout: Optional[float] = None
    watermark: str = DEFAULT_WATERMARK
    default_locale: str = "en"
    headless: bool = True

    @property
    def names_file(self) -> Path:
        return self.data_dir / "names.json"

    @property
    def characters_file(self) -> Path:
        return self.data_dir / "characters.json"

    @property
    def aliases_file(self) -> Path:
        return self.data_dir / "aliases.yml"

    @property
    def users_file(self) -> Path:
        return self.data_dir / "users.json"


def _resolve_data_dir() -> Path:
    data_dir = path_from_env("ENKABOT_DATA_DIR") or Path("data")
    if not data_dir.is_absolute():
        data_dir = (BASE_DIR / data_dir).resolve()
    return data_dir


def load_settings() -> Settings:
    capture_timeout = float_from_env("ENKABOT_CAPTURE_TIMEOUT", 0.0)
    return Settings(
        data_dir=_resolve_data_dir(),
        cache_max_age_ms=int_from_env("ENKABOT_CACHE_MAX_AGE", DEFAULT_CACHE_MAX_AGE_MS),
        page_base_url=str_from_env("ENKABOT_PAGE_BASE_URL", DEFAULT_PAGE_BASE_URL).rstrip("/"),
        api_base_url=str_from_env("ENKABOT_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        data_source=str_from_env("ENKABOT_DATA_SOURCE", DEFAULT_DATA_SOURCE).rstrip("/"),
        navigation_timeout_ms=int_from_env("ENKABOT_NAV_TIMEOUT", DEFAULT_NAV_TIMEOUT_MS),
        capture_timeout=capture_timeout if capture_timeout > 0 else None,
        watermark=str_from_env("ENKABOT_WATERMARK", DEFAULT_WATERMARK),
        default_locale=str_from_env("ENKABOT_DEFAULT_LOCALE", "en"),
        headless=bool_from_env("ENKABOT_HEADLESS", True),
    )


__all__ = ["BASE_DIR", "Settings", "load_settings"]
