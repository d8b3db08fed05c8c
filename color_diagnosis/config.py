"""
Runtime configuration for the personal color diagnosis service.

All settings come from the environment (a local .env file is honoured) and
are read once at process start.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

API_KEY_PLACEHOLDER = "YOUR_GEMINI_API_KEY_HERE"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_RATE_LIMIT_MAX = 10
DEFAULT_RATE_LIMIT_WINDOW_MINUTES = 60
DEFAULT_SWEEP_MINUTES = 10

MODE_DATA = "data"
MODE_IMAGE = "image"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_positive_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, ""))
    except ValueError:
        return default
    return value if value > 0 else default


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


def _api_key() -> Optional[str]:
    key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    if not key or key == API_KEY_PLACEHOLDER:
        return None
    return key


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL
    mode: str = MODE_DATA
    enabled: bool = True
    rate_limit_max: int = DEFAULT_RATE_LIMIT_MAX
    rate_limit_window_minutes: int = DEFAULT_RATE_LIMIT_WINDOW_MINUTES
    sweep_minutes: int = DEFAULT_SWEEP_MINUTES
    mongo_url: Optional[str] = None
    mongo_db: str = "apl_demo"
    mongo_collection: str = "00_landing-demo-data"
    cors_origins: list[str] = field(default_factory=list)
    # Peers whose X-Forwarded-For header is believed; "*" trusts any peer
    trusted_proxies: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def rate_limit_window_seconds(self) -> int:
        return self.rate_limit_window_minutes * 60

    @property
    def sweep_seconds(self) -> int:
        return self.sweep_minutes * 60

    @classmethod
    def from_env(cls) -> "Settings":
        mode = os.getenv("DIAGNOSIS_MODE", MODE_DATA).strip().lower()
        if mode not in (MODE_DATA, MODE_IMAGE):
            mode = MODE_DATA
        return cls(
            api_key=_api_key(),
            model_name=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            mode=mode,
            enabled=_env_bool("DIAGNOSIS_ENABLED", True),
            rate_limit_max=_env_positive_int("RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX),
            rate_limit_window_minutes=_env_positive_int(
                "RATE_LIMIT_WINDOW_MINUTES", DEFAULT_RATE_LIMIT_WINDOW_MINUTES
            ),
            sweep_minutes=_env_positive_int("RATE_LIMIT_SWEEP_MINUTES", DEFAULT_SWEEP_MINUTES),
            mongo_url=os.getenv("MONGO_URL") or None,
            mongo_db=os.getenv("MONGO_DB", "apl_demo"),
            mongo_collection=os.getenv("MONGO_COLLECTION", "00_landing-demo-data"),
            cors_origins=_env_list("CORS_ORIGINS"),
            trusted_proxies=_env_list("TRUSTED_PROXIES"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON", True),
        )
