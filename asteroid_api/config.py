from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError
from .impact_model import HIT_THRESHOLD_PERCENT

ENGINE_LOCAL = "local"
ENGINE_REMOTE = "remote"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


@dataclass(frozen=True)
class Settings:
    engine: str = ENGINE_LOCAL
    hit_threshold: float = HIT_THRESHOLD_PERCENT
    pacing_delay_s: float = 0.0
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = GEMINI_BASE_URL
    remote_timeout_s: float = 30.0
    history_limit: int = 50


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.")


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    load_dotenv()

    engine = (os.getenv("IMPACT_ENGINE") or ENGINE_LOCAL).strip().lower()
    if engine not in (ENGINE_LOCAL, ENGINE_REMOTE):
        raise ConfigurationError(f"IMPACT_ENGINE must be '{ENGINE_LOCAL}' or '{ENGINE_REMOTE}', got {engine!r}.")

    history_limit = _float_env("HISTORY_LIMIT", 50)
    if history_limit < 1 or history_limit != int(history_limit):
        raise ConfigurationError("HISTORY_LIMIT must be a positive integer.")

    return Settings(
        engine=engine,
        hit_threshold=_float_env("IMPACT_HIT_THRESHOLD", HIT_THRESHOLD_PERCENT),
        pacing_delay_s=max(0.0, _float_env("IMPACT_PACING_DELAY_S", 0.0)),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL") or "gemini-2.5-flash",
        gemini_base_url=(os.getenv("GEMINI_BASE_URL") or GEMINI_BASE_URL).rstrip("/"),
        remote_timeout_s=_float_env("REMOTE_TIMEOUT_S", 30.0),
        history_limit=int(history_limit),
    )
