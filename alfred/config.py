"""Configuration management for Alfred.

This module handles all configuration settings including file paths,
swarm defaults and environment variables. Settings are loaded from .env
file if present.
"""

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

_DEFAULT_DIRECTORY = str(Path(__file__).parent / "data" / "directory.json")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    """Application settings and configuration.

    All settings are immutable (frozen=True) to prevent accidental modification.
    Values can be overridden via environment variables.

    Attributes:
        directory_path: Path to the JSON provider directory.
        user_timezone: IANA zone the user lives in. Only used to work out
                       "today" and "tomorrow"; slot strings are never shifted.
        use_google_apis: Search Google Places before the local directory.
        google_maps_api_key: Key for the Places client.
        places_timeout_s: Request timeout for Places lookups.
        max_concurrent_calls: Default swarm batch size.
        call_timeout_ms: Default per-call timeout.
        stop_on_first_success: Default early-stop behaviour of a swarm.
        sim_time_scale: Multiplier for simulated call delays when sleeping
                        (0 = don't sleep). Transcript delays are unaffected.
        log_path: File the flushing log handler writes to.
        log_level: Root level for the ``alfred`` logger.
    """
    directory_path: str = os.getenv("DIRECTORY_PATH", _DEFAULT_DIRECTORY)
    user_timezone: str = os.getenv("USER_TIMEZONE", "America/New_York")

    use_google_apis: bool = _env_flag("USE_GOOGLE_APIS", "false")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    places_timeout_s: float = float(os.getenv("PLACES_TIMEOUT_S", "4.0"))

    max_concurrent_calls: int = int(os.getenv("MAX_CONCURRENT_CALLS", "5"))
    call_timeout_ms: int = int(os.getenv("CALL_TIMEOUT_MS", "15000"))
    stop_on_first_success: bool = _env_flag("STOP_ON_FIRST_SUCCESS", "true")
    sim_time_scale: float = float(os.getenv("SIM_TIME_SCALE", "1.0"))

    log_path: str = os.getenv("LOG_PATH", "artifacts/alfred.log")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

# Global settings instance - import this in other modules
settings = Settings()
