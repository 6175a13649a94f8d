"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve config: prefer system config (installed), fall back to repo .env (dev)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_SYSTEM_CONF = Path("/etc/wxalert/wxalert.conf")
_ENV_FILE = _SYSTEM_CONF if _SYSTEM_CONF.exists() else _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    # Location (one fixed point; Malé, Maldives by default)
    latitude: float = 4.1755
    longitude: float = 73.5093
    location_name: str = "Malé, Maldives"

    # Open-Meteo
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    request_timeout: float = 15.0

    # Polling
    auto_refresh_interval_sec: int = 10 * 60
    auto_refresh_on_start: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "WXALERT_", "env_file": str(_ENV_FILE)}


settings = Settings()
