"""
Service configuration.

Read from environment variables prefixed with 'MESH_' (and an optional '.env'
file). Transport credentials are only required when the Azure backends are
built; tests construct the orchestrator directly and never touch them.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ROOT = Path(__file__).parents[3]  # <project-root>/


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MESH_", env_file=".env", extra="ignore")

    # Service
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    json_logs: bool = False

    # Transport (Azure Communication Services)
    acs_connection_string: str = ""
    acs_endpoint_url: str = ""

    # Local metadata store
    store_backend: Literal["memory", "json"] = "memory"
    data_dir: Path = _ROOT / "backend" / "data"
    minted_identities_path: Path = _ROOT / "backend" / "minted_identities.json"

    # Responder
    responder_backend: Literal["openai", "webhook", "none"] = "none"
    openai_api_key: str = ""
    openai_base_url: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.5
    responder_webhook_url: str = ""
    responder_webhook_timeout: float = 10.0

    # Assistant profile
    assistant_tagline: str = "Always-on finance guide"
    assistant_persona: str = "Financial wellness coach"


@lru_cache
def get_settings() -> Settings:
    return Settings()
