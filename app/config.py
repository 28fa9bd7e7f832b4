"""Application configuration from environment."""
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

# Load .env from project root (parent of app/) so env vars are available everywhere
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Settings(BaseSettings):
    app_name: str = "Options Admin"
    app_env: str = "development"
    debug: bool = True

    database_url: str = "sqlite:///./options_admin.db"
    seed_reference_options: bool = True

    # Where the editor core finds the options API
    options_api_base_url: str = "http://localhost:8000"
    options_api_timeout_seconds: float = 10.0

    @field_validator("options_api_base_url", mode="before")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    # Confirmations required before a hierarchy item is deleted
    hierarchy_delete_confirm_steps: int = 3

    @field_validator("hierarchy_delete_confirm_steps")
    @classmethod
    def at_least_one_step(cls, v: int) -> int:
        if v < 1:
            raise ValueError("hierarchy_delete_confirm_steps must be >= 1")
        return v

    class Config:
        env_file = str(_env_path)
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
