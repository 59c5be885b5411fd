"""Application configuration loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Luna"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | test | production

    # --- Storage ---
    storage_path: Path = Path.home() / ".luna" / "storage.json"
    storage_max_bytes: int = 5 * 1024 * 1024  # 5 MB, same budget as browser localStorage
    storage_key_prefix: str = "luna"
    advice_retention_days: int = 30

    # --- Gemini ---
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    advice_language: str = "Vietnamese"
    advice_timeout_seconds: float = 30.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
