from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DB_FILE = ARTIFACTS_DIR / "asset_ledger.db"


class AppSettings(BaseSettings):
    database_url: str = f"sqlite:///{DB_FILE}"
    db_echo: bool = False
    lock_timeout_seconds: float = 5.0
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    seed_assets_file: Path | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
