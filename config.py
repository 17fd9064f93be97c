"""
config.py
Settings (pydantic-settings) + logging setup.

All values can be overridden with CLUB_* environment variables or a .env file.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CLUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    club_name: str = Field(default="Club Dues", description="Shown in the sidebar and page title")
    db_file: Path = Field(
        default=Path(__file__).with_name("club.db"),
        description="Local SQLite store",
    )

    # Remote table API (PostgREST style). Empty url = local store only.
    remote_url: str = Field(default="", description="Base URL of the remote table API")
    remote_api_key: str = Field(default="", description="API key sent with every remote call")
    remote_timeout: float = Field(default=10.0, gt=0, description="Remote request timeout (seconds)")

    monthly_dues: int = Field(default=50000, ge=0, description="Club-wide default monthly dues")
    currency_symbol: str = Field(default="₩")
    log_level: str = Field(default="INFO")

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_url.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once (Streamlit reruns the script on every interaction)."""
    root = logging.getLogger()
    level_name = (level or get_settings().log_level).upper()
    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    else:
        root.setLevel(level_name)
