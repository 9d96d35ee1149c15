# stockledger/config.py
import logging
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.logging import RichHandler


class Settings(BaseSettings):
    # App
    app_name: str = "stock-ledger"
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # Store
    store_latency: float = 0.0
    transaction_max_attempts: int = 5

    # Client
    api_base_url: str = "http://127.0.0.1:8085"

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = None):
    level = level or get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
