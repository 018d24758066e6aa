"""Runtime configuration for the TeamFlow API.

Values come from environment variables prefixed with ``TEAMFLOW_`` or from a
``.env`` file next to the process working directory.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreBackend(str, Enum):
    MEMORY = "memory"
    JSON = "json"


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TEAMFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    store_backend: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="Record store implementation: memory or json",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per slot when store_backend=json",
    )
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Origin used to build public share links",
    )

    host: str = "0.0.0.0"
    port: int = 8000

    log_level: str = Field(default="INFO", description="Root log level")
    log_format: LogFormat = LogFormat.CONSOLE


@lru_cache()
def get_settings() -> Settings:
    return Settings()
