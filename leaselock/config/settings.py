# leaselock/config/settings.py

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LockSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEASELOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "leaselock"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Lock defaults (milliseconds) ---
    lock_backend: Literal["file", "dynamodb", "redis"] = "file"
    lock_timeout_ms: int = Field(30000, ge=0)
    lock_retries: int = Field(2, ge=0)
    lock_retry_delay_ms: int = Field(1000, ge=0)

    # --- File backend ---
    lock_file_path: str = ".leaselock/locks.json"

    # --- DynamoDB backend ---
    dynamodb_table_name: str = "leaselock-locks"
    dynamodb_hash_key: str = "path_key"
    dynamodb_endpoint_url: Optional[str] = None
    aws_region: str = "ap-southeast-2"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None

    # --- Redis backend ---
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "lock:"

    # --- Observability ---
    enable_metrics: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> LockSettings:
    return LockSettings()


# Singleton for direct import (e.g. in infrastructure clients)
settings = get_settings()
