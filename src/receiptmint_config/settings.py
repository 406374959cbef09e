"""Application settings loaded from environment variables.

Configuration file discovery (in priority order):
1. OS environment variables (always highest priority)
2. RECEIPTMINT_ENV_FILE environment variable (path to .env file)
3. config/.env.dev - local development
4. config/.env - production/Docker

Uses pydantic-settings for automatic type coercion and validation.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_root() -> Path:
    """Find the project root directory."""
    current = Path(__file__).resolve().parent

    for parent in [current, *current.parents]:
        if (parent / "config").is_dir():
            return parent
        if (parent / "pyproject.toml").is_file():
            return parent
        if (parent / ".git").is_dir():
            return parent

    return Path(__file__).resolve().parents[2]


def get_config_dir() -> Path:
    """Get the config directory path."""
    return _find_project_root() / "config"


def _resolve_env_file_path() -> Path | None:
    """Resolve the .env file path.

    Priority:
    1. RECEIPTMINT_ENV_FILE env var (full path)
    2. config/.env.dev (local development)
    3. config/.env (production)
    """
    env_file_path = os.environ.get("RECEIPTMINT_ENV_FILE")
    if env_file_path:
        path = Path(env_file_path)
        if not path.is_absolute():
            path = _find_project_root() / path
        if path.exists():
            return path

    config_dir = get_config_dir()

    dev_env = config_dir / ".env.dev"
    if dev_env.exists():
        return dev_env

    prod_env = config_dir / ".env"
    if prod_env.exists():
        return prod_env

    return None


MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
FILE_DATABASE_URL = "sqlite+aiosqlite:///receiptmint.db"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Values are loaded from:
    1. OS environment variables (highest priority)
    2. .env file (config/.env.dev or config/.env)
    3. Default values

    The defaults run the whole pipeline against the in-memory content store
    and ledger, which is what local development and the test-suite use.
    """

    model_config = SettingsConfigDict(
        env_file=_resolve_env_file_path(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "receiptmint"
    debug: bool = False

    # Mint record store (idempotency index). Unset means an in-memory database
    # for the memory ledger and a local file otherwise
    database_url: str | None = None

    # Content store (IPFS_ prefix)
    content_store_backend: Literal["memory", "ipfs"] = "memory"
    ipfs_api_url: str = "https://ipfs.infura.io:5001"
    ipfs_project_id: str = ""
    ipfs_project_secret: SecretStr | None = None
    ipfs_timeout: float = 30.0

    # Ledger (LEDGER_ prefix)
    ledger_backend: Literal["memory", "jsonrpc"] = "memory"
    ledger_rpc_url: str = "http://localhost:8545"
    ledger_timeout: float = 15.0
    # Hex encoded 32 byte Ed25519 seed; an ephemeral identity is generated
    # for the memory backend when unset
    signer_private_key: SecretStr | None = None

    # Retry policy
    publish_max_attempts: int = 4
    mint_max_attempts: int = 3
    retry_base_delay: float = 0.5
    retry_max_delay: float = 8.0
    retry_jitter: float = 0.25
    publish_attempt_timeout: float = 20.0
    mint_attempt_timeout: float = 90.0
    pipeline_deadline: float = 180.0

    # Confirmation
    confirmation_timeout: float = 60.0
    confirmation_poll_interval: float = 1.0
    await_finality: bool = False

    # Key custody: the raw key is part of the pipeline result unless disabled
    return_key_in_result: bool = True

    # Logging (LOG_ prefix)
    log_level: str = "INFO"

    @field_validator("publish_max_attempts", "mint_max_attempts")
    @classmethod
    def _validate_attempts(cls, v: int) -> int:
        """At least one attempt is always made."""
        if v < 1:
            msg = "Attempt ceilings must be at least 1"
            raise ValueError(msg)
        return v

    @property
    def effective_database_url(self) -> str:
        """Mint records never outlive the ledger they point into."""
        if self.database_url:
            return self.database_url
        if self.ledger_backend == "memory":
            return MEMORY_DATABASE_URL
        return FILE_DATABASE_URL

    @property
    def ephemeral_backends(self) -> list[str]:
        """Backends whose state is lost when the process exits."""
        names = []
        if self.content_store_backend == "memory":
            names.append("content store")
        if self.ledger_backend == "memory":
            names.append("ledger")
        return names

    @property
    def ipfs_auth(self) -> tuple[str, str] | None:
        """Basic auth pair for the IPFS API, if credentials are configured."""
        if not self.ipfs_project_id or self.ipfs_project_secret is None:
            return None
        return (self.ipfs_project_id, self.ipfs_project_secret.get_secret_value())


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
