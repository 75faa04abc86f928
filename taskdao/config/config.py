"""
Configuration — Pydantic v2 Settings (env / .env)
=================================================

Purpose
-------
Centralized, strongly-typed configuration for the persistence layer using:
- Pydantic v2 `BaseSettings` for environment-driven values
- `pydantic-settings` v2 for `.env` loading and model config

Load Order & Behavior
---------------------
- Values are read from the environment; if not present, `.env` is used.
- Every field has a default, so importing this module never fails on a
  bare environment (the default is an in-memory SQLite database).
- `extra="ignore"`: unknown env vars are ignored (not an error).

Usage
-----
from taskdao.config.config import settings

# Example
driver = settings.DB_DRIVER_NAME
echo_sql = settings.DB_ECHO

Security
--------
- Never commit secrets or the `.env` file to source control.
- Prefer runtime environment variables in production (K8s/Secrets Manager/etc.).
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Persistence configuration loaded from environment variables
    or a `.env` file. Provides strongly typed access to environment values.

    When ``DB_URL`` is set it wins over the individual ``DB_*`` parts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DB_URL: Optional[str] = Field(None, description="Full SQLAlchemy URL (e.g., `postgresql+psycopg://u:p@host/db`).")
    DB_DRIVER_NAME: str = Field("sqlite", description="Database driver (e.g., `postgresql`, `mysql`, `sqlite`).")
    DB_USERNAME: Optional[str] = Field(None, description="Database username credential.")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password credential.")
    DB_HOST: Optional[str] = Field(None, description="Hostname or IP address of the database server.")
    DB_PORT: Optional[int] = Field(None, description="Port of the database server.")
    DB_DATABASE_NAME: Optional[str] = Field(None, description="Name of the database. Empty means in-memory for SQLite.")
    DB_ECHO: bool = Field(False, description="Log every SQL statement emitted by the engine.")
    DB_EXPIRE_ON_COMMIT: bool = Field(
        False, description="Expire loaded instances on commit. Off so DAO results stay readable after close."
    )


# Singleton instance of Settings, ready to be imported across the package
settings = Settings()
"""Defines a Settings object built from the environment and the .env file"""
