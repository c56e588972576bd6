"""Configuration loading from environment variables with validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Anchor all paths to the project root (three levels up from this file)
_PROJECT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="INKPOST_",
        case_sensitive=False,
    )

    # Storage
    storage_backend: Literal["memory", "files", "sqlite"] = "files"
    data_dir: Path = _PROJECT_DIR / "data" / "store"
    db_path: Path = _PROJECT_DIR / "data" / "inkpost.db"
    export_dir: Path = _PROJECT_DIR / "data" / "site"

    # Sessions: "local" checks credentials in the store, "remote" asks the backend
    session_backend: Literal["local", "remote"] = "local"
    remote_url: str = ""
    # Loaded separately, no prefix
    remote_api_key: str = ""

    # Accounts
    seed_password: str = "changeme"
    min_password_length: int = 6
    # werkzeug generate_password_hash method, e.g. "scrypt" or "pbkdf2:sha256"
    password_hash_method: str = "scrypt"

    # Posts
    excerpt_length: int = 150

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"


def get_settings() -> Settings:
    """Load settings from environment and .env file."""
    # Load .env from the project root regardless of cwd
    load_dotenv(_PROJECT_DIR / ".env")
    api_key = os.getenv("REMOTE_API_KEY", "")
    return Settings(remote_api_key=api_key)
