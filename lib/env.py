from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


TRUTHY = {"1", "true", "yes", "y", "on"}


def load_env() -> None:
    """
    Load .env into the process environment.
    No-op when no .env file is present.
    """
    # Prefer repo-root .env
    env_path = Path(".env")
    if env_path.is_file():
        load_dotenv(dotenv_path=env_path)
        return

    # Fallback: common pattern ".env/.env"
    alt = Path(".env") / ".env"
    if alt.exists():
        load_dotenv(dotenv_path=alt)


def env_flag(name: str, default: bool | None = False) -> bool | None:
    """Read a boolean switch; returns `default` when the variable is unset or blank."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUTHY


def env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()
