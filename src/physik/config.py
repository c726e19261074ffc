# -----------------------------------------------------------------------------
# Runtime configuration
# Purpose: Read environment variables (optionally from .env) once into an
# immutable Settings object consumed by the API factory and services.
# -----------------------------------------------------------------------------

from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CATALOG_DIR = PROJECT_ROOT / "catalog"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    catalog_dir: str = str(DEFAULT_CATALOG_DIR)
    session_ttl_seconds: int = 24 * 60 * 60
    session_cookie_name: str = "physik_session"
    session_cookie_secure: bool = True
    bcrypt_rounds: int = 10
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "Settings":
        """
        Build Settings from the process environment.
        A .env file in the working directory is loaded first (existing
        variables win).
        """
        load_dotenv()
        return Settings(
            catalog_dir=os.getenv("CATALOG_DIR", str(DEFAULT_CATALOG_DIR)),
            session_ttl_seconds=int(float(os.getenv("SESSION_TTL_HOURS", "24")) * 3600),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", "physik_session"),
            session_cookie_secure=_env_bool("SESSION_COOKIE_SECURE", True),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
            api_host=os.getenv("API_HOST", "127.0.0.1"),
            api_port=int(os.getenv("API_PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
