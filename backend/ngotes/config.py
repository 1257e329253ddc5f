from __future__ import annotations

import os
from pathlib import Path

# repository_root/data (we are in backend/ngotes/)
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


def data_dir() -> Path:
    return Path(os.getenv("APP_DATA_DIR", str(DEFAULT_DATA_DIR)))


def db_name() -> str:
    return os.getenv("NOTES_DB_NAME", "ngotes")


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def jwt_secret() -> str:
    s = os.getenv("JWT_SECRET", "")
    if not s:
        # tests/dev set it in env; required in prod
        raise RuntimeError("JWT_SECRET is not set")
    return s


def jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def access_token_minutes() -> int:
    return _int_env("JWT_EXP_MINUTES", 60)


def confirm_token_minutes() -> int:
    return _int_env("CONFIRM_EXP_MINUTES", 60 * 24)


def bcrypt_rounds() -> int | None:
    raw = os.getenv("BCRYPT_ROUNDS")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def cors_origins() -> list[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
