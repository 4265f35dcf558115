from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import FrozenSet, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(_ROOT_DIR / ".env")
load_dotenv()  # fallback to current working directory

# Administrative and test accounts, compared against the student key.
DEFAULT_EXCLUDED_ACCOUNTS: FrozenSet[str] = frozenset({
    "DANIEL SOLARTE",
    "PREICFES SEAMOS GENIOS",
    "DANIEL CAMILO CUSPOCA QUITIAN",
    "PREINTENSIVO SEAMOSGENIOS",
})


def _env_accounts(name: str) -> FrozenSet[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return DEFAULT_EXCLUDED_ACCOUNTS
    return frozenset(k.strip().upper() for k in raw.split(";") if k.strip())


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Settings(BaseModel):
    app_name: str = Field(default_factory=lambda: os.getenv("APP_NAME", "Panel de Asistencia"))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    log_file: Optional[str] = Field(default_factory=lambda: os.getenv("LOG_FILE") or None)
    excluded_accounts: FrozenSet[str] = Field(default_factory=lambda: _env_accounts("EXCLUDED_ACCOUNTS"))
    duration_reference_minutes: float = Field(
        default_factory=lambda: _env_float("DURATION_REFERENCE_MINUTES", 120.0)
    )
    export_filename_prefix: str = Field(
        default_factory=lambda: os.getenv("EXPORT_FILENAME_PREFIX", "reporte_asistencia")
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
