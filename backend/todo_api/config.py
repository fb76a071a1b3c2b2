from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel


class Settings(BaseModel):
    database_url: str
    jwt_secret: str
    jwt_ttl_minutes: int = 60
    pbkdf2_iters: int = 200000
    db_timeout_seconds: float = 10.0
    db_init_attempts: int = 30
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} is required")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    return Settings(
        database_url=_required(env, "DATABASE_URL"),
        jwt_secret=_required(env, "JWT_SECRET"),
        jwt_ttl_minutes=int(env.get("JWT_TTL_MINUTES", "60")),
        pbkdf2_iters=int(env.get("PBKDF2_ITERS", "200000")),
        db_timeout_seconds=float(env.get("DB_TIMEOUT_SECONDS", "10")),
        db_init_attempts=int(env.get("DB_INIT_ATTEMPTS", "30")),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", "8080")),
    )
