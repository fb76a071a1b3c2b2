from __future__ import annotations

import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base

logger = logging.getLogger(__name__)


def get_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)
    timeout = settings.db_timeout_seconds

    if url.get_backend_name() == "sqlite":
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        # in-memory databases live in one connection; share it across threads
        if not url.database or url.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    connect_args = {}
    if url.get_backend_name() == "postgresql":
        connect_args["options"] = f"-c statement_timeout={int(timeout * 1000)}"
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=timeout,
        connect_args=connect_args,
    )


def init_db(engine: Engine, attempts: int = 30, delay: float = 1.0) -> None:
    # The database container might not be ready when the API boots.
    last_exc: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database schema ready")
            return
        except Exception as exc:  # noqa: BLE001
            last_exc = exc
            logger.warning("DB init attempt %d/%d failed: %s", attempt, attempts, exc)
            time.sleep(delay)
    raise RuntimeError(f"DB init failed after retries: {last_exc}")
