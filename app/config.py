import os
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

logger = logging.getLogger("pops.config")


class Settings(BaseSettings):
    app_name: str = "Real-Time Pop Service"

    database_url: str = "sqlite+aiosqlite:///./pops.db"
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: float = 10.0
    db_pool_recycle: int = 300
    # SQLite only: seconds a writer waits on a locked database file
    db_busy_timeout: float = 5.0

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    max_body_bytes: int = 32_000_000

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def describe_database_target(database_url: str) -> str:
    """Return the host/path part of a database URL, without credentials."""
    if not database_url:
        return "not configured"
    if "@" in database_url:
        return database_url.split("@")[-1]
    return database_url.split("://")[-1] or "local"


def log_environment_status(settings: Settings):
    """Logs the presence of critical environment variables without leaking secrets."""
    logger.info("--- POP SERVICE ENVIRONMENT STATUS ---")
    vars_to_check = [
        "DATABASE_URL",
        "DB_POOL_SIZE",
        "DB_MAX_OVERFLOW",
        "PORT",
        "LOG_LEVEL",
        "MAX_BODY_BYTES",
    ]
    for var in vars_to_check:
        val = os.environ.get(var)
        status = "SET (Length: " + str(len(val)) + ")" if val else "NOT SET / DEFAULT"
        logger.info(f"{var}: {status}")
    logger.info(
        f"Database target: {describe_database_target(settings.database_url)}"
    )
    logger.info("--------------------------------------")
