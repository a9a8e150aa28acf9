"""Application configuration and logging setup.

This module defines the application settings loaded from environment
variables and provides helpers for accessing cached settings and for
configuring loguru as the single logging backend.
"""

import logging
import sys
from functools import lru_cache
from typing import List

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_DAYS: Session token lifetime in days.
        PASSWORD_HASH_ROUNDS: bcrypt cost factor.
        DEFAULT_PAGE_LIMIT: Page size used when ``limit`` is missing or invalid.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        LOG_LEVEL: Minimum level written by the loguru sink.
        CREATE_TABLES_ON_STARTUP: Create missing tables when the app starts.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="allow")

    DATABASE_URL: str = "sqlite:///./app.db"
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 3
    PASSWORD_HASH_ROUNDS: int = 10
    DEFAULT_PAGE_LIMIT: int = 25
    ALLOWED_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    CREATE_TABLES_ON_STARTUP: bool = True


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Redirect standard ``logging`` records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # uvicorn access lines duplicate the request middleware
        if record.name == "uvicorn.access":
            return
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(level: str | None = None) -> None:
    """Install the loguru sink and route stdlib logging through it.

    Args:
        level (str | None): Log level override; defaults to ``LOG_LEVEL``.
    """

    level = level or get_settings().LOG_LEVEL

    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
        colorize=True,
        backtrace=False,
        diagnose=False,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.error", "sqlalchemy.engine"):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False
