"""Runtime configuration loaded from the environment."""

import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ParseError

logger = logging.getLogger(__name__)

DEVELOPMENT_SECRET = "not very secret"


class LightdashConfig(BaseModel):
    """Settings for the backend process."""
    database_url: Optional[str] = Field(None, description="SQLAlchemy database URL")
    lightdash_secret: str = Field(..., description="Secret used to derive the encryption key")
    db_pool_size: int = Field(5, ge=1)
    db_max_overflow: int = Field(10, ge=0)
    site_url: str = "http://localhost:8080"
    log_level: str = "INFO"


def _get_lightdash_secret() -> str:
    secret = os.getenv("LIGHTDASH_SECRET")
    if secret:
        return secret
    if os.getenv("LIGHTDASH_ENV", "production") == "development":
        logger.warning("LIGHTDASH_SECRET is not set, using the development secret")
        return DEVELOPMENT_SECRET
    raise ParseError("Must specify LIGHTDASH_SECRET")


@lru_cache(maxsize=1)
def get_config() -> LightdashConfig:
    """Build the config from environment variables (and a .env file if present).

    Raises:
        ParseError: LIGHTDASH_SECRET is unset outside of development
    """
    load_dotenv()
    return LightdashConfig(
        database_url=os.getenv("DATABASE_URL"),
        lightdash_secret=_get_lightdash_secret(),
        db_pool_size=int(os.getenv("LIGHTDASH_DB_POOL_SIZE", "5")),
        db_max_overflow=int(os.getenv("LIGHTDASH_DB_MAX_OVERFLOW", "10")),
        site_url=os.getenv("SITE_URL", "http://localhost:8080"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
