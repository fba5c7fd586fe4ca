"""Storage module with factory for creating repository instances."""

from urllib.parse import urlparse

from loguru import logger

from ..config import settings
from ..exceptions import ConfigurationError
from .protocols import Repository
from .sqlite import SQLiteRepository

SUPPORTED_SCHEMES = ("sqlite",)


def create_repository(database_url: str | None = None) -> Repository:
    """Create repository instance based on database URL.

    Args:
        database_url: Database URL. Uses settings if not provided.

    Returns:
        Repository instance.

    Raises:
        ConfigurationError: If the URL names an unsupported database.
    """
    url = database_url or settings.database_url
    scheme = urlparse(url).scheme

    # Driver suffix is optional, e.g. sqlite+aiosqlite
    if scheme.split("+", 1)[0] not in SUPPORTED_SCHEMES:
        raise ConfigurationError(
            f"Unsupported database URL scheme '{scheme}'. "
            f"Expected one of: {', '.join(SUPPORTED_SCHEMES)}"
        )

    logger.info(f"Creating SQL repository ({scheme})")
    return SQLiteRepository(url)


__all__ = [
    "Repository",
    "SQLiteRepository",
    "create_repository",
]
