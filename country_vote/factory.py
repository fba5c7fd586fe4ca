"""Service factory for dependency injection."""

from dataclasses import dataclass

from loguru import logger

from .cache import TTLCache
from .config import Settings, settings
from .directory import CountryDirectory
from .ranking import RankingEngine
from .statistics import StatisticsService
from .storage import Repository, create_repository
from .votes import VoteService


@dataclass
class Services:
    """Every component the HTTP layer talks to, wired together."""

    repository: Repository
    cache: TTLCache
    directory: CountryDirectory
    ranking: RankingEngine
    votes: VoteService
    statistics: StatisticsService


def build_services(
    config: Settings = settings,
    repository: Repository | None = None,
    directory: CountryDirectory | None = None,
    cache: TTLCache | None = None,
) -> Services:
    """Wire services from configuration; any component can be injected instead."""
    # An empty TTLCache is falsy, so compare against None
    if cache is None:
        cache = TTLCache(max_size=config.cache_max_size)
    if repository is None:
        repository = create_repository(config.database_url)
    if directory is None:
        directory = CountryDirectory(
            base_url=config.rest_countries_api,
            cache=cache,
            timeout=config.directory_timeout,
            ttl=config.countries_cache_ttl,
            retry_attempts=config.directory_retry_attempts,
        )
    ranking = RankingEngine(
        repository=repository,
        directory=directory,
        cache=cache,
        ttl=config.top_countries_cache_ttl,
        fetch_multiplier=config.top_fetch_multiplier,
    )
    return Services(
        repository=repository,
        cache=cache,
        directory=directory,
        ranking=ranking,
        votes=VoteService(repository=repository, ranking=ranking),
        statistics=StatisticsService(repository=repository, directory=directory),
    )


async def create_services(config: Settings = settings) -> Services:
    """Create and start all services for the configured environment."""
    services = build_services(config)

    await services.repository.startup()
    await services.directory.startup()

    logger.info("Services created successfully")
    return services


async def shutdown_services(services: Services) -> None:
    """Clean shutdown of all service components."""
    logger.info("Shutting down services")

    try:
        await services.directory.shutdown()
    except (ConnectionError, TimeoutError, OSError) as e:
        logger.warning(f"Directory shutdown failed: {e}")

    try:
        await services.repository.shutdown()
    except (ConnectionError, TimeoutError, OSError) as e:
        logger.warning(f"Repository shutdown failed: {e}")

    logger.info("Services shutdown complete")
