"""Top countries ranking with short-lived caching."""

from loguru import logger

from .cache import CACHE_KEY_TOP_COUNTRIES, Cache
from .directory import CountryDirectory
from .models import CountryDetail, Resolved, Unresolved
from .storage import Repository

DEFAULT_TOP_LIMIT = 10
TOP_FETCH_MULTIPLIER = 2
TOP_COUNTRIES_TTL = 300


class RankingEngine:
    """Top-N countries by vote count, enriched with directory metadata.

    The cached ranking is stored under one key regardless of ``limit``: a
    result computed for a small limit is served (sliced) to later callers
    asking for more until it expires or a vote invalidates it.
    """

    def __init__(
        self,
        repository: Repository,
        directory: CountryDirectory,
        cache: Cache,
        ttl: int = TOP_COUNTRIES_TTL,
        fetch_multiplier: int = TOP_FETCH_MULTIPLIER,
    ) -> None:
        self.repository = repository
        self.directory = directory
        self.cache = cache
        self.ttl = ttl
        self.fetch_multiplier = fetch_multiplier
        self._generation = 0

    async def get_top(self, limit: int = DEFAULT_TOP_LIMIT) -> list[CountryDetail]:
        """Get the most voted countries.

        Args:
            limit: Maximum number of countries to return.

        Returns:
            Countries sorted by vote count descending, each with ``vote_count`` set.

        Raises:
            StorageUnavailableError: If the vote aggregation fails.
        """
        cached = await self.cache.get(CACHE_KEY_TOP_COUNTRIES)
        if cached is not None:
            logger.debug("Returning cached top countries")
            return cached[:limit]

        generation = self._generation

        # Over-fetch so codes the directory cannot resolve don't shrink the ranking
        groups = await self.repository.count_by_country(limit * self.fetch_multiplier)

        top: list[CountryDetail] = []
        for code, votes in groups:
            if len(top) >= limit:
                break
            match await self.directory.resolve(code):
                case Resolved(country=country):
                    top.append(country.model_copy(update={"vote_count": votes}))
                case Unresolved(reason=reason):
                    logger.warning(f"Skipping {code} in ranking: {reason}")

        # invalidate() during the recompute makes this result stale
        if generation == self._generation:
            await self.cache.set(CACHE_KEY_TOP_COUNTRIES, top, self.ttl)
        else:
            logger.debug("Ranking invalidated during recompute; not caching")
        return top

    async def invalidate(self) -> None:
        """Drop the cached ranking; the next read recomputes it."""
        self._generation += 1
        await self.cache.delete(CACHE_KEY_TOP_COUNTRIES)
