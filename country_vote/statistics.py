"""Vote analytics computed directly from the vote store on every call."""

from collections import Counter

from loguru import logger

from .directory import CountryDirectory
from .models import NOT_AVAILABLE, Resolved, Unresolved
from .storage import Repository
from .types import DetailedStats, RegionCount, TimelineEntry


class StatisticsService:
    """Aggregate statistics for dashboards.

    Nothing here is cached; each view re-reads the vote store.
    """

    def __init__(self, repository: Repository, directory: CountryDirectory) -> None:
        self.repository = repository
        self.directory = directory

    async def total_votes(self) -> int:
        return await self.repository.count()

    async def unique_countries(self) -> int:
        return len(await self.repository.distinct_country_codes())

    async def by_region(self) -> list[RegionCount]:
        """Votes per sub-region (region when no sub-region is known).

        Votes whose country the directory cannot resolve are left out, so the
        sum over regions can be lower than the total vote count.
        """
        counts: Counter[str] = Counter()
        for vote in await self.repository.find_all(newest_first=False):
            match await self.directory.resolve(vote["country_code"]):
                case Resolved(country=country):
                    if country.subregion and country.subregion != NOT_AVAILABLE:
                        counts[country.subregion] += 1
                    else:
                        counts[country.region] += 1
                case Unresolved(code=code):
                    logger.debug(f"Excluding vote for unresolved country {code} from regions")
        return [{"region": region, "votes": votes} for region, votes in counts.items()]

    async def timeline(self) -> list[TimelineEntry]:
        """Votes per UTC calendar day, oldest day first."""
        counts: Counter[str] = Counter()
        for vote in await self.repository.find_all(newest_first=False):
            if vote["created_at"] is None:
                continue
            counts[vote["created_at"].date().isoformat()] += 1
        return [{"date": day, "votes": counts[day]} for day in sorted(counts)]

    async def detailed_stats(self) -> DetailedStats:
        return {
            "totalVotes": await self.total_votes(),
            "uniqueCountries": await self.unique_countries(),
            "votesByRegion": await self.by_region(),
            "timeline": await self.timeline(),
        }
