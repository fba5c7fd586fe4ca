"""Type definitions for the Country Vote API."""

from datetime import datetime

from typing_extensions import TypedDict


class VoteRecord(TypedDict):
    """Database record for a vote."""

    id: str
    name: str
    email: str
    country_code: str
    country_name: str
    flag: str
    created_at: datetime | None


class RegionCount(TypedDict):
    """Votes counted for one region or sub-region."""

    region: str
    votes: int


class TimelineEntry(TypedDict):
    """Votes counted for one UTC calendar day (YYYY-MM-DD)."""

    date: str
    votes: int


DetailedStats = TypedDict(
    "DetailedStats",
    {
        "totalVotes": int,
        "uniqueCountries": int,
        "votesByRegion": list[RegionCount],
        "timeline": list[TimelineEntry],
    },
)
