"""Storage protocol definitions using typing.Protocol."""

from datetime import datetime
from typing import Protocol

from ..types import VoteRecord


class Repository(Protocol):
    """Repository protocol for vote persistence."""

    async def insert(
        self,
        id: str,
        name: str,
        email: str,
        country_code: str,
        country_name: str,
        flag: str,
        created_at: datetime,
    ) -> VoteRecord:
        """Insert a vote.

        Raises:
            UniqueConstraintError: If a vote with the same email exists.
        """
        ...

    async def find_by_email(self, email: str) -> VoteRecord | None:
        """Find the vote cast with an already-normalized email."""
        ...

    async def find_all(self, newest_first: bool = True) -> list[VoteRecord]:
        """Get all votes sorted by creation time."""
        ...

    async def count(self) -> int:
        """Count all votes."""
        ...

    async def count_by_country(self, limit: int | None = None) -> list[tuple[str, int]]:
        """Group votes by country code, sorted by vote count descending."""
        ...

    async def distinct_country_codes(self) -> list[str]:
        """Get the distinct country codes that received votes."""
        ...

    async def health_check(self) -> bool:
        """Check if repository is healthy."""
        ...

    async def startup(self) -> None:
        """Initialize repository on startup."""
        ...

    async def shutdown(self) -> None:
        """Cleanup repository on shutdown."""
        ...
