"""SQL repository implementation."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import databases
import sqlalchemy as sa
from loguru import logger
from sqlalchemy.schema import CreateIndex, CreateTable

from ..exceptions import StorageUnavailableError, UniqueConstraintError
from ..types import VoteRecord


def _is_unique_violation(error: Exception) -> bool:
    return isinstance(error, sqlite3.IntegrityError | sa.exc.IntegrityError) and (
        "unique" in str(error).lower()
    )


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    """Translate driver errors into storage exceptions."""
    try:
        yield
    except StorageUnavailableError:
        raise
    except Exception as e:
        if _is_unique_violation(e):
            raise UniqueConstraintError(f"Unique constraint rejected {operation}: {e}") from e
        logger.error(f"Storage error during {operation}: {e}")
        raise StorageUnavailableError(f"Failed to {operation}: {e}") from e


class SQLiteRepository:
    """SQLite vote repository using databases."""

    def __init__(self, database_url: str):
        """Initialize SQL repository.

        Args:
            database_url: Database connection URL.
        """
        self.database = databases.Database(database_url)
        self.metadata = sa.MetaData()

        # One vote per normalized email is enforced here, not only in the service
        self.votes = sa.Table(
            "votes",
            self.metadata,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("country_code", sa.String(3), nullable=False, index=True),
            sa.Column("country_name", sa.String(200), nullable=False),
            sa.Column("flag", sa.Text, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )

    async def startup(self) -> None:
        """Initialize database connection and create tables."""
        url = self.database.url
        if url.dialect == "sqlite" and url.database not in ("", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        with _storage_errors("connect to database"):
            await self.database.connect()
            await self._create_tables()
        logger.info("Vote repository connected")

    async def shutdown(self) -> None:
        """Close database connection."""
        if self.database.is_connected:
            await self.database.disconnect()

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
            UniqueConstraintError: If the email has already voted.
            StorageUnavailableError: On any other database failure.
        """
        record: VoteRecord = {
            "id": id,
            "name": name,
            "email": email,
            "country_code": country_code,
            "country_name": country_name,
            "flag": flag,
            "created_at": _as_utc(created_at),
        }
        with _storage_errors("insert vote"):
            await self.database.execute(self.votes.insert().values(**record))
        return record

    async def find_by_email(self, email: str) -> VoteRecord | None:
        query = self.votes.select().where(self.votes.c.email == email)
        with _storage_errors("find vote by email"):
            row = await self.database.fetch_one(query)
        return self._to_record(row) if row else None

    async def find_all(self, newest_first: bool = True) -> list[VoteRecord]:
        """Get all votes.

        Args:
            newest_first: Sort by creation time descending when True.

        Returns:
            List of vote records.
        """
        order = self.votes.c.created_at.desc() if newest_first else self.votes.c.created_at.asc()
        query = self.votes.select().order_by(order)
        with _storage_errors("list votes"):
            rows = await self.database.fetch_all(query)
        return [self._to_record(row) for row in rows]

    async def count(self) -> int:
        query = sa.select(sa.func.count()).select_from(self.votes)
        with _storage_errors("count votes"):
            total = await self.database.fetch_val(query)
        return int(total or 0)

    async def count_by_country(self, limit: int | None = None) -> list[tuple[str, int]]:
        """Group votes by country code.

        Args:
            limit: Maximum number of groups to return.

        Returns:
            (country_code, votes) pairs sorted by votes descending.
        """
        votes = sa.func.count(self.votes.c.id).label("votes")
        query = (
            sa.select(self.votes.c.country_code, votes)
            .group_by(self.votes.c.country_code)
            .order_by(votes.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        with _storage_errors("aggregate votes by country"):
            rows = await self.database.fetch_all(query)
        return [(row["country_code"], int(row["votes"])) for row in rows]

    async def distinct_country_codes(self) -> list[str]:
        query = sa.select(self.votes.c.country_code).distinct()
        with _storage_errors("list distinct country codes"):
            rows = await self.database.fetch_all(query)
        return [row["country_code"] for row in rows]

    async def health_check(self) -> bool:
        """Check if database is accessible.

        Returns:
            True if database is healthy, False otherwise.
        """
        try:
            await self.database.execute("SELECT 1")
        except Exception as e:  # noqa: BLE001
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    async def _create_tables(self) -> None:
        """Create tables and indexes if they don't exist."""
        for table in self.metadata.sorted_tables:
            await self.database.execute(CreateTable(table, if_not_exists=True))
            for index in table.indexes:
                await self.database.execute(CreateIndex(index, if_not_exists=True))

    @staticmethod
    def _to_record(row) -> VoteRecord:
        return {
            "id": row["id"],
            "name": row["name"],
            "email": row["email"],
            "country_code": row["country_code"],
            "country_name": row["country_name"],
            "flag": row["flag"],
            "created_at": _as_utc(row["created_at"]),
        }
