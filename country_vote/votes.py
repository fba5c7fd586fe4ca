"""Vote intake and vote queries."""

import uuid
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .exceptions import DuplicateVoteError, UniqueConstraintError, ValidationError
from .models import Vote, VoteCreate
from .ranking import RankingEngine
from .storage import Repository

ALREADY_VOTED_MESSAGE = "This email has already voted. Only one vote per email is allowed."


def utc_now() -> datetime:
    return datetime.now(UTC)


def field_errors(error: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten Pydantic errors into ``{field, message}`` pairs."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
        }
        for err in error.errors()
    ]


class VoteService:
    """Validate, persist and deduplicate votes."""

    def __init__(
        self,
        repository: Repository,
        ranking: RankingEngine,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize with injected dependencies."""
        self.repository = repository
        self.ranking = ranking
        self.clock = clock

    async def create_vote(self, payload: VoteCreate | Mapping[str, Any]) -> Vote:
        """Register a vote, one per normalized email.

        The pre-check only avoids a wasted write; the storage uniqueness
        constraint decides concurrent submissions for the same email.

        Raises:
            ValidationError: If the payload is malformed.
            DuplicateVoteError: If the email has already voted.
            StorageUnavailableError: If the vote store fails.
        """
        vote = self._validate(payload)

        if await self.repository.find_by_email(vote.email):
            raise DuplicateVoteError(ALREADY_VOTED_MESSAGE)

        try:
            record = await self.repository.insert(
                id=str(uuid.uuid4()),
                name=vote.name,
                email=vote.email,
                country_code=vote.country_code,
                country_name=vote.country_name,
                flag=vote.flag,
                created_at=self.clock(),
            )
        except UniqueConstraintError as e:
            logger.info("Concurrent duplicate vote rejected by storage")
            raise DuplicateVoteError(ALREADY_VOTED_MESSAGE) from e

        await self.ranking.invalidate()

        logger.info(f"New vote created for country: {vote.country_name}")
        return Vote.from_record(record)

    async def has_voted(self, email: str) -> bool:
        return await self.repository.find_by_email(email.strip().lower()) is not None

    async def total_votes(self) -> int:
        return await self.repository.count()

    async def all_votes(self) -> list[Vote]:
        """All votes, newest first."""
        return [Vote.from_record(record) for record in await self.repository.find_all()]

    @staticmethod
    def _validate(payload: VoteCreate | Mapping[str, Any]) -> VoteCreate:
        if isinstance(payload, VoteCreate):
            return payload
        try:
            return VoteCreate.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError("Validation failed", details=field_errors(e)) from e
