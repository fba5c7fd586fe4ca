"""Data models using Pydantic."""

import re
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .types import VoteRecord

NOT_AVAILABLE = "N/A"

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
COUNTRY_CODE_LENGTH = 3
COUNTRY_NAME_MIN_LENGTH = 2

_COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{3}$")
_url_adapter = TypeAdapter(HttpUrl)


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class VoteCreate(CamelModel):
    """Vote submitted by a user."""

    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    email: EmailStr
    country_code: str
    country_name: str = Field(..., min_length=COUNTRY_NAME_MIN_LENGTH)
    flag: str

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not isinstance(value, str) or len(value.strip()) < NAME_MIN_LENGTH:
            raise PydanticCustomError(
                "name_too_short",
                "Name must be at least 2 characters",
                {"min_length": NAME_MIN_LENGTH},
            )
        if len(value.strip()) > NAME_MAX_LENGTH:
            raise PydanticCustomError(
                "name_too_long",
                "Name must not exceed 100 characters",
                {"length": len(value), "max_length": NAME_MAX_LENGTH},
            )
        return value.strip()

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("country_code", mode="before")
    @classmethod
    def validate_country_code(cls, value: str) -> str:
        if not isinstance(value, str) or not _COUNTRY_CODE_RE.match(value.strip()):
            raise PydanticCustomError(
                "invalid_country_code",
                "Country code must be 3 characters",
                {"input": value},
            )
        return value.strip().upper()

    @field_validator("country_name", mode="before")
    @classmethod
    def validate_country_name(cls, value: str) -> str:
        if not isinstance(value, str) or len(value.strip()) < COUNTRY_NAME_MIN_LENGTH:
            raise PydanticCustomError(
                "country_name_too_short",
                "Country name must be at least 2 characters",
                {"min_length": COUNTRY_NAME_MIN_LENGTH},
            )
        return value.strip()

    @field_validator("flag", mode="before")
    @classmethod
    def validate_flag(cls, value: str) -> str:
        try:
            _url_adapter.validate_python(value)
        except PydanticValidationError:
            raise PydanticCustomError(
                "invalid_flag_url", "Flag must be a valid URL", {"input": value}
            ) from None
        return value


class Vote(CamelModel):
    """A persisted vote."""

    id: str
    name: str
    email: str
    country_code: str
    country_name: str
    flag: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: VoteRecord) -> "Vote":
        return cls(**record)


class CountryDetail(CamelModel):
    """Country metadata from the directory, optionally carrying a vote count."""

    code: str
    name: str
    official_name: str
    capital: str = NOT_AVAILABLE
    region: str
    subregion: str = NOT_AVAILABLE
    flag: str
    vote_count: int | None = None

    @classmethod
    def from_directory(cls, payload: dict) -> "CountryDetail":
        """Map a REST Countries record, replacing missing capital/subregion with N/A.

        Raises:
            KeyError, TypeError, AttributeError: If the payload lacks mandatory fields.
        """
        capitals = payload.get("capital") or []
        return cls(
            code=str(payload["cca3"]),
            name=str(payload["name"]["common"]),
            official_name=str(payload["name"]["official"]),
            capital=str(capitals[0]) if capitals else NOT_AVAILABLE,
            region=str(payload["region"]),
            subregion=str(payload.get("subregion") or NOT_AVAILABLE),
            flag=str(payload["flags"]["svg"]),
        )


@dataclass(frozen=True)
class Resolved:
    """Directory lookup that produced a country."""

    country: CountryDetail


@dataclass(frozen=True)
class Unresolved:
    """Directory lookup that produced nothing; callers decide whether to skip."""

    code: str
    reason: str


Lookup = Resolved | Unresolved
