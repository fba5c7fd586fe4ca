"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator

# Set test environment before the app reads its settings
os.environ["VOTE_DATABASE_URL"] = "sqlite+aiosqlite:///./data/test-votes.db"
os.environ["VOTE_RATE_LIMIT"] = "1000/second"
os.environ["VOTE_LOG_LEVEL"] = "ERROR"  # Reduce log noise

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from country_vote import app  # noqa: E402
from country_vote.cache import TTLCache  # noqa: E402
from country_vote.directory import CountryDirectory  # noqa: E402
from country_vote.factory import Services, build_services  # noqa: E402

from tests.fakes import FakeClock, FakeRestCountries, InMemoryRepository, make_directory  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(clock=clock)


@pytest.fixture
def rest_countries() -> FakeRestCountries:
    """Fake REST Countries API; flip ``down`` or ``broken_codes`` to inject failures."""
    return FakeRestCountries()


@pytest_asyncio.fixture
async def directory(
    rest_countries: FakeRestCountries, cache: TTLCache
) -> AsyncGenerator[CountryDirectory, None]:
    directory = make_directory(rest_countries, cache)
    yield directory
    await directory.client.aclose()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def services(
    repository: InMemoryRepository, directory: CountryDirectory, cache: TTLCache
) -> Services:
    return build_services(repository=repository, directory=directory, cache=cache)


@pytest_asyncio.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Test client fixture - services injected via app.state."""
    app.state.services = services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.services = None


@pytest.fixture
def vote_payload() -> dict[str, str]:
    """Sample vote fixture."""
    return {
        "name": "Ada Lovelace",
        "email": "Ada@Example.com",
        "countryCode": "ita",
        "countryName": "Italy",
        "flag": "https://flagcdn.com/it.svg",
    }
