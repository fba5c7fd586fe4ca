"""Read-through cache over the REST Countries directory."""

import httpx
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .cache import CACHE_KEY_ALL_COUNTRIES, Cache, country_key
from .exceptions import DirectoryUnavailableError
from .models import CountryDetail, Lookup, Resolved, Unresolved
from .retry import directory_retrying

ALL_COUNTRIES_PATH = "/all?fields=name,ccn3,cca2,cca3,capital,region,subregion,flags"
ALPHA_PATH = "/alpha/{code}"
HEALTH_CHECK_PATH = "/all?fields=name"

_MAPPING_ERRORS = (KeyError, TypeError, AttributeError, IndexError, PydanticValidationError)


class CountryDirectory:
    """Country metadata fronted by a TTL cache.

    One cache entry holds the full listing (autocomplete, search) and one
    entry per alpha-3 code holds single lookups (ranking enrichment, regional
    statistics), so both paths share the same fetch logic.
    """

    def __init__(
        self,
        base_url: str,
        cache: Cache,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        ttl: int = 3600,
        retry_attempts: int = 3,
        retry_wait: tuple[float, float] = (1, 10),
    ) -> None:
        """Initialize the directory.

        Args:
            base_url: REST Countries base URL, e.g. https://restcountries.com/v3.1
            cache: Cache used for both the full listing and per-code entries
            client: HTTP client; one is created on startup when omitted
            timeout: Request timeout in seconds
            ttl: Lifetime of cached directory data in seconds
            retry_attempts: Attempts per request on transport errors
            retry_wait: (min, max) backoff between attempts in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.client = client
        self.timeout = timeout
        self.ttl = ttl
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait
        self._owns_client = client is None

    async def startup(self) -> None:
        """Create the HTTP client if none was injected."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
            logger.info(f"Country directory using {self.base_url}")

    async def shutdown(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    async def get_all(self) -> list[CountryDetail]:
        """Return the full country listing.

        Raises:
            DirectoryUnavailableError: If the listing is not cached and cannot be fetched.
        """
        cached = await self.cache.get(CACHE_KEY_ALL_COUNTRIES)
        if cached is not None:
            logger.debug("Returning cached countries")
            return cached

        logger.info("Fetching countries from API")
        try:
            response = await self._get(ALL_COUNTRIES_PATH)
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, list):
                raise TypeError(f"expected a list, got {type(payload).__name__}")
            countries = [CountryDetail.from_directory(item) for item in payload]
        except (httpx.HTTPError, ValueError, *_MAPPING_ERRORS) as e:
            logger.error(f"Error fetching countries: {e}")
            raise DirectoryUnavailableError("Failed to fetch countries") from e

        await self.cache.set(CACHE_KEY_ALL_COUNTRIES, countries, self.ttl)
        return countries

    async def resolve(self, code: str) -> Lookup:
        """Look up one country by alpha-3 code.

        Never raises: a missing country and a failed fetch both come back as
        ``Unresolved`` so the caller decides whether to skip the entry.
        """
        key = country_key(code)
        cached = await self.cache.get(key)
        if cached is not None:
            return Resolved(cached)

        try:
            response = await self._get(ALPHA_PATH.format(code=code))
            if response.status_code == httpx.codes.NOT_FOUND:
                return Unresolved(code, "not found")
            response.raise_for_status()
            payload = response.json()
            if isinstance(payload, dict):
                payload = [payload]
            if not payload:
                return Unresolved(code, "not found")
            country = CountryDetail.from_directory(payload[0])
        except (httpx.HTTPError, ValueError, *_MAPPING_ERRORS) as e:
            logger.error(f"Error fetching country by code {code}: {e}")
            return Unresolved(code, str(e))

        await self.cache.set(key, country, self.ttl)
        return Resolved(country)

    async def get_by_code(self, code: str) -> CountryDetail | None:
        """Return the country for ``code`` or None when it cannot be resolved."""
        match await self.resolve(code):
            case Resolved(country=country):
                return country
            case _:
                return None

    async def search(self, query: str) -> list[CountryDetail]:
        """Case-insensitive substring match on the common name.

        Length of ``query`` is validated by the caller.
        """
        needle = query.lower()
        return [country for country in await self.get_all() if needle in country.name.lower()]

    async def health_check(self, timeout: float = 3.0) -> bool:
        """Check the directory answers within ``timeout`` seconds."""
        try:
            response = await self._client().get(
                f"{self.base_url}{HEALTH_CHECK_PATH}", timeout=timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"REST Countries health check failed: {e}")
            return False
        return True

    async def _get(self, path: str) -> httpx.Response:
        min_wait, max_wait = self.retry_wait
        async for attempt in directory_retrying(self.retry_attempts, min_wait, max_wait):
            with attempt:
                return await self._client().get(f"{self.base_url}{path}", timeout=self.timeout)
        raise AssertionError("unreachable")  # pragma: no cover

    def _client(self) -> httpx.AsyncClient:
        if self.client is None:
            raise RuntimeError("Country directory not started")
        return self.client
