"""FastAPI application and route handlers."""

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from . import __version__
from .config import settings
from .exceptions import (
    CountryVoteError,
    DirectoryUnavailableError,
    DuplicateVoteError,
    StorageUnavailableError,
    ValidationError,
)
from .factory import Services, create_services, shutdown_services
from .middleware import add_request_id
from .models import VoteCreate
from .types import DetailedStats

VOTE_SUCCESS_MESSAGE = "Vote registered successfully"
SEARCH_QUERY_MIN_LENGTH = 2
SEARCH_QUERY_LENGTH_ERROR = "Query must be at least 2 characters long"
COUNTRY_NOT_FOUND_ERROR = "Country not found"


def configure_logging() -> None:
    """Configure logging - should be called at startup, not import time."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=settings.log_level,
        serialize=False,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=settings.log_level,
        )


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=[settings.rate_limit],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging()

    services = await create_services()
    app.state.services = services
    logger.info(f"REST Countries API: {settings.rest_countries_api}")
    logger.info("Application started successfully")

    yield

    await shutdown_services(services)
    app.state.services = None
    logger.info("Application shutdown complete")


def get_services(request: Request) -> Services:
    """Get the services wired at startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized")
    return services


ServicesDep = Annotated[Services, Depends(get_services)]

router = APIRouter(prefix=settings.api_prefix)


# Votes


@router.post("/votes", status_code=status.HTTP_201_CREATED, tags=["votes"])
async def create_vote(vote: VoteCreate, services: ServicesDep) -> dict[str, Any]:
    """Create a new vote. Only one vote per email is allowed."""
    created = await services.votes.create_vote(vote)
    return {"message": VOTE_SUCCESS_MESSAGE, "data": created.to_json()}


@router.get("/votes/top", tags=["votes"])
async def top_countries(
    services: ServicesDep,
    limit: int = Query(settings.default_top_limit, ge=1, le=100),
) -> dict[str, Any]:
    """Top countries by vote count with directory details."""
    top = await services.ranking.get_top(limit)
    return {"data": [country.to_json() for country in top], "count": len(top)}


@router.get("/votes/check", tags=["votes"])
async def check_vote(
    services: ServicesDep,
    email: str = Query(..., min_length=1, description="Email address to check"),
) -> dict[str, Any]:
    """Check whether an email has already voted."""
    return {"email": email, "hasVoted": await services.votes.has_voted(email)}


@router.get("/votes/stats", tags=["votes"])
async def vote_stats(services: ServicesDep) -> dict[str, int]:
    return {"totalVotes": await services.votes.total_votes()}


@router.get("/votes", tags=["votes"])
async def list_votes(services: ServicesDep) -> dict[str, Any]:
    """All votes, newest first."""
    votes = await services.votes.all_votes()
    return {"data": [vote.to_json() for vote in votes], "count": len(votes)}


# Countries


@router.get("/countries", tags=["countries"])
async def list_countries(services: ServicesDep) -> list[dict[str, Any]]:
    countries = await services.directory.get_all()
    return [country.to_json() for country in countries]


@router.get("/countries/search", tags=["countries"])
async def search_countries(
    services: ServicesDep,
    q: str | None = Query(None, description="Search query (minimum 2 characters)"),
) -> dict[str, Any]:
    """Search countries by name for autocomplete."""
    if not q or len(q) < SEARCH_QUERY_MIN_LENGTH:
        return {"error": SEARCH_QUERY_LENGTH_ERROR, "results": []}
    results = await services.directory.search(q)
    return {"results": [country.to_json() for country in results]}


@router.get("/countries/{code}", tags=["countries"])
async def get_country(code: str, services: ServicesDep) -> dict[str, Any]:
    country = await services.directory.get_by_code(code)
    if country is None:
        return {"error": COUNTRY_NOT_FOUND_ERROR}
    return country.to_json()


# Statistics


@router.get("/statistics", tags=["statistics"])
async def statistics(services: ServicesDep) -> DetailedStats:
    """Total votes, unique countries, votes by region and daily timeline."""
    return await services.statistics.detailed_stats()


@router.get("/statistics/regions", tags=["statistics"])
async def statistics_regions(services: ServicesDep) -> dict[str, Any]:
    return {"data": await services.statistics.by_region()}


@router.get("/statistics/timeline", tags=["statistics"])
async def statistics_timeline(services: ServicesDep) -> dict[str, Any]:
    return {"data": await services.statistics.timeline()}


# Health


@router.get("/health", tags=["health"])
async def health(response: Response, services: ServicesDep) -> dict[str, Any]:
    """Check the vote store and the REST Countries API."""
    try:
        database_ok = await asyncio.wait_for(
            services.repository.health_check(), timeout=settings.health_db_timeout
        )
    except TimeoutError:
        logger.warning("Database health check timed out")
        database_ok = False

    directory_ok = await services.directory.health_check(timeout=settings.health_api_timeout)

    all_healthy = database_ok and directory_ok
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ok" if all_healthy else "error",
        "timestamp": datetime.now(UTC).isoformat(),
        "details": {
            "database": {"status": "up" if database_ok else "down"},
            "rest-countries-api": {"status": "up" if directory_ok else "down"},
        },
    }


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with per-field messages."""
    details = []

    for error in exc.errors():
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Required field '{field}' is missing"
            case "json_invalid":
                message = "Invalid JSON format"

        details.append({"field": str(field), "message": message})

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": "; ".join(detail["message"] for detail in details),
            "details": details,
        },
    )


async def country_vote_exception_handler(request: Request, exc: CountryVoteError) -> JSONResponse:
    """Handle domain-specific errors."""
    match exc:
        case ValidationError():
            status_code = status.HTTP_400_BAD_REQUEST
        case DuplicateVoteError():
            status_code = status.HTTP_409_CONFLICT
        case DirectoryUnavailableError() | StorageUnavailableError():
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        case _:
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code >= 500:
        logger.error(f"Country Vote API error: {exc}")
    else:
        logger.warning(f"Rejected request: {exc}")

    content: dict[str, Any] = {"detail": exc.message, "type": exc.__class__.__name__}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Country Vote API",
        version=__version__,
        description="API for voting and ranking favorite countries",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    application.middleware("http")(add_request_id)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.limiter = limiter  # Required by slowapi
    application.add_middleware(SlowAPIMiddleware)
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(CountryVoteError, country_vote_exception_handler)  # type: ignore[arg-type]

    application.include_router(router)

    @application.get("/", tags=["health"])
    async def root_endpoint() -> dict[str, str]:
        """API information endpoint."""
        return {
            "name": "Country Vote API",
            "version": __version__,
            "status": "running",
            "docs": "/api/docs",
        }

    application.openapi_tags = [
        {"name": "votes", "description": "Vote submission and ranking"},
        {"name": "countries", "description": "Country directory"},
        {"name": "statistics", "description": "Vote analytics"},
        {"name": "health", "description": "Health checks"},
    ]

    return application


app = create_app()
