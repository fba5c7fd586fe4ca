"""Country Vote API - vote for a favorite country and watch the live ranking."""

__version__ = "1.0.0"

from .api import app, create_app  # noqa: E402
from .directory import CountryDirectory  # noqa: E402
from .ranking import RankingEngine  # noqa: E402
from .statistics import StatisticsService  # noqa: E402
from .votes import VoteService  # noqa: E402

__all__ = [
    "CountryDirectory",
    "RankingEngine",
    "StatisticsService",
    "VoteService",
    "app",
    "create_app",
]
