"""Engine components: fetch → parse → match → dedup → rank."""

from .coordinator import FetchBatch, FetchCoordinator
from .dedup import exclude, unique
from .fetcher import FetchOutcome, SourceFetcher
from .matcher import MatchField, MatchSpec, MatchStrategy, filter_items, matches
from .parser import FeedEnvelopeError, FeedParser
from .ranker import limit, rank

__all__ = [
    "FeedEnvelopeError",
    "FeedParser",
    "FetchBatch",
    "FetchCoordinator",
    "FetchOutcome",
    "MatchField",
    "MatchSpec",
    "MatchStrategy",
    "SourceFetcher",
    "exclude",
    "filter_items",
    "limit",
    "matches",
    "rank",
    "unique",
]
