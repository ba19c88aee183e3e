"""Multi-exchange request aggregation."""

from .engine import AggregationEngine, AggregationOperation, ExchangeOutcome, MergedResult
from .operations import FetchPortfolio, FetchTicker, FetchTransactions, SyncTransactions
from .service import AggregationService, parse_since

__all__ = [
    "AggregationEngine",
    "AggregationOperation",
    "ExchangeOutcome",
    "MergedResult",
    "FetchPortfolio",
    "FetchTicker",
    "FetchTransactions",
    "SyncTransactions",
    "AggregationService",
    "parse_since",
]
