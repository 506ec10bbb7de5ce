"""
Watchlist screening engine

Screens names against sanctions / PEP watchlists with an indexed candidate
retrieval stage and a similarity scoring stage.

    from watchlist import build_index, check

    index = build_index(CsvRecordSource("list.csv"))
    matches = check(index, "Marwan Mohammed ABU RAS", dob="1958-07-01")
"""

from watchlist.candidate_index import CandidateIndex, IndexSnapshot, add_record, build_index
from watchlist.checker import Checker, check
from watchlist.config_manager import ConfigManager, get_config
from watchlist.csv_source import CsvColumns, CsvRecordSource, read_csv_records
from watchlist.exceptions import (
    ConfigurationError,
    EmptyQueryError,
    IndexBuildError,
    IndexClosedError,
    InvalidRequestError,
    ParseError,
    WatchlistError,
)
from watchlist.normalizer import normalize, normalize_tokens, tokenize
from watchlist.query_composer import ComposedQuery, QueryComposer, compose_query
from watchlist.records import (
    Candidate,
    DobRange,
    MatchResult,
    PersonRecord,
    RecordSource,
    RecordType,
)
from watchlist.similarity import SimilarityScorer

__version__ = "1.0.0"

__all__ = [
    "CandidateIndex",
    "IndexSnapshot",
    "add_record",
    "build_index",
    "Checker",
    "check",
    "ConfigManager",
    "get_config",
    "CsvColumns",
    "CsvRecordSource",
    "read_csv_records",
    "ConfigurationError",
    "EmptyQueryError",
    "IndexBuildError",
    "IndexClosedError",
    "InvalidRequestError",
    "ParseError",
    "WatchlistError",
    "normalize",
    "normalize_tokens",
    "tokenize",
    "ComposedQuery",
    "QueryComposer",
    "compose_query",
    "Candidate",
    "DobRange",
    "MatchResult",
    "PersonRecord",
    "RecordSource",
    "RecordType",
    "SimilarityScorer",
]
