"""
Exception types for the watchlist screening engine
"""

from typing import Optional


class WatchlistError(Exception):
    """Base class for all screening engine errors"""
    pass


class IndexBuildError(WatchlistError):
    """Raised when the candidate index cannot be created or a record cannot be inserted"""
    pass


class IndexClosedError(IndexBuildError):
    """Raised when an index handle is used after close()"""
    pass


class ParseError(WatchlistError, ValueError):
    """Raised when a list entry is malformed

    Attributes:
        record_id: Identifier of the offending record, if known
        line: Source line number, if the record came from a file
    """
    def __init__(self, message: str, record_id: Optional[str] = None, line: Optional[int] = None):
        self.record_id = record_id
        self.line = line
        super().__init__(message)


class InvalidRequestError(WatchlistError, ValueError):
    """Raised when a screening request is unusable

    Attributes:
        field: The field that failed validation
        code: Error code for programmatic handling
        suggestion: Optional suggestion for fixing the error
    """
    def __init__(self, message: str, field: str = "full_name", code: str = "INVALID_REQUEST", suggestion: str = ""):
        self.field = field
        self.code = code
        self.suggestion = suggestion
        super().__init__(message)


class EmptyQueryError(InvalidRequestError):
    """Raised when a name normalizes to zero tokens"""
    def __init__(self, message: str = "Name contains no searchable tokens"):
        super().__init__(
            message,
            field="full_name",
            code="EMPTY_QUERY",
            suggestion="Provide a name containing at least one letter or digit"
        )


class ConfigurationError(WatchlistError):
    """Raised when configuration is invalid"""
    pass
