"""
Pydantic request/response schemas for the Watchlist Screening API

Mirrors the engine types in watchlist.records for API validation.
"""

import re
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from watchlist.records import MatchResult, PersonRecord, RecordSource, RecordType

_ISO_DATE = re.compile(r'^\d{4}-\d{2}-\d{2}$')


class CheckRequest(BaseModel):
    """Request schema for screening one name."""
    full_name: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Name to screen"
    )
    dob: Optional[str] = Field(
        default=None,
        description="Date of birth in ISO 8601 format (YYYY-MM-DD)"
    )
    type: Optional[str] = Field(
        default=None,
        description="Entity type filter (INDIVIDUAL, ENTITY); unknown values match nothing"
    )
    source: Optional[str] = Field(
        default=None,
        description="Source list filter (SANCTION, WAB, PEP, PIL); unknown values match nothing"
    )
    threshold: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Acceptance threshold overriding the configured default"
    )

    @field_validator('dob')
    @classmethod
    def validate_dob_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate DOB is in ISO 8601 format."""
        if v is None:
            return v
        if not _ISO_DATE.match(v):
            raise ValueError("DOB must be in ISO 8601 format: YYYY-MM-DD")
        return v


class DobRangeModel(BaseModel):
    """Inclusive birth-date window."""
    start: date
    end: date

    @model_validator(mode='after')
    def check_order(self) -> 'DobRangeModel':
        if self.start > self.end:
            raise ValueError("DOB range start must not be after end")
        return self


class RecordRequest(BaseModel):
    """Request schema for adding a watchlist entry."""
    id: Optional[str] = Field(default=None, description="Record id; generated when omitted")
    entry_id: str = Field(..., min_length=1, description="External reference id")
    source: RecordSource = Field(..., description="Source list")
    type: RecordType = Field(..., description="Entity type")
    full_name: str = Field(..., min_length=1, max_length=1000, description="Canonical name")
    aliases: List[str] = Field(default_factory=list, description="Alternate names")
    dob_ranges: List[DobRangeModel] = Field(default_factory=list, description="Birth-date windows")


class RecordDetail(BaseModel):
    """Watchlist entry details."""
    id: str
    entry_id: str
    source: RecordSource
    type: RecordType
    full_name: str
    aliases: List[str] = Field(default_factory=list)
    dob_ranges: List[DobRangeModel] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: PersonRecord) -> 'RecordDetail':
        return cls(
            id=record.id,
            entry_id=record.entry_id,
            source=record.source,
            type=record.type,
            full_name=record.full_name,
            aliases=list(record.aliases),
            dob_ranges=[DobRangeModel(start=r.start, end=r.end) for r in record.dob_ranges],
        )


class MatchDetail(BaseModel):
    """Single accepted match."""
    record: RecordDetail = Field(..., description="Matched watchlist entry")
    confidence_score: float = Field(..., ge=0.0, le=1.0, description="Name confidence (0-1)")
    matched_name: str = Field(..., description="Entry name or alias that scored best")
    relevance_score: float = Field(default=0.0, description="Retrieval relevance (ranking only)")

    @classmethod
    def from_match(cls, match: MatchResult) -> 'MatchDetail':
        return cls(
            record=RecordDetail.from_record(match.record),
            confidence_score=match.confidence_score,
            matched_name=match.matched_name,
            relevance_score=match.relevance_score,
        )


class CheckResponse(BaseModel):
    """Response schema for a screening request."""
    check_id: str = Field(..., description="Unique check identifier (UUID)")
    check_date: str = Field(..., description="Check timestamp (ISO 8601)")
    is_hit: bool = Field(..., description="Whether any matches were found")
    hit_count: int = Field(..., ge=0, description="Number of matches found")
    matches: List[MatchDetail] = Field(default_factory=list, description="Matches in relevance order")
    processing_time_ms: int = Field(..., ge=0, description="Processing time in milliseconds")
    algorithm_version: str = Field(..., description="Algorithm version used")


class RecordResponse(BaseModel):
    """Response schema for an added record."""
    record: RecordDetail
    records_indexed: int = Field(..., ge=0)


class HealthResponse(BaseModel):
    """Response schema for health check endpoint."""
    status: str = Field(default="healthy", description="Service status")
    records_indexed: int = Field(..., ge=0, description="Number of indexed watchlist entries")
    algorithm_version: str = Field(..., description="Algorithm version")
    uptime_seconds: Optional[int] = Field(default=None, description="Server uptime in seconds")


class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(default=None, description="Field that caused error")
    suggestion: Optional[str] = Field(default=None, description="How to fix the error")
    timestamp: str = Field(..., description="Error timestamp (ISO 8601)")


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: ErrorDetail
