"""
Watchlist domain types

PersonRecord is the immutable list entry stored by the candidate index.
Candidate and MatchResult are per-request projections of it.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar, Union

from watchlist.exceptions import ParseError


class RecordSource(str, Enum):
    """Watchlist an entry was published on"""
    SANCTION = "SANCTION"
    WAB = "WAB"
    PEP = "PEP"
    PIL = "PIL"


class RecordType(str, Enum):
    """Kind of listed party"""
    INDIVIDUAL = "INDIVIDUAL"
    ENTITY = "ENTITY"


E = TypeVar("E", RecordSource, RecordType)


def parse_enum(enum_cls: Type[E], value: Union[str, E], record_id: Optional[str] = None) -> E:
    """Convert an exact literal to an enum member, raising ParseError when unknown"""
    if isinstance(value, enum_cls):
        return value
    literal = str(value) if value is not None else ""
    try:
        return enum_cls[literal]
    except KeyError:
        allowed = ", ".join(m.name for m in enum_cls)
        raise ParseError(
            f"Invalid {enum_cls.__name__} value {value!r} (allowed: {allowed})",
            record_id=record_id
        ) from None


def lookup_enum(enum_cls: Type[E], value: Union[str, E, None]) -> Optional[E]:
    """Lenient conversion used for request filters: unknown values map to None"""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls[str(value).strip().upper()]
    except KeyError:
        return None


def parse_date(value: Union[str, date], record_id: Optional[str] = None) -> date:
    """Parse an ISO-8601 calendar date (YYYY-MM-DD)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ParseError(f"Invalid date {value!r}, expected YYYY-MM-DD", record_id=record_id) from None


@dataclass(frozen=True)
class DobRange:
    """Closed interval of plausible birth dates"""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ParseError(f"DOB range start {self.start} is after end {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def start_key(self) -> str:
        return self.start.isoformat()

    @property
    def end_key(self) -> str:
        return self.end.isoformat()

    def to_dict(self) -> Dict[str, str]:
        return {'start': self.start_key, 'end': self.end_key}


@dataclass(frozen=True)
class PersonRecord:
    """One watchlist entry"""
    id: str
    entry_id: str
    source: RecordSource
    type: RecordType
    full_name: str
    aliases: Tuple[str, ...] = ()
    dob_ranges: Tuple[DobRange, ...] = ()

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise ParseError("Record id must not be blank")
        if not self.full_name or not self.full_name.strip():
            raise ParseError("Full name must not be blank", record_id=self.id)
        object.__setattr__(self, 'source', parse_enum(RecordSource, self.source, self.id))
        object.__setattr__(self, 'type', parse_enum(RecordType, self.type, self.id))
        object.__setattr__(self, 'aliases', _dedupe_aliases(self.aliases))
        object.__setattr__(self, 'dob_ranges', tuple(self.dob_ranges))

    @classmethod
    def create(
        cls,
        id: str,
        entry_id: str,
        source: Union[str, RecordSource],
        type: Union[str, RecordType],
        full_name: str,
        aliases: Iterable[str] = (),
        dob_ranges: Iterable[Tuple[Union[str, date], Union[str, date]]] = (),
    ) -> 'PersonRecord':
        """Build a record from loosely typed values (strings, ISO dates)

        Raises:
            ParseError: If an enum literal, date or range is invalid
        """
        ranges = []
        for start, end in dob_ranges:
            try:
                ranges.append(DobRange(parse_date(start, id), parse_date(end, id)))
            except ParseError as e:
                raise ParseError(str(e), record_id=id) from None
        return cls(
            id=id,
            entry_id=entry_id,
            source=source,
            type=type,
            full_name=full_name,
            aliases=tuple(aliases),
            dob_ranges=tuple(ranges),
        )

    @property
    def all_names(self) -> List[str]:
        return [self.full_name, *self.aliases]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'entry_id': self.entry_id,
            'source': self.source.value,
            'type': self.type.value,
            'full_name': self.full_name,
            'aliases': list(self.aliases),
            'dob_ranges': [r.to_dict() for r in self.dob_ranges],
        }


def _dedupe_aliases(aliases: Iterable[str]) -> Tuple[str, ...]:
    # Keep first-seen order; blank cells are dropped
    seen = dict.fromkeys(a.strip() for a in aliases if a and a.strip())
    return tuple(seen)


@dataclass(frozen=True)
class Candidate:
    """Shortlisted record with its retrieval relevance score"""
    record: PersonRecord
    relevance_score: float


@dataclass(frozen=True)
class MatchResult:
    """Final screening outcome for one list entry"""
    record: PersonRecord
    confidence_score: float
    matched_name: str = ''
    relevance_score: float = field(default=0.0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'record': self.record.to_dict(),
            'confidence_score': round(self.confidence_score, 4),
            'matched_name': self.matched_name,
            'relevance_score': round(self.relevance_score, 4),
        }
