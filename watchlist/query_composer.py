"""
Query Composer

Turns one screening request into a weighted disjunctive query over the
candidate index plus a conjunction of mandatory structured filters.

Clause layout for normalized tokens T (w = baseline weight):

    phrase, all of T in order, full name       10w
    whole normalized name, edit distance <= 2   6w
    token set, every token of T in any order    5w
    per token t in T:
        exact t in full name                    3w
        fuzzy t (distance <= 1) in full name    2w
        exact t in an alias                     1.5w
        fuzzy t (distance <= 1) in an alias     1w

Scores of matching clauses add up, so entries matching more signals rank
higher. Filters (DOB range, type, source) are only added when supplied.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from watchlist.config_manager import ConfigManager, get_config
from watchlist.exceptions import EmptyQueryError
from watchlist.log_utils import sanitize_for_logging
from watchlist.normalizer import normalize, tokenize
from watchlist.records import RecordSource, RecordType, lookup_enum, parse_date

if TYPE_CHECKING:
    from watchlist.candidate_index import IndexSnapshot

logger = logging.getLogger(__name__)

# Index field names
FULL_NAME = 'full_name'
WHOLE_NAME = 'whole_name'
ALIAS = 'alias'
TYPE = 'type'
SOURCE = 'source'


def term_similarity(distance: int, a: str, b: str) -> float:
    """Scale factor for a fuzzy hit: 1.0 for identical terms, lower as edits grow"""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return max(0.0, 1.0 - distance / longest)


def _contains_sequence(haystack: Sequence[str], needle: Sequence[str]) -> bool:
    n = len(needle)
    if n == 0 or n > len(haystack):
        return False
    first = needle[0]
    for i in range(len(haystack) - n + 1):
        if haystack[i] == first and tuple(haystack[i:i + n]) == tuple(needle):
            return True
    return False


@dataclass(frozen=True)
class PhraseClause:
    """All tokens, adjacent and in order, in the full name"""
    tokens: Tuple[str, ...]
    weight: float

    def evaluate(self, snapshot: 'IndexSnapshot') -> Dict[int, float]:
        return {
            doc: self.weight
            for doc in snapshot.docs_with_all(FULL_NAME, self.tokens)
            if _contains_sequence(snapshot.name_tokens(doc), self.tokens)
        }


@dataclass(frozen=True)
class WholeNameFuzzyClause:
    """Whole normalized full name within an edit distance of the query string"""
    text: str
    max_edits: int
    weight: float

    def evaluate(self, snapshot: 'IndexSnapshot') -> Dict[int, float]:
        scores: Dict[int, float] = {}
        for term, distance in snapshot.fuzzy_terms(WHOLE_NAME, self.text, self.max_edits):
            score = self.weight * term_similarity(distance, self.text, term)
            for doc in snapshot.term_docs(WHOLE_NAME, term):
                if score > scores.get(doc, 0.0):
                    scores[doc] = score
        return scores


@dataclass(frozen=True)
class TokenSetClause:
    """Every token present in the full name, in any order"""
    tokens: Tuple[str, ...]
    weight: float

    def evaluate(self, snapshot: 'IndexSnapshot') -> Dict[int, float]:
        return {doc: self.weight for doc in snapshot.docs_with_all(FULL_NAME, self.tokens)}


@dataclass(frozen=True)
class TermClause:
    """Exact token in a text field, weighted by how rare the token is"""
    field: str
    token: str
    weight: float

    def evaluate(self, snapshot: 'IndexSnapshot') -> Dict[int, float]:
        docs = snapshot.term_docs(self.field, self.token)
        if not docs:
            return {}
        score = self.weight * snapshot.idf(self.field, self.token)
        return {doc: score for doc in docs}


@dataclass(frozen=True)
class FuzzyTermClause:
    """Token within an edit distance of any indexed term of a text field"""
    field: str
    token: str
    max_edits: int
    weight: float

    def evaluate(self, snapshot: 'IndexSnapshot') -> Dict[int, float]:
        scores: Dict[int, float] = {}
        for term, distance in snapshot.fuzzy_terms(self.field, self.token, self.max_edits):
            score = (self.weight * snapshot.idf(self.field, term)
                     * term_similarity(distance, self.token, term))
            # Best expansion wins; several near terms in one entry do not stack
            for doc in snapshot.term_docs(self.field, term):
                if score > scores.get(doc, 0.0):
                    scores[doc] = score
        return scores


@dataclass(frozen=True)
class DobFilter:
    """At least one DOB range of the entry contains the date"""
    dob_key: str

    def accepts(self, snapshot: 'IndexSnapshot', doc: int) -> bool:
        return any(start <= self.dob_key <= end for start, end in snapshot.dob_keys(doc))


@dataclass(frozen=True)
class KeywordFilter:
    """Exact keyword equality; a value of None never matches"""
    field: str
    value: Optional[str]

    def accepts(self, snapshot: 'IndexSnapshot', doc: int) -> bool:
        return self.value is not None and snapshot.keyword(self.field, doc) == self.value


@dataclass(frozen=True)
class ComposedQuery:
    """OR of weighted clauses, AND of mandatory filters"""
    tokens: Tuple[str, ...]
    clauses: Tuple[object, ...]
    filters: Tuple[object, ...] = ()

    def accepts(self, snapshot: 'IndexSnapshot', doc: int) -> bool:
        return all(f.accepts(snapshot, doc) for f in self.filters)


class QueryComposer:
    """Builds ComposedQuery objects using the matching configuration"""

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or get_config()

    def compose(
        self,
        name: str,
        dob: Optional[date] = None,
        type: Union[RecordType, str, None] = None,
        source: Union[RecordSource, str, None] = None,
    ) -> ComposedQuery:
        """Compose the retrieval query for a screening request

        Args:
            name: Name to screen, raw
            dob: Optional date of birth; entries need a range containing it
            type: Optional entity type filter
            source: Optional source list filter

        Returns:
            ComposedQuery ready for CandidateIndex.search

        Raises:
            EmptyQueryError: If the name normalizes to no tokens
        """
        normalized = normalize(name)
        tokens = tuple(tokenize(normalized))
        if not tokens:
            raise EmptyQueryError(
                f"Name {sanitize_for_logging(name, 50)!r} contains no searchable tokens"
            )

        weight = self.config.clause_weight
        m = self.config.matching

        clauses: List[object] = [
            PhraseClause(tokens, weight('phrase')),
            WholeNameFuzzyClause(normalized, m.whole_name_max_edits, weight('whole_name_fuzzy')),
            TokenSetClause(tokens, weight('token_set')),
        ]
        for token in tokens:
            clauses.append(TermClause(FULL_NAME, token, weight('name_term')))
            clauses.append(FuzzyTermClause(FULL_NAME, token, m.term_max_edits, weight('name_fuzzy_term')))
            clauses.append(TermClause(ALIAS, token, weight('alias_term')))
            clauses.append(FuzzyTermClause(ALIAS, token, m.term_max_edits, weight('alias_fuzzy_term')))

        filters: List[object] = []
        if dob is not None:
            filters.append(DobFilter(parse_date(dob).isoformat()))
        if type is not None:
            filters.append(self._keyword_filter(TYPE, RecordType, type))
        if source is not None:
            filters.append(self._keyword_filter(SOURCE, RecordSource, source))

        logger.debug("Composed query: tokens=%s clauses=%d filters=%d",
                     tokens, len(clauses), len(filters))
        return ComposedQuery(tokens=tokens, clauses=tuple(clauses), filters=tuple(filters))

    def _keyword_filter(self, field: str, enum_cls, value) -> KeywordFilter:
        member = lookup_enum(enum_cls, value)
        if member is None:
            logger.warning("Unknown %s filter value %s, no entry can match",
                           field, sanitize_for_logging(str(value), 50))
            return KeywordFilter(field, None)
        return KeywordFilter(field, member.value)


def compose_query(
    name: str,
    dob: Optional[date] = None,
    type: Union[RecordType, str, None] = None,
    source: Union[RecordSource, str, None] = None,
    config: Optional[ConfigManager] = None,
) -> ComposedQuery:
    """Module-level shortcut for QueryComposer(config).compose(...)"""
    return QueryComposer(config).compose(name, dob=dob, type=type, source=source)
