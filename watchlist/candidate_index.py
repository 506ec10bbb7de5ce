"""
Candidate Index

In-memory inverted index over watchlist entries. Each entry gets a document
number equal to its insertion position; every posting list is append-only and
therefore sorted by document number.

Indexed per entry:
    full_name   - normalized name tokens (positions kept for phrase matching)
    whole_name  - the complete normalized full name as a single term
    alias       - normalized tokens of every alias
    type        - RecordType literal
    source      - RecordSource literal
    dob         - (start, end) ISO-8601 keys per DOB range

Readers work on an IndexSnapshot that remembers how many documents were
committed when it was taken. Writers are serialized by a lock and publish a
document only after all of its postings are in place, so a snapshot never
observes a partially inserted entry and never observes entries added after
it was opened.
"""

import heapq
import logging
import math
import threading
import time
from bisect import bisect_left
from typing import Dict, Iterable, List, Optional, Tuple

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from watchlist.config_manager import ConfigManager, get_config
from watchlist.exceptions import IndexBuildError, IndexClosedError
from watchlist.normalizer import normalize, tokenize
from watchlist.query_composer import ALIAS, FULL_NAME, SOURCE, TYPE, WHOLE_NAME, ComposedQuery
from watchlist.records import Candidate, PersonRecord

logger = logging.getLogger(__name__)

_TEXT_FIELDS = (FULL_NAME, WHOLE_NAME, ALIAS)


class _TermDictionary:
    """Append-only postings for one text field, with terms bucketed by length"""

    def __init__(self):
        self.postings: Dict[str, List[int]] = {}
        self.by_length: Dict[int, List[str]] = {}

    def add(self, term: str, doc: int) -> None:
        plist = self.postings.get(term)
        if plist is None:
            # Posting list first: a reader that finds the term must find its list
            self.postings[term] = [doc]
            self.by_length.setdefault(len(term), []).append(term)
        elif plist[-1] != doc:
            plist.append(doc)

    def __len__(self) -> int:
        return len(self.postings)

    def discard(self, term: str, doc: int) -> None:
        """Drop doc from the tail of term's postings, and the term once it has none"""
        plist = self.postings.get(term)
        if not plist or plist[-1] != doc:
            return
        plist.pop()
        if not plist:
            del self.postings[term]
            bucket = self.by_length.get(len(term))
            if bucket and term in bucket:
                bucket.remove(term)


class IndexSnapshot:
    """Point-in-time read view of a CandidateIndex"""

    def __init__(self, index: 'CandidateIndex', doc_count: int):
        # Hold the storage itself so a snapshot stays readable after close()
        self._records = index._records
        self._name_tokens = index._name_tokens
        self._dob_keys = index._dob_keys
        self._keywords = index._keywords
        self._terms = index._terms
        self.doc_count = doc_count
        self._idf_cache: Dict[Tuple[str, str], float] = {}

    def term_docs(self, field: str, term: str) -> List[int]:
        """Visible documents containing the term, ascending"""
        plist = self._terms[field].postings.get(term)
        if not plist:
            return []
        return plist[:bisect_left(plist, self.doc_count)]

    def doc_freq(self, field: str, term: str) -> int:
        plist = self._terms[field].postings.get(term)
        if not plist:
            return 0
        return bisect_left(plist, self.doc_count)

    def idf(self, field: str, term: str) -> float:
        """BM25-style inverse document frequency, always positive"""
        key = (field, term)
        cached = self._idf_cache.get(key)
        if cached is None:
            df = self.doc_freq(field, term)
            cached = math.log(1.0 + (self.doc_count - df + 0.5) / (df + 0.5))
            self._idf_cache[key] = cached
        return cached

    def docs_with_all(self, field: str, terms: Iterable[str]) -> List[int]:
        """Visible documents containing every term, ascending"""
        lists = [self.term_docs(field, t) for t in set(terms)]
        if not lists or not all(lists):
            return []
        lists.sort(key=len)
        result = set(lists[0])
        for plist in lists[1:]:
            result.intersection_update(plist)
            if not result:
                return []
        return sorted(result)

    def fuzzy_terms(self, field: str, term: str, max_edits: int) -> List[Tuple[str, int]]:
        """Indexed terms within max_edits Levenshtein edits of term

        Only length buckets that can possibly be in range are scanned.

        Returns:
            List of (term, distance) for terms with visible postings
        """
        by_length = self._terms[field].by_length
        matches: List[Tuple[str, int]] = []
        for length in range(max(1, len(term) - max_edits), len(term) + max_edits + 1):
            bucket = by_length.get(length)
            if not bucket:
                continue
            choices = list(bucket)
            for choice, distance, _ in process.extract(
                term, choices, scorer=Levenshtein.distance,
                score_cutoff=max_edits, limit=None
            ):
                if self.doc_freq(field, choice):
                    matches.append((choice, int(distance)))
        return matches

    def name_tokens(self, doc: int) -> Tuple[str, ...]:
        return self._name_tokens[doc]

    def dob_keys(self, doc: int) -> Tuple[Tuple[str, str], ...]:
        return self._dob_keys[doc]

    def keyword(self, field: str, doc: int) -> str:
        return self._keywords[field][doc]

    def record(self, doc: int) -> PersonRecord:
        return self._records[doc]


class CandidateIndex:
    """Inverted index of watchlist entries supporting weighted candidate retrieval

    Use CandidateIndex.build() for a bulk load and add() for later entries.
    The handle owns its storage; call close() (or use it as a context
    manager) when done.
    """

    def __init__(self, config: Optional[ConfigManager] = None):
        self.config = config or get_config()
        try:
            self._records: List[PersonRecord] = []
            self._name_tokens: List[Tuple[str, ...]] = []
            self._dob_keys: List[Tuple[Tuple[str, str], ...]] = []
            self._keywords: Dict[str, List[str]] = {TYPE: [], SOURCE: []}
            self._terms: Dict[str, _TermDictionary] = {f: _TermDictionary() for f in _TEXT_FIELDS}
            self._ids: Dict[str, int] = {}
        except MemoryError as e:
            raise IndexBuildError(f"Could not allocate index storage: {e}") from e
        self._doc_count = 0
        self._write_lock = threading.Lock()
        self._closed = False

    @classmethod
    def build(cls, records: Iterable[PersonRecord], config: Optional[ConfigManager] = None) -> 'CandidateIndex':
        """Build an index from a record sequence, consuming it exactly once

        Args:
            records: Lazy single-pass sequence of PersonRecord
            config: Configuration manager instance

        Returns:
            Populated CandidateIndex

        Raises:
            IndexBuildError: If storage cannot be set up or a record cannot be inserted
        """
        start_time = time.time()
        index = cls(config)
        for record in records:
            index.add(record)
        logger.info("Candidate index built: %d records, %d name terms, %d alias terms in %.2fs",
                    len(index), len(index._terms[FULL_NAME]), len(index._terms[ALIAS]),
                    time.time() - start_time)
        return index

    def add(self, record: PersonRecord) -> None:
        """Insert one record

        The record is visible to every snapshot opened after this returns.

        Raises:
            IndexBuildError: If the record is not a PersonRecord or its id is already indexed
        """
        if not isinstance(record, PersonRecord):
            raise IndexBuildError(f"Expected PersonRecord, got {type(record).__name__}")

        name_tokens = tuple(tokenize(normalize(record.full_name)))
        alias_tokens = [t for alias in record.aliases for t in tokenize(normalize(alias))]
        dob_keys = tuple((r.start_key, r.end_key) for r in record.dob_ranges)

        with self._write_lock:
            self._check_open()
            if record.id in self._ids:
                raise IndexBuildError(f"Record id {record.id!r} is already indexed")
            try:
                doc = len(self._records)
                self._records.append(record)
                self._name_tokens.append(name_tokens)
                self._dob_keys.append(dob_keys)
                self._keywords[TYPE].append(record.type.value)
                self._keywords[SOURCE].append(record.source.value)

                for token in name_tokens:
                    self._terms[FULL_NAME].add(token, doc)
                if name_tokens:
                    self._terms[WHOLE_NAME].add(' '.join(name_tokens), doc)
                for token in alias_tokens:
                    self._terms[ALIAS].add(token, doc)
            except MemoryError as e:
                self._rollback(doc, name_tokens, alias_tokens)
                raise IndexBuildError(f"Could not store record {record.id!r}: {e}") from e

            self._ids[record.id] = doc
            # Publish
            self._doc_count = doc + 1

        logger.debug("Indexed record id=%s doc=%d", record.id, doc)

    def _rollback(self, doc: int, name_tokens: Tuple[str, ...], alias_tokens: List[str]) -> None:
        """Undo a partial insert of doc; caller holds the write lock"""
        for token in name_tokens:
            self._terms[FULL_NAME].discard(token, doc)
        if name_tokens:
            self._terms[WHOLE_NAME].discard(' '.join(name_tokens), doc)
        for token in alias_tokens:
            self._terms[ALIAS].discard(token, doc)
        for per_doc in (self._records, self._name_tokens, self._dob_keys, *self._keywords.values()):
            del per_doc[doc:]
        logger.warning("Rolled back partial insert of doc=%d", doc)

    def snapshot(self) -> IndexSnapshot:
        """Open a point-in-time read view"""
        self._check_open()
        return IndexSnapshot(self, self._doc_count)

    def search(
        self,
        query: ComposedQuery,
        top_n: int,
        snapshot: Optional[IndexSnapshot] = None,
    ) -> List[Candidate]:
        """Evaluate a composed query and return the best candidates

        Args:
            query: Query built by the QueryComposer
            top_n: Maximum number of candidates
            snapshot: Read view to use; a fresh one is opened when omitted

        Returns:
            At most top_n candidates by descending relevance, ties in insertion order
        """
        if top_n <= 0:
            return []
        view = snapshot if snapshot is not None else self.snapshot()

        scores: Dict[int, float] = {}
        for clause in query.clauses:
            for doc, score in clause.evaluate(view).items():
                scores[doc] = scores.get(doc, 0.0) + score

        ranked = heapq.nsmallest(
            top_n,
            (doc for doc in scores if query.accepts(view, doc)),
            key=lambda doc: (-scores[doc], doc)
        )

        logger.debug("Retrieved %d candidates (%d surfaced) for tokens=%s",
                     len(ranked), len(scores), query.tokens)
        return [Candidate(record=view.record(doc), relevance_score=scores[doc]) for doc in ranked]

    def get(self, record_id: str) -> Optional[PersonRecord]:
        doc = self._ids.get(record_id)
        return self._records[doc] if doc is not None else None

    def close(self) -> None:
        """Release index storage; further use raises IndexClosedError"""
        with self._write_lock:
            self._closed = True
            self._records = []
            self._name_tokens = []
            self._dob_keys = []
            self._keywords = {TYPE: [], SOURCE: []}
            self._terms = {f: _TermDictionary() for f in _TEXT_FIELDS}
            self._ids = {}
            self._doc_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise IndexClosedError("Candidate index has been closed")

    def __len__(self) -> int:
        return self._doc_count

    def __enter__(self) -> 'CandidateIndex':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def build_index(records: Iterable[PersonRecord], config: Optional[ConfigManager] = None) -> CandidateIndex:
    """Build a CandidateIndex from a record sequence"""
    return CandidateIndex.build(records, config)


def add_record(index: CandidateIndex, record: PersonRecord) -> None:
    """Insert one record into an existing index"""
    index.add(record)
