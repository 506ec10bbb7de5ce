"""
Watchlist Checker

Public screening API: validates the request, retrieves a shortlist from the
candidate index, scores every shortlisted entry against the original name and
keeps those at or above the acceptance threshold.

Results keep retrieval relevance order; they are not re-sorted by confidence.
"""

import logging
import time
import unicodedata
from datetime import date
from typing import List, Optional, Union

from watchlist.candidate_index import CandidateIndex
from watchlist.config_manager import ConfigManager, get_config
from watchlist.exceptions import InvalidRequestError, ParseError
from watchlist.log_utils import sanitize_for_logging
from watchlist.query_composer import QueryComposer
from watchlist.records import MatchResult, RecordSource, RecordType, parse_date
from watchlist.similarity import SimilarityScorer

logger = logging.getLogger(__name__)

DobInput = Union[date, str, None]


def validate_check_request(full_name: str, dob: DobInput = None,
                           config: Optional[ConfigManager] = None) -> Optional[date]:
    """Validate screening input data

    Args:
        full_name: Name to screen
        dob: Optional date of birth (date or YYYY-MM-DD string)
        config: Optional configuration manager for validation settings

    Returns:
        The date of birth as a date, or None

    Raises:
        InvalidRequestError: If validation fails with detailed error info
    """
    if config is None:
        config = get_config()
    iv_config = config.input_validation

    if not isinstance(full_name, str) or not full_name.strip():
        raise InvalidRequestError(
            "Name must not be blank",
            field="full_name",
            code="NAME_BLANK",
            suggestion="Provide the full name to screen"
        )

    if len(full_name) > iv_config.name_max_length:
        raise InvalidRequestError(
            f"Name too long ({len(full_name)} chars, maximum {iv_config.name_max_length})",
            field="full_name",
            code="NAME_TOO_LONG",
            suggestion=f"Shorten the name to {iv_config.name_max_length} characters or less"
        )

    if iv_config.reject_control_characters:
        for char in full_name:
            # Whitespace such as tabs and newlines is tolerated and collapsed later
            if unicodedata.category(char).startswith('C') and not char.isspace():
                logger.warning("Control character detected in name: %s",
                               sanitize_for_logging(full_name))
                raise InvalidRequestError(
                    f"Name contains invalid control character (code: {ord(char)})",
                    field="full_name",
                    code="CONTROL_CHARACTER",
                    suggestion="Remove invisible or control characters from the name"
                )

    if dob is None or dob == "":
        return None
    try:
        return parse_date(dob)
    except (ParseError, TypeError):
        raise InvalidRequestError(
            f"DOB must be ISO 8601 format. Got: '{dob}'. Example: '1980-01-15'",
            field="dob",
            code="INVALID_DOB_FORMAT",
            suggestion="Use format YYYY-MM-DD"
        ) from None


class Checker:
    """Screens names against a candidate index"""

    def __init__(
        self,
        index: CandidateIndex,
        scorer: Optional[SimilarityScorer] = None,
        threshold: Optional[float] = None,
        top_n: Optional[int] = None,
        config: Optional[ConfigManager] = None,
    ):
        """Initialize checker

        Args:
            index: Candidate index to screen against
            scorer: Similarity scorer (built from config when omitted)
            threshold: Default acceptance threshold (config matching.threshold)
            top_n: Shortlist size (config matching.top_n)
            config: Configuration manager instance
        """
        self.config = config or get_config()
        self.index = index
        self.composer = QueryComposer(self.config)
        self.scorer = scorer or SimilarityScorer(config=self.config)
        self.threshold = self.config.matching.threshold if threshold is None else threshold
        self.top_n = self.config.matching.top_n if top_n is None else top_n
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {self.threshold}")

    def check(
        self,
        full_name: str,
        dob: DobInput = None,
        type: Union[RecordType, str, None] = None,
        source: Union[RecordSource, str, None] = None,
        threshold: Optional[float] = None,
    ) -> List[MatchResult]:
        """Screen a name

        Args:
            full_name: Name to screen
            dob: Optional date of birth; only entries with a range containing it qualify
            type: Optional entity type filter
            source: Optional source list filter
            threshold: Per-call acceptance threshold overriding the default

        Returns:
            Matches in retrieval relevance order; empty when nothing qualifies

        Raises:
            InvalidRequestError: If the name is blank or unusable, or dob is malformed
        """
        start_time = time.time()
        dob_date = validate_check_request(full_name, dob, self.config)
        accept_at = self.threshold if threshold is None else threshold
        if not 0.0 <= accept_at <= 1.0:
            raise InvalidRequestError(
                f"Threshold must be within [0, 1], got {accept_at}",
                field="threshold",
                code="INVALID_THRESHOLD"
            )

        query = self.composer.compose(full_name, dob=dob_date, type=type, source=source)
        candidates = self.index.search(query, self.top_n)

        results: List[MatchResult] = []
        for candidate in candidates:
            record = candidate.record
            score, matched_name = self.scorer.best_match(full_name, record.full_name, record.aliases)
            if score >= accept_at:
                results.append(MatchResult(
                    record=record,
                    confidence_score=score,
                    matched_name=matched_name,
                    relevance_score=candidate.relevance_score
                ))
            else:
                logger.debug("Rejected candidate id=%s score=%.3f", record.id, score)

        logger.info("Checked %s: %d candidates, %d matches in %.1f ms",
                    sanitize_for_logging(full_name, 100), len(candidates), len(results),
                    (time.time() - start_time) * 1000)
        return results


def check(
    index: CandidateIndex,
    full_name: str,
    dob: DobInput = None,
    type: Union[RecordType, str, None] = None,
    source: Union[RecordSource, str, None] = None,
    threshold: Optional[float] = None,
    config: Optional[ConfigManager] = None,
) -> List[MatchResult]:
    """Screen a name against an index with default scorer and settings"""
    return Checker(index, config=config).check(
        full_name, dob=dob, type=type, source=source, threshold=threshold
    )
