"""
Similarity Scorer

Confidence in [0, 1] that a screened name and a list entry denote the same
party, computed on normalized tokens and independent of retrieval relevance.

For a query q and a candidate name c:

    query_coverage     = mean over q tokens of the best fuzz.ratio against c tokens
    candidate_coverage = mean over c tokens of the best fuzz.ratio against q tokens
    similarity         = query_coverage - k * (query_coverage - candidate_coverage)

A token whose best ratio falls below token_match_floor counts as unmatched (0),
so unrelated tokens earn no partial credit for sharing a letter or two.

Query coverage dominates: a query that omits one middle name still covers the
entry well ("John Doe" vs "John Michael Doe" ~ 0.92), while a query carrying a
token the entry lacks does not ("John Michael Doe" vs "John Doe" = 0.75).
k (candidate_coverage_weight) is what rejects partial names: a bare surname
against a two-token entry scores 1 - k/2 = 0.875.
Token order never matters. The final score is the maximum over the entry's
full name and all of its aliases.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from watchlist.config_manager import ConfigManager, get_config
from watchlist.normalizer import normalize_tokens

logger = logging.getLogger(__name__)


def _coverage(source: Sequence[str], target: Sequence[str], floor: float) -> float:
    """Mean best per-token similarity of source tokens against target tokens"""
    target_set = set(target)
    total = 0.0
    for token in source:
        if token in target_set:
            total += 1.0
            continue
        best = process.extractOne(token, target, scorer=fuzz.ratio, score_cutoff=floor * 100)
        total += best[1] / 100.0 if best else 0.0
    return total / len(source)


class SimilarityScorer:
    """Alias-aware, order-insensitive name similarity"""

    def __init__(self, candidate_coverage_weight: Optional[float] = None,
                 config: Optional[ConfigManager] = None,
                 token_match_floor: Optional[float] = None):
        matching = (config or get_config()).matching
        if candidate_coverage_weight is None:
            candidate_coverage_weight = matching.candidate_coverage_weight
        if token_match_floor is None:
            token_match_floor = matching.token_match_floor
        self.candidate_coverage_weight = candidate_coverage_weight
        self.token_match_floor = token_match_floor

    def token_similarity(self, query_tokens: Sequence[str], candidate_tokens: Sequence[str]) -> float:
        if not query_tokens or not candidate_tokens:
            return 0.0
        query_cov = _coverage(query_tokens, candidate_tokens, self.token_match_floor)
        candidate_cov = _coverage(candidate_tokens, query_tokens, self.token_match_floor)
        score = query_cov - self.candidate_coverage_weight * (query_cov - candidate_cov)
        return min(1.0, max(0.0, score))

    def similarity(self, query_name: str, candidate_name: str) -> float:
        """Similarity of two raw names"""
        query_tokens = normalize_tokens(query_name)
        candidate_tokens = normalize_tokens(candidate_name)
        if not query_tokens and not candidate_tokens:
            return 1.0 if _collapse(query_name) == _collapse(candidate_name) else 0.0
        return self.token_similarity(query_tokens, candidate_tokens)

    def best_match(
        self,
        query_name: str,
        candidate_name: str,
        candidate_aliases: Iterable[str] = (),
    ) -> Tuple[float, str]:
        """Best similarity across the candidate's name and aliases

        Returns:
            Tuple of (score, the name that produced it); ties keep the
            canonical name
        """
        query_tokens = normalize_tokens(query_name)
        names: List[str] = [candidate_name, *candidate_aliases]

        best_score, best_name = -1.0, candidate_name
        for name in names:
            if query_tokens:
                score = self.token_similarity(query_tokens, normalize_tokens(name))
            else:
                score = self.similarity(query_name, name)
            if score > best_score:
                best_score, best_name = score, name
                if best_score >= 1.0:
                    break
        return max(0.0, best_score), best_name

    def score(
        self,
        query_name: str,
        candidate_name: str,
        candidate_aliases: Iterable[str] = (),
    ) -> float:
        """Confidence in [0, 1] that query_name denotes the candidate"""
        return self.best_match(query_name, candidate_name, candidate_aliases)[0]


def _collapse(name: str) -> str:
    return ' '.join((name or '').casefold().split())
