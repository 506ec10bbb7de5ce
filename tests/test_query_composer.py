"""
Tests for query composition
"""

from datetime import date

import pytest

from watchlist.exceptions import EmptyQueryError, InvalidRequestError
from watchlist.query_composer import (
    ALIAS,
    FULL_NAME,
    SOURCE,
    TYPE,
    DobFilter,
    FuzzyTermClause,
    KeywordFilter,
    PhraseClause,
    QueryComposer,
    TermClause,
    TokenSetClause,
    WholeNameFuzzyClause,
    compose_query,
    term_similarity,
)
from watchlist.records import RecordSource, RecordType


class TestCompose:
    """Tests for QueryComposer.compose"""

    def test_clause_layout(self, config):
        query = QueryComposer(config).compose("John Michael Doe")

        assert query.tokens == ("john", "michael", "doe")
        # 3 whole-name clauses + 4 per token
        assert len(query.clauses) == 3 + 4 * 3
        assert query.filters == ()

        phrase, whole, token_set = query.clauses[:3]
        assert isinstance(phrase, PhraseClause) and phrase.weight == 10.0
        assert isinstance(whole, WholeNameFuzzyClause)
        assert whole.text == "john michael doe"
        assert whole.max_edits == 2 and whole.weight == 6.0
        assert isinstance(token_set, TokenSetClause) and token_set.weight == 5.0

    def test_per_token_clauses(self, config):
        query = QueryComposer(config).compose("Doe")
        per_token = query.clauses[3:]
        assert per_token == (
            TermClause(FULL_NAME, "doe", 3.0),
            FuzzyTermClause(FULL_NAME, "doe", 1, 2.0),
            TermClause(ALIAS, "doe", 1.5),
            FuzzyTermClause(ALIAS, "doe", 1, 1.0),
        )

    def test_baseline_weight_scales_all_clauses(self, tmp_path):
        from watchlist.config_manager import ConfigManager

        config_file = tmp_path / "config.yaml"
        config_file.write_text("matching:\n  baseline_weight: 2.0\n")
        query = QueryComposer(ConfigManager(str(config_file))).compose("Doe")
        assert query.clauses[0].weight == 20.0
        assert query.clauses[-1].weight == 2.0

    def test_name_is_normalized(self, config):
        query = QueryComposer(config).compose("  JOÃO   M. Dó ")
        assert query.tokens == ("joao", "m", "do")

    @pytest.mark.parametrize("name", ["", "   ", "\t"])
    def test_empty_query(self, config, name):
        with pytest.raises(EmptyQueryError) as exc_info:
            QueryComposer(config).compose(name)
        assert isinstance(exc_info.value, InvalidRequestError)
        assert exc_info.value.code == "EMPTY_QUERY"

    def test_filters_added_when_supplied(self, config):
        query = QueryComposer(config).compose(
            "John Doe", dob=date(2020, 7, 1), type=RecordType.INDIVIDUAL, source="sanction"
        )
        assert query.filters == (
            DobFilter("2020-07-01"),
            KeywordFilter(TYPE, "INDIVIDUAL"),
            KeywordFilter(SOURCE, "SANCTION"),
        )

    def test_unknown_filter_value_matches_nothing(self, config):
        query = QueryComposer(config).compose("John Doe", source="OFAC")
        assert query.filters == (KeywordFilter(SOURCE, None),)
        assert not query.filters[0].accepts(None, 0)

    def test_compose_query_shortcut(self, config):
        assert compose_query("John Doe", config=config).tokens == ("john", "doe")


class TestTermSimilarity:
    """Tests for fuzzy hit scaling"""

    def test_identical(self):
        assert term_similarity(0, "doe", "doe") == 1.0

    def test_one_edit(self):
        assert term_similarity(1, "doe", "do") == pytest.approx(2 / 3)

    def test_never_negative(self):
        assert term_similarity(2, "a", "b") == 0.0
