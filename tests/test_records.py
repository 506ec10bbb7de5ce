"""
Tests for watchlist domain types
"""

from datetime import date, datetime

import pytest

from watchlist.exceptions import ParseError
from watchlist.records import (
    DobRange,
    MatchResult,
    PersonRecord,
    RecordSource,
    RecordType,
    lookup_enum,
    parse_date,
    parse_enum,
)


class TestEnums:
    """Tests for enum parsing"""

    def test_parse_enum_exact(self):
        assert parse_enum(RecordSource, "WAB") is RecordSource.WAB
        assert parse_enum(RecordType, "INDIVIDUAL") is RecordType.INDIVIDUAL

    @pytest.mark.parametrize("literal", ["sanction", "Sanction", " SANCTION", ""])
    def test_parse_enum_rejects_inexact_literal(self, literal):
        with pytest.raises(ParseError):
            parse_enum(RecordSource, literal)

    def test_record_rejects_lowercase_literal(self):
        with pytest.raises(ParseError):
            PersonRecord(id="r1", entry_id="e1", source="sanction", type="INDIVIDUAL", full_name="John Doe")

    def test_parse_enum_passthrough(self):
        assert parse_enum(RecordSource, RecordSource.PIL) is RecordSource.PIL

    def test_parse_enum_unknown_raises(self):
        with pytest.raises(ParseError) as exc_info:
            parse_enum(RecordSource, "OFAC", record_id="r1")
        assert exc_info.value.record_id == "r1"
        assert "SANCTION" in str(exc_info.value)

    def test_lookup_enum_unknown_is_none(self):
        assert lookup_enum(RecordType, "VESSEL") is None
        assert lookup_enum(RecordType, None) is None
        assert lookup_enum(RecordType, "entity") is RecordType.ENTITY


class TestDates:
    """Tests for DOB parsing and ranges"""

    def test_parse_date_forms(self):
        assert parse_date("1958-07-01") == date(1958, 7, 1)
        assert parse_date(date(1958, 7, 1)) == date(1958, 7, 1)
        assert parse_date(datetime(1958, 7, 1, 12, 30)) == date(1958, 7, 1)

    @pytest.mark.parametrize("value", ["01/07/1958", "1958-13-01", "not-a-date", ""])
    def test_parse_date_invalid(self, value):
        with pytest.raises(ParseError):
            parse_date(value)

    def test_range_contains_is_inclusive(self):
        r = DobRange(date(1958, 1, 1), date(1958, 12, 31))
        assert r.contains(date(1958, 1, 1))
        assert r.contains(date(1958, 12, 31))
        assert r.contains(date(1958, 7, 1))
        assert not r.contains(date(1957, 12, 31))
        assert not r.contains(date(1959, 1, 1))

    def test_single_day_range(self):
        r = DobRange(date(1970, 5, 5), date(1970, 5, 5))
        assert r.contains(date(1970, 5, 5))

    def test_reversed_range_rejected(self):
        with pytest.raises(ParseError):
            DobRange(date(1959, 1, 1), date(1958, 1, 1))

    def test_range_keys(self):
        r = DobRange(date(1958, 1, 1), date(1958, 12, 31))
        assert (r.start_key, r.end_key) == ("1958-01-01", "1958-12-31")
        assert r.to_dict() == {'start': "1958-01-01", 'end': "1958-12-31"}


class TestPersonRecord:
    """Tests for PersonRecord validation"""

    def test_create_from_strings(self):
        record = PersonRecord.create(
            id="1a3a4f2e",
            entry_id="20201418449",
            source="WAB",
            type="INDIVIDUAL",
            full_name="Marwan Mohammed ABU RAS",
            aliases=["Merwan Muhammed ABOU RAAS"],
            dob_ranges=[("1958-01-01", "1958-12-31")],
        )
        assert record.source is RecordSource.WAB
        assert record.type is RecordType.INDIVIDUAL
        assert record.dob_ranges == (DobRange(date(1958, 1, 1), date(1958, 12, 31)),)

    def test_aliases_deduplicated_in_order(self):
        record = PersonRecord.create(
            id="r1", entry_id="e1", source="PEP", type="ENTITY", full_name="Acme",
            aliases=["B", "", "A", "B", "  ", "A "],
        )
        assert record.aliases == ("B", "A")

    def test_blank_name_rejected(self):
        with pytest.raises(ParseError) as exc_info:
            PersonRecord.create(id="r1", entry_id="e1", source="PEP", type="ENTITY", full_name="  ")
        assert exc_info.value.record_id == "r1"

    def test_blank_id_rejected(self):
        with pytest.raises(ParseError):
            PersonRecord.create(id="", entry_id="e1", source="PEP", type="ENTITY", full_name="Acme")

    def test_bad_range_carries_record_id(self):
        with pytest.raises(ParseError) as exc_info:
            PersonRecord.create(
                id="r9", entry_id="e1", source="PEP", type="INDIVIDUAL", full_name="John Doe",
                dob_ranges=[("1960-01-01", "1950-01-01")],
            )
        assert exc_info.value.record_id == "r9"

    def test_all_names(self):
        record = PersonRecord.create(
            id="r1", entry_id="e1", source="PEP", type="INDIVIDUAL", full_name="John Doe",
            aliases=["Jon Doe"],
        )
        assert record.all_names == ["John Doe", "Jon Doe"]

    def test_to_dict(self):
        record = PersonRecord.create(
            id="r1", entry_id="e1", source="PIL", type="INDIVIDUAL", full_name="John Doe",
            dob_ranges=[("1980-01-01", "1980-12-31")],
        )
        data = record.to_dict()
        assert data['source'] == "PIL"
        assert data['dob_ranges'] == [{'start': "1980-01-01", 'end': "1980-12-31"}]

    def test_records_are_immutable(self):
        record = PersonRecord.create(id="r1", entry_id="e1", source="PEP", type="INDIVIDUAL",
                                     full_name="John Doe")
        with pytest.raises(Exception):
            record.full_name = "Jane Doe"


class TestMatchResult:
    """Tests for MatchResult serialization"""

    def test_to_dict_rounds_scores(self):
        record = PersonRecord.create(id="r1", entry_id="e1", source="PEP", type="INDIVIDUAL",
                                     full_name="John Doe")
        result = MatchResult(record=record, confidence_score=0.973333, matched_name="John Doe",
                             relevance_score=12.345678)
        data = result.to_dict()
        assert data['confidence_score'] == 0.9733
        assert data['relevance_score'] == 12.3457
        assert data['record']['id'] == "r1"
