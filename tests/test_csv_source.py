"""
Tests for the CSV watchlist reader
"""

from datetime import date

import pytest

from watchlist.candidate_index import build_index
from watchlist.checker import Checker
from watchlist.csv_source import CsvColumns, CsvRecordSource, read_csv_records
from watchlist.exceptions import ParseError
from watchlist.records import DobRange, RecordSource

HEADER = "id,entry_id,source,type,full_name,alias,dob_start,dob_end\n"

LIST_CSV = HEADER + (
    "1a3a4f2e-2ad4-4961-9d3b-7c20dfe44f11,20201418449,WAB,INDIVIDUAL,Marwan Mohammed ABU RAS,"
    "Merwan Muhammed ABOU RAAS,1958-01-01,1958-12-31\n"
    "769361d2-9278-45e6-bbfb-cf62e5fe5379,10291009672,SANCTION,INDIVIDUAL,Marwan Mohammed ABU RAS,"
    "\"ABOU RAAS, Merwan Muhammed\",1958-01-01,1958-12-31\n"
    "r-3,30000000001,PEP,INDIVIDUAL,John Doe,J. Doe,1970-01-01,1970-12-31\n"
    "r-3,30000000001,PEP,INDIVIDUAL,John Doe,Jon Doe,1975-01-01,1975-12-31\n"
    "r-3,30000000001,PEP,INDIVIDUAL,John Doe,J. Doe,,\n"
    "r-4,40000000001,PIL,ENTITY,Acme Trading LLC,,,\n"
)


@pytest.fixture
def list_csv(tmp_path):
    path = tmp_path / "list.csv"
    path.write_text(LIST_CSV, encoding="utf-8")
    return path


class TestCsvRecordSource:
    """Tests for CSV parsing"""

    def test_one_record_per_id(self, list_csv):
        records = list(CsvRecordSource(list_csv))
        assert [r.id for r in records] == [
            "1a3a4f2e-2ad4-4961-9d3b-7c20dfe44f11",
            "769361d2-9278-45e6-bbfb-cf62e5fe5379",
            "r-3",
            "r-4",
        ]

    def test_fields_parsed(self, list_csv):
        first = next(iter(CsvRecordSource(list_csv)))
        assert first.entry_id == "20201418449"
        assert first.source is RecordSource.WAB
        assert first.full_name == "Marwan Mohammed ABU RAS"
        assert first.aliases == ("Merwan Muhammed ABOU RAAS",)
        assert first.dob_ranges == (DobRange(date(1958, 1, 1), date(1958, 12, 31)),)

    def test_quoted_alias_with_comma(self, list_csv):
        records = list(CsvRecordSource(list_csv))
        assert records[1].aliases == ("ABOU RAAS, Merwan Muhammed",)

    def test_rows_merged(self, list_csv):
        record = list(CsvRecordSource(list_csv))[2]
        assert record.aliases == ("J. Doe", "Jon Doe")
        assert record.dob_ranges == (
            DobRange(date(1970, 1, 1), date(1970, 12, 31)),
            DobRange(date(1975, 1, 1), date(1975, 12, 31)),
        )

    def test_record_without_alias_or_dob(self, list_csv):
        record = list(CsvRecordSource(list_csv))[3]
        assert record.aliases == ()
        assert record.dob_ranges == ()

    def test_filter_column_and_value(self, list_csv):
        records = list(CsvRecordSource(list_csv, filter_column_and_value=(2, "PEP")))
        assert [r.id for r in records] == ["r-3"]

    def test_no_header(self, tmp_path):
        path = tmp_path / "list.csv"
        path.write_text("r-1,e-1,SANCTION,INDIVIDUAL,John Doe,,,\n", encoding="utf-8")
        assert len(list(CsvRecordSource(path, skip_header=False))) == 1
        assert list(CsvRecordSource(path)) == []

    def test_custom_columns(self, tmp_path):
        path = tmp_path / "list.csv"
        path.write_text("name,id,entry,src,kind\nJohn Doe,r-1,e-1,SANCTION,INDIVIDUAL\n", encoding="utf-8")
        columns = CsvColumns(record_id=1, entry_id=2, source=3, type=4, full_name=0,
                             alias=5, dob_start=6, dob_end=7)
        records = list(CsvRecordSource(path, columns=columns))
        assert records[0].id == "r-1"
        assert records[0].full_name == "John Doe"

    def test_blank_lines_ignored(self, tmp_path):
        path = tmp_path / "list.csv"
        path.write_text(HEADER + "\n,,,\nr-1,e-1,SANCTION,INDIVIDUAL,John Doe,,,\n", encoding="utf-8")
        assert len(list(CsvRecordSource(path))) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(CsvRecordSource(tmp_path / "missing.csv"))

    def test_read_csv_records_shortcut(self, list_csv):
        assert len(list(read_csv_records(list_csv))) == 4

    def test_invalid_on_error_option(self, list_csv):
        with pytest.raises(ValueError):
            CsvRecordSource(list_csv, on_error="ignore")


class TestMalformedRows:
    """Tests for malformed entries"""

    BAD_CSV = HEADER + (
        "r-1,e-1,SANCTION,INDIVIDUAL,John Doe,,,\n"
        "r-2,e-2,OFAC,INDIVIDUAL,Jane Doe,,,\n"
        "r-3,e-3,PEP,INDIVIDUAL,Anna Smith,,1980-13-01,1980-12-31\n"
        ",e-4,PEP,INDIVIDUAL,No Id,,,\n"
        "r-5,e-5,PEP,INDIVIDUAL,Short Row\n"
    )

    @pytest.fixture
    def bad_csv(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(self.BAD_CSV, encoding="utf-8")
        return path

    def test_raise_carries_line_and_id(self, bad_csv):
        records = CsvRecordSource(bad_csv, on_error="raise")
        with pytest.raises(ParseError) as exc_info:
            list(records)
        # The row without an id is detected while reading, before any entry is built
        assert exc_info.value.line == 5

    def test_raise_on_first_bad_entry(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(HEADER + "r-1,e-1,SANCTION,INDIVIDUAL,John Doe,,,\n"
                                 "r-2,e-2,OFAC,INDIVIDUAL,Jane Doe,,,\n", encoding="utf-8")
        records = CsvRecordSource(path)
        with pytest.raises(ParseError) as exc_info:
            list(records)
        assert exc_info.value.record_id == "r-2"
        assert exc_info.value.line == 3

    def test_skip_mode(self, bad_csv):
        source = CsvRecordSource(bad_csv, on_error="skip")
        records = list(source)
        assert [r.id for r in records] == ["r-1", "r-5"]
        assert source.skipped == 3

    def test_short_row_still_builds(self, bad_csv):
        record = list(CsvRecordSource(bad_csv, on_error="skip"))[-1]
        assert record.full_name == "Short Row"
        assert record.aliases == ()


class TestListAcceptance:
    """Screen against an index built from a CSV export"""

    def test_full_name_with_dob(self, list_csv, config):
        index = build_index(CsvRecordSource(list_csv), config)
        results = Checker(index, config=config).check("Marwan Mohammed ABU RAS", dob=date(1958, 7, 1))

        by_id = {r.record.id: r for r in results}
        assert set(by_id) == {
            "1a3a4f2e-2ad4-4961-9d3b-7c20dfe44f11",
            "769361d2-9278-45e6-bbfb-cf62e5fe5379",
        }
        assert all(r.confidence_score == 1.0 for r in results)
        assert by_id["769361d2-9278-45e6-bbfb-cf62e5fe5379"].record.source is RecordSource.SANCTION

    def test_dob_outside_range(self, list_csv, config):
        index = build_index(CsvRecordSource(list_csv), config)
        assert Checker(index, config=config).check("Marwan Mohammed ABU RAS", dob="1960-01-01") == []
