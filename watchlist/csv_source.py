"""
CSV watchlist reader

Reads a list export where one entry may span several rows (one row per
alias / DOB range) and yields one PersonRecord per entry id.

Default column layout (0-based):
    0 record id, 1 entry id, 2 source, 3 type, 4 full name,
    5 alias, 6 DOB range start, 7 DOB range end
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from watchlist.exceptions import ParseError
from watchlist.records import PersonRecord

logger = logging.getLogger(__name__)

ON_ERROR_RAISE = "raise"
ON_ERROR_SKIP = "skip"


@dataclass(frozen=True)
class CsvColumns:
    """Column positions of a list export"""
    record_id: int = 0
    entry_id: int = 1
    source: int = 2
    type: int = 3
    full_name: int = 4
    alias: int = 5
    dob_start: int = 6
    dob_end: int = 7


class CsvRecordSource:
    """Lazy PersonRecord source backed by a CSV file"""

    def __init__(
        self,
        path: Union[str, Path],
        columns: CsvColumns = CsvColumns(),
        filter_column_and_value: Optional[Tuple[int, str]] = None,
        skip_header: bool = True,
        on_error: str = ON_ERROR_RAISE,
        encoding: str = "utf-8",
    ):
        """Initialize the source

        Args:
            path: CSV file path
            columns: Column layout
            filter_column_and_value: Keep only rows whose (trimmed) cell at this
                column equals the value
            skip_header: Skip the first row
            on_error: "raise" to abort on a malformed entry, "skip" to log and continue
            encoding: File encoding
        """
        if on_error not in (ON_ERROR_RAISE, ON_ERROR_SKIP):
            raise ValueError(f"on_error must be 'raise' or 'skip', got {on_error!r}")
        self.path = Path(path)
        self.columns = columns
        self.filter_column_and_value = filter_column_and_value
        self.skip_header = skip_header
        self.on_error = on_error
        self.encoding = encoding
        self.skipped = 0

    def __iter__(self) -> Iterator[PersonRecord]:
        return self.iter_records()

    def iter_records(self) -> Iterator[PersonRecord]:
        """Yield one record per record id, in order of first appearance

        Raises:
            ParseError: On a malformed entry when on_error is "raise"
            FileNotFoundError: If the file does not exist
        """
        groups = self._read_groups()
        logger.info("Read %d watchlist entries from %s", len(groups), self.path.name)

        for record_id, rows in groups.items():
            try:
                yield self._to_record(record_id, rows)
            except ParseError as e:
                if self.on_error == ON_ERROR_RAISE:
                    raise
                self.skipped += 1
                logger.warning("Skipping malformed entry id=%s line=%s: %s", record_id, e.line, e)

    def _read_groups(self) -> Dict[str, List[Tuple[int, List[str]]]]:
        groups: Dict[str, List[Tuple[int, List[str]]]] = {}
        with open(self.path, "r", encoding=self.encoding, newline="") as f:
            reader = csv.reader(f)
            for line_no, row in enumerate(reader, 1):
                if line_no == 1 and self.skip_header:
                    continue
                if not row or not any(cell.strip() for cell in row):
                    continue
                if not self._keep(row):
                    continue
                record_id = self._optional_cell(row, self.columns.record_id)
                if not record_id:
                    if self.on_error == ON_ERROR_RAISE:
                        raise ParseError(f"Missing record id on line {line_no}", line=line_no)
                    self.skipped += 1
                    logger.warning("Skipping row without record id on line %d", line_no)
                    continue
                groups.setdefault(record_id, []).append((line_no, row))
        return groups

    def _keep(self, row: List[str]) -> bool:
        if self.filter_column_and_value is None:
            return True
        column, value = self.filter_column_and_value
        return column < len(row) and row[column].strip() == value

    def _cell(self, row: List[str], column: int, line_no: int, record_id: Optional[str] = None) -> str:
        if column >= len(row):
            raise ParseError(f"Missing column {column} on line {line_no}", record_id=record_id, line=line_no)
        return row[column].strip()

    def _optional_cell(self, row: List[str], column: int) -> str:
        return row[column].strip() if column < len(row) else ""

    def _to_record(self, record_id: str, rows: List[Tuple[int, List[str]]]) -> PersonRecord:
        cols = self.columns
        first_line, first = rows[0]

        aliases = []
        dob_ranges = []
        for line_no, row in rows:
            alias = self._optional_cell(row, cols.alias)
            if alias:
                aliases.append(alias)
            start = self._optional_cell(row, cols.dob_start)
            end = self._optional_cell(row, cols.dob_end)
            if start and end:
                dob_ranges.append((start, end))

        try:
            return PersonRecord.create(
                id=record_id,
                entry_id=self._cell(first, cols.entry_id, first_line, record_id),
                source=self._cell(first, cols.source, first_line, record_id),
                type=self._cell(first, cols.type, first_line, record_id),
                full_name=self._cell(first, cols.full_name, first_line, record_id),
                aliases=aliases,
                dob_ranges=dob_ranges,
            )
        except ParseError as e:
            if e.line is None:
                raise ParseError(str(e), record_id=record_id, line=first_line) from None
            raise


def read_csv_records(path: Union[str, Path], **kwargs) -> Iterator[PersonRecord]:
    """Shortcut for iterating CsvRecordSource(path, **kwargs)"""
    return CsvRecordSource(path, **kwargs).iter_records()
