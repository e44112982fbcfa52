"""
CSV parsing for bulk imports.

Turns uploaded text into header-keyed rows. Parsing is lenient about
ragged rows (short rows are padded, long rows truncated) but strict
about quoting: an unbalanced quote fails the whole file.
"""

import csv
import io
import logging
import sys
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Union

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8-sig"  # Handles BOM from Excel exports
DEFAULT_DELIMITER = ","


try:
    csv.field_size_limit(sys.maxsize)
except OverflowError:
    # C long is 32 bits on some platforms
    csv.field_size_limit(2**31 - 1)


class ParseError(ValueError):
    """Raised when the file cannot be parsed at all. Fatal for the job."""
    pass


class SourceDecodeError(ParseError):
    """Raised when the uploaded bytes are not valid text in the expected encoding."""
    pass


@dataclass(frozen=True)
class RawRow:
    """
    One data row keyed by header name.

    row_number is the 1-based line position counting the header as 1,
    so the first data row is row 2.
    """
    row_number: int
    values: Mapping[str, str]

    def get(self, column: str, default: str = "") -> str:
        return self.values.get(column, default)


def decode_source(source: Union[bytes, str], encoding: str = DEFAULT_ENCODING) -> str:
    """
    Decode an uploaded file into text.

    Raises:
        SourceDecodeError: If the bytes are not valid in the given encoding
    """
    if isinstance(source, str):
        return source.lstrip("\ufeff")

    try:
        return source.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise SourceDecodeError(f"Could not decode file as {encoding}: {e}") from e


def _is_blank(cells: List[str]) -> bool:
    return not cells or (len(cells) == 1 and not cells[0].strip())


def parse_csv(text: str, delimiter: str = DEFAULT_DELIMITER) -> List[RawRow]:
    """
    Parse delimited text into ordered RawRows.

    The first non-blank line is the header. Blank lines are skipped and do
    not count toward row numbers.

    Args:
        text: Decoded file contents
        delimiter: Column delimiter

    Returns:
        RawRows in file order

    Raises:
        ParseError: On malformed quoting or when no header row exists
    """
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)

    header: List[str] = []
    rows: List[RawRow] = []

    try:
        for cells in reader:
            if _is_blank(cells):
                continue

            if not header:
                header = [cell.strip() for cell in cells]
                continue

            values = {}
            for i, column in enumerate(header):
                # Short rows pad with empty strings, extra cells are ignored
                values[column] = cells[i] if i < len(cells) else ""

            rows.append(RawRow(row_number=len(rows) + 2, values=MappingProxyType(values)))
    except csv.Error as e:
        raise ParseError(f"Line {reader.line_num}: {e}") from e

    if not header:
        raise ParseError("File has no header row")

    logger.debug("Parsed %d data rows with columns %s", len(rows), header)
    return rows
