"""
CSV Parser Module

Quote-aware delimited text parser for bank exports, with heuristics for
guessing the separator and whether the first row is a header.
"""

import csv
import logging
import re
from dataclasses import dataclass, field
from io import StringIO

from .config import FormattingOptions

logger = logging.getLogger(__name__)

SEPARATOR_CANDIDATES = [",", ";", "\t", "|"]

HEADER_KEYWORDS = [
    "date",
    "amount",
    "description",
    "merchant",
    "name",
    "balance",
    "account",
    "memo",
    "payee",
    "category",
    "reference",
]

_NUMERIC_TOKEN = re.compile(r"\d+\.?\d*")


@dataclass
class CSVParseResult:
    """Result of parsing delimited text."""

    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    truncated: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.rows


def normalize_line_endings(content: str) -> str:
    """Strip a BOM and convert CRLF/CR line endings to LF."""
    if content.startswith("\ufeff"):
        content = content[1:]
    return content.replace("\r\n", "\n").replace("\r", "\n")


def column_name(index: int) -> str:
    """Positional placeholder name for a column (0-based index)."""
    return f"Column {index + 1}"


class CSVParser:
    """Splits delimited text into headers and rows."""

    def __init__(self, options: FormattingOptions | None = None):
        """Initialize the parser.

        Args:
            options: Formatting options; only separator, quote character and
                header presence are used here
        """
        self.options = options or FormattingOptions()

    def parse(self, content: str, max_rows: int | None = None) -> CSVParseResult:
        """Parse CSV content string.

        Args:
            content: Raw CSV content
            max_rows: Keep at most this many data rows (for previews)

        Returns:
            CSVParseResult; empty input yields an empty result with a warning
        """
        result = CSVParseResult()

        if not content or not content.strip():
            result.warnings.append("Empty CSV file")
            return result

        all_rows, unterminated = split_records(
            normalize_line_endings(content), self.options.separator, self.options.quote_char
        )
        if unterminated:
            result.warnings.append("Unterminated quoted field at end of file")
        if not all_rows:
            result.warnings.append("Empty CSV file")
            return result

        if self.options.has_headers:
            header_row = all_rows[0]
            result.headers = [
                value if value else column_name(i) for i, value in enumerate(header_row)
            ]
            data_rows = all_rows[1:]
        else:
            result.headers = [column_name(i) for i in range(len(all_rows[0]))]
            data_rows = all_rows

        expected = len(result.headers)
        for i, row in enumerate(data_rows):
            if len(row) != expected:
                result.warnings.append(f"Row {i + 1} has {len(row)} columns, expected {expected}")

        if max_rows is not None and len(data_rows) > max_rows:
            result.truncated = True
            data_rows = data_rows[:max_rows]

        result.rows = data_rows
        logger.debug(
            f"Parsed {result.row_count} rows x {expected} columns "
            f"({len(result.warnings)} warnings)"
        )
        return result


def split_records(
    content: str,
    separator: str = ",",
    quote_char: str = '"',
) -> tuple[list[list[str]], bool]:
    """Split delimited text into rows of trimmed fields.

    Blank lines are dropped, but a line holding only a quoted empty value
    is kept as a row. Text after a closing quote is kept as part of the
    field.

    Args:
        content: Text with LF line endings
        separator: Column separator
        quote_char: Quote character

    Returns:
        Tuple of (rows, whether input ended inside an open quote)
    """
    dialect = {"delimiter": separator, "quotechar": quote_char, "skipinitialspace": True}
    consumed: list[str] = []

    def lines():
        for line in StringIO(content):
            consumed.append(line)
            yield line

    rows: list[list[str]] = []
    last_raw = ""
    start = 0
    try:
        for record in csv.reader(lines(), **dialect):
            raw = "".join(consumed[start:])
            start = len(consumed)
            if raw.strip():
                rows.append([value.strip() for value in record])
                last_raw = raw
    except csv.Error as e:
        # A runaway quoted field hits the field size limit
        logger.warning(f"Stopped reading CSV at line {len(consumed)}: {e}")
        return rows, True

    return rows, _ends_inside_quotes(last_raw, dialect)


def _ends_inside_quotes(raw: str, dialect: dict) -> bool:
    """Check whether the text of one record stops inside an open quote."""
    try:
        for _ in csv.reader(StringIO(raw), strict=True, **dialect):
            pass
    except csv.Error as e:
        return "unexpected end of data" in str(e)
    return False


def parse_csv(
    content: str,
    options: FormattingOptions | None = None,
    max_rows: int | None = None,
) -> CSVParseResult:
    """Convenience function to parse CSV content with the given options."""
    return CSVParser(options).parse(content, max_rows=max_rows)


def detect_separator(content: str) -> str:
    """Detect the likely separator used in a CSV file.

    Args:
        content: Raw CSV content (first few lines are enough)

    Returns:
        The candidate occurring most often in the first line, or "," when
        none occurs
    """
    first_line = normalize_line_endings(content).split("\n", 1)[0]

    best, best_count = ",", 0
    for candidate in SEPARATOR_CANDIDATES:
        count = first_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def detect_headers(content: str, separator: str = ",") -> bool:
    """Detect whether the first row of a CSV looks like a header row.

    Args:
        content: Raw CSV content
        separator: Column separator

    Returns:
        True if the first row appears to be headers
    """
    rows, _ = split_records(normalize_line_endings(content or ""), separator)
    rows = rows[:2]

    if len(rows) < 2:
        return True

    first_row, second_row = rows
    first_has_numbers = any(_NUMERIC_TOKEN.search(value) for value in first_row)
    second_has_numbers = any(_NUMERIC_TOKEN.search(value) for value in second_row)

    if not first_has_numbers and second_has_numbers:
        return True

    return any(
        keyword in value.lower() for value in first_row for keyword in HEADER_KEYWORDS
    )
