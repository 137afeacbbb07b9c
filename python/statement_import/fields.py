"""
Field Interpreter Module

Parses single CSV cells into numbers and calendar dates according to the
user's formatting settings.
"""

import math
import re
from datetime import date

CURRENCY_SYMBOLS = "$€£¥₹"

_CURRENCY_AND_SPACE = re.compile(rf"[{re.escape(CURRENCY_SYMBOLS)}\s]")
_DECIMAL_LITERAL = re.compile(r"^(\d+\.?\d*|\.\d+)$")

# Longest tokens first so "yyyy" wins over "yy" and "MM" over "M"
DATE_FORMAT_TOKENS: list[tuple[str, str, str]] = [
    ("yyyy", r"(\d{4})", "year4"),
    ("yy", r"(\d{2})", "year2"),
    ("MM", r"(\d{2})", "month"),
    ("dd", r"(\d{2})", "day"),
    ("M", r"(\d{1,2})", "month"),
    ("d", r"(\d{1,2})", "day"),
]

_pattern_cache: dict[str, tuple[re.Pattern, list[str]]] = {}


def parse_number(
    value: str | None,
    thousand_separator: str = ",",
    decimal_separator: str = ".",
) -> float:
    """Parse a number string, handling different regional formats.

    Handles currency symbols, accounting-style parentheses and a leading
    minus sign. Never raises: anything unparseable yields NaN.

    Args:
        value: The number string to parse
        thousand_separator: Thousands separator to remove (may be empty)
        decimal_separator: Decimal separator to convert to "."

    Returns:
        Parsed float, or math.nan if the value is empty, invalid or too
        large to represent

    Example:
        >>> parse_number("(1,234.56)")
        -1234.56
        >>> parse_number("1.234,56", ".", ",")
        1234.56
    """
    if not value or not value.strip():
        return math.nan

    cleaned = _CURRENCY_AND_SPACE.sub("", value)

    # Accounting format
    is_negative = len(cleaned) >= 2 and cleaned.startswith("(") and cleaned.endswith(")")
    if is_negative:
        cleaned = cleaned[1:-1]

    has_minus_prefix = cleaned.startswith("-")
    if has_minus_prefix:
        cleaned = cleaned[1:]

    if thousand_separator and not thousand_separator.isspace():
        cleaned = cleaned.replace(thousand_separator, "")

    if decimal_separator != ".":
        cleaned = cleaned.replace(decimal_separator, ".", 1)

    if not _DECIMAL_LITERAL.match(cleaned):
        return math.nan

    number = float(cleaned)
    if math.isinf(number):
        return math.nan
    return -number if is_negative or has_minus_prefix else number


def is_nan_amount(value: float) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _compile_date_format(date_format: str) -> tuple[re.Pattern, list[str]]:
    """Turn a format such as "dd/MM/yyyy" into an anchored regex.

    Returns:
        Tuple of (compiled pattern, extractor name per capture group)
    """
    cached = _pattern_cache.get(date_format)
    if cached:
        return cached

    parts: list[str] = []
    extractors: list[str] = []
    i = 0
    while i < len(date_format):
        for token, regex, extract in DATE_FORMAT_TOKENS:
            if date_format.startswith(token, i):
                parts.append(regex)
                extractors.append(extract)
                i += len(token)
                break
        else:
            parts.append(re.escape(date_format[i]))
            i += 1

    compiled = (re.compile("^" + "".join(parts) + "$"), extractors)
    _pattern_cache[date_format] = compiled
    return compiled


def parse_date(
    value: str | None,
    date_format: str = "yyyy-MM-dd",
    two_digit_year_pivot: int = 50,
) -> str | None:
    """Parse a date string according to a format.

    Supported tokens: yyyy, yy, MM, M, dd, d. Every other character in the
    format must appear literally.

    Args:
        value: The date string to parse
        date_format: The date format (e.g. "yyyy-MM-dd", "MM/dd/yyyy")
        two_digit_year_pivot: Two-digit years below this are 20xx, others 19xx

    Returns:
        ISO date string (YYYY-MM-DD) or None if invalid
    """
    if not value or not value.strip():
        return None

    pattern, extractors = _compile_date_format(date_format)
    match = pattern.match(value.strip())
    if not match:
        return None

    year = month = day = None
    for extract, group in zip(extractors, match.groups()):
        number = int(group)
        if extract == "year4":
            year = number
        elif extract == "year2":
            year = 2000 + number if number < two_digit_year_pivot else 1900 + number
        elif extract == "month":
            month = number
        elif extract == "day":
            day = number

    if year is None or month is None or day is None:
        return None
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        # Day does not exist in that month (e.g. Feb 30)
        return None


def format_minor_units(
    amount: int,
    decimals: int = 2,
    thousand_separator: str = ",",
    decimal_separator: str = ".",
) -> str:
    """Render a minor-unit integer the way a bank export in that locale would.

    Args:
        amount: Amount in minor units
        decimals: Currency decimal places
        thousand_separator: Grouping separator ("" for none)
        decimal_separator: Decimal separator

    Returns:
        Formatted string such as "-1,234.56" or "1.234,56"
    """
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** decimals)

    digits = str(whole)
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    text = thousand_separator.join(groups)

    if decimals:
        text += decimal_separator + str(fraction).zfill(decimals)
    return sign + text
