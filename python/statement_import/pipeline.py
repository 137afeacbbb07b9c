"""
Import Preview Pipeline

Runs processing, duplicate detection and the old transaction filter in one
pass and shapes the outcome into per-row preview entries.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from .config import FormattingOptions, ImportConfig
from .csv_parser import detect_headers, detect_separator
from .filter import filter_old_transactions, newest_existing_date
from .models import (
    CandidateTransaction,
    ExistingTransaction,
    FileType,
    FilterStats,
    ImportFailure,
)
from .ofx import is_ofx_format
from .processor import ImportProcessor

logger = logging.getLogger(__name__)

STATUS_VALID = "valid"
STATUS_INVALID = "invalid"
STATUS_DUPLICATE = "duplicate"
STATUS_FILTERED = "filtered"


@dataclass
class PreviewTransaction:
    """One row of the import preview."""

    row_index: int
    status: str
    transaction: CandidateTransaction | None = None
    duplicate_of: str | None = None
    duplicate_confidence: float = 0.0
    validation_errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "row_index": self.row_index,
            "status": self.status,
            "transaction": self.transaction.to_dict() if self.transaction else None,
            "duplicate_of": self.duplicate_of,
            "duplicate_confidence": self.duplicate_confidence,
            "validation_errors": self.validation_errors,
        }


@dataclass
class ImportSummaryStats:
    total_rows: int = 0
    valid_count: int = 0
    error_count: int = 0
    duplicate_count: int = 0
    filtered_count: int = 0


@dataclass
class ImportPreview:
    """Everything needed to show an import before committing it."""

    file_type: FileType
    currency: str
    rows: list[PreviewTransaction] = field(default_factory=list)
    stats: ImportSummaryStats = field(default_factory=ImportSummaryStats)
    filter_stats: FilterStats = field(default_factory=FilterStats)
    cutoff_date: date | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True

    @property
    def can_import(self) -> bool:
        return self.stats.valid_count > 0

    def to_import(self, include_duplicates: bool = False) -> list[CandidateTransaction]:
        """Transactions to persist, in row order.

        Args:
            include_duplicates: Also return duplicates the filter kept
        """
        wanted = {STATUS_VALID, STATUS_DUPLICATE} if include_duplicates else {STATUS_VALID}
        return [row.transaction for row in self.rows if row.status in wanted and row.transaction]


def detect_file_type(content: str) -> FileType:
    return FileType.OFX if is_ofx_format(content or "") else FileType.CSV


def suggest_formatting(content: str, base: FormattingOptions | None = None) -> FormattingOptions:
    """Guess separator and header presence for a CSV file.

    Args:
        content: Raw CSV content
        base: Options to keep for everything not guessed

    Returns:
        FormattingOptions with detected separator and has_headers
    """
    base = base or FormattingOptions()
    separator = detect_separator(content or "")
    quote_char = base.quote_char if base.quote_char != separator else '"'
    return FormattingOptions(
        separator=separator,
        has_headers=detect_headers(content or "", separator),
        thousand_separator=base.thousand_separator,
        decimal_separator=base.decimal_separator,
        date_format=base.date_format,
        quote_char=quote_char,
        negate_amounts=base.negate_amounts,
        amount_in_minor_units=base.amount_in_minor_units,
        collapse_whitespace=base.collapse_whitespace,
        two_digit_year_pivot=base.two_digit_year_pivot,
    )


def build_import_preview(
    content: str,
    config: ImportConfig | None = None,
    existing_transactions: list[ExistingTransaction] | None = None,
    target_currency: str = "USD",
    expected_currency: str | None = None,
) -> ImportPreview | ImportFailure:
    """Process an import file and classify every row for preview.

    Args:
        content: Raw CSV or OFX content
        config: Formatting, duplicate, filter settings and column mappings
        existing_transactions: Transactions already stored in the account
        target_currency: Currency used for CSV amounts
        expected_currency: Currency every OFX statement must use

    Returns:
        ImportPreview, or the ImportFailure that stopped processing
    """
    config = config or ImportConfig()
    existing = existing_transactions or []

    result = ImportProcessor(config.duplicate_detection).process(
        content,
        config.column_mappings,
        config.formatting,
        existing,
        target_currency,
        expected_currency,
    )
    if isinstance(result, ImportFailure):
        return result

    filtered = filter_old_transactions(
        result.transactions,
        newest_existing_date(existing),
        config.old_transaction_filter,
    )

    preview = ImportPreview(
        file_type=result.file_type,
        currency=result.currency,
        filter_stats=filtered.stats,
        cutoff_date=filtered.cutoff_date,
        warnings=list(result.warnings),
    )

    rows: list[PreviewTransaction] = []
    for candidate, decision in zip(result.transactions, filtered.decisions):
        if not decision.included:
            status = STATUS_FILTERED
        elif candidate.is_duplicate:
            status = STATUS_DUPLICATE
        else:
            status = STATUS_VALID
        rows.append(
            PreviewTransaction(
                row_index=candidate.source_row_index,
                status=status,
                transaction=candidate,
                duplicate_of=candidate.duplicate_of_id,
                duplicate_confidence=candidate.duplicate_confidence or 0.0,
            )
        )
    for error in result.errors:
        rows.append(
            PreviewTransaction(
                row_index=error.row_index,
                status=STATUS_INVALID,
                validation_errors=list(error.errors),
            )
        )
    rows.sort(key=lambda row: row.row_index)
    preview.rows = rows

    preview.stats = ImportSummaryStats(
        total_rows=result.stats.total_rows,
        valid_count=sum(1 for row in rows if row.status == STATUS_VALID),
        error_count=result.stats.error_rows,
        duplicate_count=result.stats.duplicate_count,
        filtered_count=filtered.stats.excluded_count,
    )

    logger.info(
        f"Import preview: {preview.stats.valid_count} to import, "
        f"{preview.stats.duplicate_count} duplicates, {preview.stats.filtered_count} filtered, "
        f"{preview.stats.error_count} errors"
    )
    return preview
