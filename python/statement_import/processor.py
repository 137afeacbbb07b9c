"""
Import Processor Module

Turns raw CSV or OFX content into normalized candidate transactions, collects
row-level errors and flags likely duplicates of existing transactions.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping

from .config import ColumnMapping, DuplicateDetectionConfig, FormattingOptions, TargetField
from .csv_parser import parse_csv
from .currency import Money, normalize_currency_code, round_half_up, to_minor_units
from .duplicates import DuplicateDetector, annotate_duplicates
from .fields import is_nan_amount, parse_date, parse_number
from .models import (
    CandidateTransaction,
    ExistingTransaction,
    FailureKind,
    FileType,
    ImportFailure,
    ImportResult,
    ImportStats,
    RowError,
)
from .ofx import OFXParseFailure, is_ofx_format, parse_ofx

logger = logging.getLogger(__name__)

ColumnMappings = Iterable[ColumnMapping] | Mapping[str, str]


@dataclass
class _RowValues:
    """Raw cell values for the mapped fields of one row."""

    date: str = ""
    amount: str = ""
    merchant: str = ""
    description: str = ""
    memo: str = ""
    check_number: str = ""
    category: str = ""


def normalize_mappings(column_mappings: ColumnMappings | None) -> list[ColumnMapping]:
    """Accept ColumnMapping objects or a {source column: target field} dict."""
    if not column_mappings:
        return []
    if isinstance(column_mappings, Mapping):
        return [
            ColumnMapping(source_column=source, target_field=target)
            for source, target in column_mappings.items()
        ]
    return list(column_mappings)


def build_column_index(
    headers: list[str],
    column_mappings: ColumnMappings | None,
) -> dict[TargetField, int]:
    """Map each target field to the index of its source column.

    Mappings whose source column is not among the headers, and mappings to
    "ignore", are left out. The first mapping for a target field wins.
    """
    positions: dict[str, int] = {}
    for i, header in enumerate(headers):
        positions.setdefault(header.strip(), i)

    index: dict[TargetField, int] = {}
    for mapping in normalize_mappings(column_mappings):
        if mapping.target_field == TargetField.IGNORE:
            continue
        position = positions.get(mapping.source_column.strip())
        if position is not None and mapping.target_field not in index:
            index[mapping.target_field] = position
    return index


def _collapse(text: str) -> str:
    return " ".join(text.split())


class ImportProcessor:
    """Processes one import file into candidate transactions."""

    def __init__(self, duplicate_config: DuplicateDetectionConfig | None = None):
        """Initialize the processor.

        Args:
            duplicate_config: Duplicate detection tolerances
        """
        self.detector = DuplicateDetector(duplicate_config)

    def process(
        self,
        content: str,
        column_mappings: ColumnMappings | None,
        formatting: FormattingOptions | None,
        existing_transactions: list[ExistingTransaction] | None = None,
        target_currency: str = "USD",
        expected_currency: str | None = None,
    ) -> ImportResult | ImportFailure:
        """Process CSV or OFX content, detecting the format from the content.

        Args:
            content: Raw file content
            column_mappings: CSV column mappings (ignored for OFX)
            formatting: CSV formatting options (ignored for OFX)
            existing_transactions: Stored transactions for duplicate detection
            target_currency: Currency of the destination account (CSV amounts)
            expected_currency: If set, every OFX statement must use it

        Returns:
            ImportResult, or ImportFailure for parse errors and currency mismatch
        """
        existing = existing_transactions or []
        if is_ofx_format(content or ""):
            return self.process_ofx(content, existing, expected_currency)
        return self.process_csv(
            content, column_mappings, formatting or FormattingOptions(), existing, target_currency
        )

    def process_csv(
        self,
        content: str,
        column_mappings: ColumnMappings | None,
        formatting: FormattingOptions,
        existing: list[ExistingTransaction],
        target_currency: str = "USD",
    ) -> ImportResult:
        """Process delimited text using the given column mappings."""
        currency = normalize_currency_code(target_currency)
        parsed = parse_csv(content, formatting)
        columns = build_column_index(parsed.headers, column_mappings)
        batch_id = int(time.time() * 1000)

        result = ImportResult(file_type=FileType.CSV, currency=currency, warnings=list(parsed.warnings))
        if parsed.headers and TargetField.DATE not in columns:
            result.warnings.append("No column is mapped to date")
        if parsed.headers and TargetField.AMOUNT not in columns:
            result.warnings.append("No column is mapped to amount")

        candidates: list[CandidateTransaction] = []
        for row_index, row in enumerate(parsed.rows):
            values = self._read_row(row, columns, formatting)
            errors: list[str] = []

            parsed_date = None
            if not values.date:
                errors.append("Missing date")
            else:
                iso_date = parse_date(values.date, formatting.date_format, formatting.two_digit_year_pivot)
                if iso_date is None:
                    errors.append(f"Invalid date: {values.date}")
                else:
                    parsed_date = date.fromisoformat(iso_date)

            amount = None
            if not values.amount:
                errors.append("Missing amount")
            else:
                number = parse_number(
                    values.amount, formatting.thousand_separator, formatting.decimal_separator
                )
                if is_nan_amount(number):
                    errors.append(f"Invalid amount: {values.amount}")
                else:
                    amount = self._to_money(number, currency, formatting)

            if errors or parsed_date is None or amount is None:
                result.errors.append(RowError(row_index=row_index, row=row, errors=errors))
                continue

            candidates.append(
                CandidateTransaction(
                    id=f"import-{batch_id}-{row_index}",
                    date=parsed_date,
                    amount=amount,
                    description=values.merchant or values.description,
                    notes=values.memo or values.description,
                    check_number=values.check_number or None,
                    category_hint=values.category or None,
                    source_row_index=row_index,
                )
            )

        result.transactions = self._flag_duplicates(candidates, existing)
        result.stats = ImportStats(
            total_rows=parsed.row_count,
            valid_rows=len(result.transactions),
            error_rows=len(result.errors),
            duplicate_count=len(result.duplicates),
        )
        if candidates:
            dates = [c.date for c in candidates]
            result.date_range = (min(dates), max(dates))

        logger.info(
            f"CSV import: {result.stats.valid_rows}/{result.stats.total_rows} valid rows, "
            f"{result.stats.error_rows} errors, {result.stats.duplicate_count} duplicates"
        )
        return result

    def process_ofx(
        self,
        content: str,
        existing: list[ExistingTransaction],
        expected_currency: str | None = None,
    ) -> ImportResult | ImportFailure:
        """Process OFX/QFX content; each statement keeps its own currency."""
        data = parse_ofx(content)
        if isinstance(data, OFXParseFailure):
            logger.warning(f"OFX import failed: {data.message}")
            return ImportFailure(
                kind=FailureKind.PARSE_ERROR, message=data.message, details=list(data.details)
            )

        if expected_currency:
            expected = normalize_currency_code(expected_currency)
            mismatched = [s for s in data.statements if s.currency != expected]
            if mismatched:
                found = ", ".join(sorted({s.currency for s in mismatched}))
                logger.warning(f"OFX currency mismatch: file uses {found}, expected {expected}")
                return ImportFailure(
                    kind=FailureKind.CURRENCY_MISMATCH,
                    message=(
                        f"Currency mismatch: the file uses {found} but the account uses {expected}"
                    ),
                    details=[
                        f"Account {s.account.account_id or '(unknown)'} is in {s.currency}"
                        for s in mismatched
                    ],
                )

        batch_id = int(time.time() * 1000)
        candidates: list[CandidateTransaction] = []
        seen_ids: set[str] = set()
        for statement in data.statements:
            for transaction in statement.transactions:
                index = len(candidates)
                candidate_id = transaction.fit_id
                if candidate_id in seen_ids:
                    candidate_id = f"import-{batch_id}-{index}"
                seen_ids.add(candidate_id)

                candidates.append(
                    CandidateTransaction(
                        id=candidate_id,
                        date=transaction.date_posted,
                        amount=Money(
                            to_minor_units(transaction.amount, statement.currency), statement.currency
                        ),
                        description=transaction.name or transaction.memo,
                        notes=transaction.memo,
                        check_number=transaction.check_number,
                        source_row_index=index,
                        transaction_type=transaction.type,
                    )
                )

        currencies = sorted({s.currency for s in data.statements})
        warnings = list(data.warnings)
        if len(currencies) > 1:
            warnings.append(f"Statements use multiple currencies: {', '.join(currencies)}")

        result = ImportResult(
            file_type=FileType.OFX,
            currency=data.statements[0].currency,
            transactions=self._flag_duplicates(candidates, existing),
            warnings=warnings,
            account_ids=[s.account.account_id for s in data.statements if s.account.account_id],
        )
        result.stats = ImportStats(
            total_rows=len(candidates),
            valid_rows=len(candidates),
            error_rows=0,
            duplicate_count=len(result.duplicates),
        )

        starts = [s.date_range.start for s in data.statements if s.date_range]
        ends = [s.date_range.end for s in data.statements if s.date_range]
        if starts and ends:
            result.date_range = (min(starts), max(ends))
        elif candidates:
            dates = [c.date for c in candidates]
            result.date_range = (min(dates), max(dates))

        logger.info(
            f"OFX import: {len(data.statements)} statements, {len(candidates)} transactions, "
            f"{result.stats.duplicate_count} duplicates"
        )
        return result

    def _read_row(
        self,
        row: list[str],
        columns: dict[TargetField, int],
        formatting: FormattingOptions,
    ) -> _RowValues:
        def cell(target: TargetField) -> str:
            position = columns.get(target)
            if position is None or position >= len(row):
                return ""
            value = row[position] or ""
            return _collapse(value) if formatting.collapse_whitespace else value

        return _RowValues(
            date=cell(TargetField.DATE),
            amount=cell(TargetField.AMOUNT),
            merchant=cell(TargetField.MERCHANT),
            description=cell(TargetField.DESCRIPTION),
            memo=cell(TargetField.MEMO),
            check_number=cell(TargetField.CHECK_NUMBER),
            category=cell(TargetField.CATEGORY),
        )

    @staticmethod
    def _to_money(number: float, currency: str, formatting: FormattingOptions) -> Money:
        if formatting.negate_amounts:
            number = -number
        if formatting.amount_in_minor_units:
            return Money(round_half_up(Decimal(str(number))), currency)
        return Money(to_minor_units(number, currency), currency)

    def _flag_duplicates(
        self,
        candidates: list[CandidateTransaction],
        existing: list[ExistingTransaction],
    ) -> list[CandidateTransaction]:
        matches = self.detector.detect(candidates, existing)
        return annotate_duplicates(candidates, matches)


def process_import(
    content: str,
    column_mappings: ColumnMappings | None,
    formatting: FormattingOptions | None,
    existing_transactions: list[ExistingTransaction] | None = None,
    target_currency: str = "USD",
    *,
    expected_currency: str | None = None,
    duplicate_config: DuplicateDetectionConfig | None = None,
) -> ImportResult | ImportFailure:
    """Convenience function to process one import file."""
    return ImportProcessor(duplicate_config).process(
        content,
        column_mappings,
        formatting,
        existing_transactions,
        target_currency,
        expected_currency,
    )
