"""
Imports API Routes

Provides endpoints for previewing bank statement imports before they are
committed.
"""

import logging
from datetime import date

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from statement_import import (
    ExistingTransaction,
    FileType,
    ImportConfig,
    ImportFailure,
    Money,
    build_import_preview,
    detect_file_type,
    load_import_config,
    parse_csv,
    suggest_formatting,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])

SAMPLE_ROW_COUNT = 5

# Project defaults, read once; request settings are overlaid per call
DEFAULT_CONFIG = load_import_config()


class FormattingSettings(BaseModel):
    """CSV formatting options."""

    separator: str = ","
    has_headers: bool = True
    thousand_separator: str = ","
    decimal_separator: str = "."
    date_format: str = "yyyy-MM-dd"
    quote_char: str = '"'
    negate_amounts: bool = False
    amount_in_minor_units: bool = False
    collapse_whitespace: bool = False
    two_digit_year_pivot: int = 50


class DuplicateSettings(BaseModel):
    """Duplicate detection settings."""

    max_date_diff_days: int = 3
    max_amount_diff: int = 1
    min_confidence: float = 0.7
    date_match_mode: str = "within"
    description_match_mode: str = "similar"


class FilterSettings(BaseModel):
    """Old transaction filter settings."""

    mode: str = "ignore-duplicates"
    cutoff_days: int = 10


class ExistingTransactionIn(BaseModel):
    """Stored transaction used for duplicate detection (amount in minor units)."""

    id: str
    date: date
    amount: int
    currency: str = "USD"
    description: str = ""


class PreviewRequest(BaseModel):
    """Import preview request."""

    content: str
    column_mappings: dict[str, str] = Field(default_factory=dict)
    formatting: FormattingSettings | None = None
    duplicate_detection: DuplicateSettings | None = None
    old_transaction_filter: FilterSettings | None = None
    existing_transactions: list[ExistingTransactionIn] = Field(default_factory=list)
    target_currency: str = "USD"
    expected_currency: str | None = None


class TransactionOut(BaseModel):
    """Normalized candidate transaction."""

    id: str
    date: date
    amount: int
    currency: str
    description: str
    notes: str
    check_number: str | None
    category_hint: str | None
    transaction_type: str | None


class PreviewRow(BaseModel):
    """One row of the import preview."""

    row_index: int
    status: str
    transaction: TransactionOut | None
    duplicate_of: str | None
    duplicate_confidence: float
    validation_errors: list[str]


class SummaryStats(BaseModel):
    """Import preview counts."""

    total_rows: int
    valid_count: int
    error_count: int
    duplicate_count: int
    filtered_count: int


class FilterStatsOut(BaseModel):
    """Old transaction filter counts."""

    total_count: int
    included_count: int
    excluded_count: int
    old_duplicates_count: int
    old_non_duplicates_count: int


class PreviewResponse(BaseModel):
    """Import preview response."""

    file_type: str
    currency: str
    can_import: bool
    stats: SummaryStats
    filter_stats: FilterStatsOut
    cutoff_date: date | None
    rows: list[PreviewRow]
    warnings: list[str]


class DetectRequest(BaseModel):
    """File type detection request."""

    content: str


class DetectResponse(BaseModel):
    """Detected file type and suggested CSV formatting."""

    file_type: str
    formatting: FormattingSettings | None
    headers: list[str]
    sample_rows: list[list[str]]


def _build_config(request: PreviewRequest) -> ImportConfig:
    """Overlay the request's settings on the configured defaults."""
    settings = DEFAULT_CONFIG.to_dict()
    for section in ("formatting", "duplicate_detection", "old_transaction_filter"):
        overrides = getattr(request, section)
        if overrides is not None:
            settings[section].update(overrides.model_dump(exclude_unset=True))
    if request.column_mappings:
        settings["column_mappings"] = request.column_mappings
    return ImportConfig.from_dict(settings)


@router.post("/preview", response_model=PreviewResponse)
async def preview_import(request: PreviewRequest) -> PreviewResponse:
    """Preview an import without storing anything.

    Args:
        request: File content, mappings, settings and existing transactions

    Returns:
        Per-row statuses and summary counts
    """
    try:
        config = _build_config(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    existing = [
        ExistingTransaction(
            id=t.id,
            date=t.date,
            amount=Money(t.amount, t.currency),
            description=t.description,
        )
        for t in request.existing_transactions
    ]

    preview = build_import_preview(
        request.content,
        config,
        existing,
        target_currency=request.target_currency,
        expected_currency=request.expected_currency,
    )
    if isinstance(preview, ImportFailure):
        raise HTTPException(status_code=422, detail=preview.to_dict())

    return PreviewResponse(
        file_type=preview.file_type.value,
        currency=preview.currency,
        can_import=preview.can_import,
        stats=SummaryStats(**vars(preview.stats)),
        filter_stats=FilterStatsOut(**vars(preview.filter_stats)),
        cutoff_date=preview.cutoff_date,
        rows=[
            PreviewRow(
                row_index=row.row_index,
                status=row.status,
                transaction=TransactionOut(**row.transaction.to_dict()) if row.transaction else None,
                duplicate_of=row.duplicate_of,
                duplicate_confidence=row.duplicate_confidence,
                validation_errors=row.validation_errors,
            )
            for row in preview.rows
        ],
        warnings=preview.warnings,
    )


@router.post("/detect", response_model=DetectResponse)
async def detect_import_format(request: DetectRequest) -> DetectResponse:
    """Detect the file type and suggest CSV formatting.

    Args:
        request: Raw file content

    Returns:
        File type, suggested formatting and a few sample rows for CSV files
    """
    file_type = detect_file_type(request.content)
    if file_type == FileType.OFX:
        return DetectResponse(file_type=file_type.value, formatting=None, headers=[], sample_rows=[])

    formatting = suggest_formatting(request.content)
    parsed = parse_csv(request.content, formatting, max_rows=SAMPLE_ROW_COUNT)
    return DetectResponse(
        file_type=file_type.value,
        formatting=FormattingSettings(**vars(formatting)),
        headers=parsed.headers,
        sample_rows=parsed.rows,
    )
