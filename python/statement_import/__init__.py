"""
Statement Import Module

Normalizes bank exports (CSV and OFX/QFX) into candidate transactions,
flags likely duplicates of existing transactions and filters old ones.
"""

from .config import (
    ColumnMapping,
    DateMatchMode,
    DescriptionMatchMode,
    DuplicateDetectionConfig,
    FilterConfig,
    FormattingOptions,
    ImportConfig,
    OldTransactionMode,
    TargetField,
    load_import_config,
)
from .csv_parser import CSVParser, CSVParseResult, detect_headers, detect_separator, parse_csv
from .currency import Money, get_decimal_digits, to_minor_units
from .duplicates import (
    DuplicateDetector,
    check_duplicate,
    detect_duplicates,
    detect_internal_duplicates,
)
from .fields import parse_date, parse_number
from .filter import (
    calculate_cutoff_date,
    describe_filter_mode,
    filter_old_transactions,
    is_before_cutoff,
    newest_existing_date,
)
from .models import (
    CandidateTransaction,
    DuplicateMatch,
    ExistingTransaction,
    FileType,
    FilterResult,
    ImportFailure,
    ImportResult,
    RowError,
)
from .ofx import OFXParseFailure, OFXStatementData, is_ofx_format, parse_ofx
from .pipeline import (
    ImportPreview,
    ImportSummaryStats,
    PreviewTransaction,
    build_import_preview,
    detect_file_type,
    suggest_formatting,
)
from .processor import ImportProcessor, process_import
from .similarity import is_similar, levenshtein, normalized_similarity, similarity

__all__ = [
    # Configuration
    "ColumnMapping",
    "DateMatchMode",
    "DescriptionMatchMode",
    "DuplicateDetectionConfig",
    "FilterConfig",
    "FormattingOptions",
    "ImportConfig",
    "OldTransactionMode",
    "TargetField",
    "load_import_config",
    # CSV Parsing
    "CSVParser",
    "CSVParseResult",
    "detect_headers",
    "detect_separator",
    "parse_csv",
    "parse_date",
    "parse_number",
    # Currency
    "Money",
    "get_decimal_digits",
    "to_minor_units",
    # OFX
    "OFXParseFailure",
    "OFXStatementData",
    "is_ofx_format",
    "parse_ofx",
    # Similarity
    "is_similar",
    "levenshtein",
    "normalized_similarity",
    "similarity",
    # Processing
    "CandidateTransaction",
    "ExistingTransaction",
    "FileType",
    "ImportFailure",
    "ImportProcessor",
    "ImportResult",
    "RowError",
    "process_import",
    # Duplicate Detection
    "DuplicateDetector",
    "DuplicateMatch",
    "check_duplicate",
    "detect_duplicates",
    "detect_internal_duplicates",
    # Old Transaction Filter
    "FilterResult",
    "calculate_cutoff_date",
    "describe_filter_mode",
    "filter_old_transactions",
    "is_before_cutoff",
    "newest_existing_date",
    # Preview
    "ImportPreview",
    "ImportSummaryStats",
    "PreviewTransaction",
    "build_import_preview",
    "detect_file_type",
    "suggest_formatting",
]
