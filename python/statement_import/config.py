"""
Import Configuration Module

Immutable settings objects for parsing, duplicate detection and old
transaction filtering, plus YAML loading of project defaults.
"""

import logging
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "import_settings.yaml"
DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class OldTransactionMode(str, Enum):
    """How transactions older than the cutoff date are handled."""
    IGNORE_ALL = "ignore-all"
    IGNORE_DUPLICATES = "ignore-duplicates"
    DO_NOT_IGNORE = "do-not-ignore"


class DateMatchMode(str, Enum):
    """How dates are compared in duplicate detection."""
    EXACT = "exact"
    WITHIN = "within"


class DescriptionMatchMode(str, Enum):
    """How descriptions are compared in duplicate detection."""
    EXACT = "exact"
    SIMILAR = "similar"


class TargetField(str, Enum):
    """Transaction fields a CSV column can be mapped to."""
    DATE = "date"
    AMOUNT = "amount"
    MERCHANT = "merchant"
    DESCRIPTION = "description"
    MEMO = "memo"
    CHECK_NUMBER = "check_number"
    CATEGORY = "category"
    IGNORE = "ignore"


@dataclass(frozen=True)
class FormattingOptions:
    """How raw CSV text is split and how its cells are interpreted."""

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

    def __post_init__(self):
        if len(self.separator) != 1:
            raise ValueError(f"Separator must be a single character, got {self.separator!r}")
        if len(self.quote_char) != 1:
            raise ValueError(f"Quote character must be a single character, got {self.quote_char!r}")
        if self.quote_char == self.separator:
            raise ValueError("Quote character and separator must differ")
        if len(self.decimal_separator) != 1:
            raise ValueError(f"Decimal separator must be a single character, got {self.decimal_separator!r}")
        if len(self.thousand_separator) > 1:
            raise ValueError(f"Thousand separator must be at most one character, got {self.thousand_separator!r}")
        if self.thousand_separator == self.decimal_separator:
            raise ValueError("Thousand and decimal separators must differ")
        if not self.date_format:
            raise ValueError("Date format must not be empty")
        if not 0 <= self.two_digit_year_pivot <= 100:
            raise ValueError(f"Two-digit year pivot must be within 0..100, got {self.two_digit_year_pivot}")


@dataclass(frozen=True)
class DuplicateDetectionConfig:
    """Tolerances and thresholds for duplicate detection.

    Amount tolerance is expressed in minor units, so the default of 1 means
    one cent for two-decimal currencies.

    ``min_description_similarity`` is reserved: it is validated and carried
    through saved templates, but detection does not read it. Description
    similarity only contributes through the confidence score.
    """

    max_date_diff_days: int = 3
    max_amount_diff: int = 1
    min_confidence: float = 0.7
    min_description_similarity: float = 0.6
    date_match_mode: DateMatchMode = DateMatchMode.WITHIN
    description_match_mode: DescriptionMatchMode = DescriptionMatchMode.SIMILAR

    def __post_init__(self):
        object.__setattr__(self, "date_match_mode", DateMatchMode(self.date_match_mode))
        object.__setattr__(
            self, "description_match_mode", DescriptionMatchMode(self.description_match_mode)
        )
        if self.max_date_diff_days < 0:
            raise ValueError("max_date_diff_days must not be negative")
        if self.max_amount_diff < 0:
            raise ValueError("max_amount_diff must not be negative")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be within [0, 1], got {self.min_confidence}")
        if not 0.0 <= self.min_description_similarity <= 1.0:
            raise ValueError(
                f"min_description_similarity must be within [0, 1], got {self.min_description_similarity}"
            )

    @property
    def effective_date_diff_days(self) -> int:
        """Day tolerance after applying the date match mode."""
        if self.date_match_mode == DateMatchMode.EXACT:
            return 0
        return self.max_date_diff_days


@dataclass(frozen=True)
class FilterConfig:
    """Old transaction filter settings."""

    mode: OldTransactionMode = OldTransactionMode.IGNORE_DUPLICATES
    cutoff_days: int = 10

    def __post_init__(self):
        object.__setattr__(self, "mode", OldTransactionMode(self.mode))
        if self.cutoff_days < 0:
            raise ValueError("cutoff_days must not be negative")


@dataclass(frozen=True)
class ColumnMapping:
    """Maps one source column (by header name) to a target field."""

    source_column: str
    target_field: TargetField = TargetField.IGNORE

    def __post_init__(self):
        object.__setattr__(self, "target_field", TargetField(self.target_field))


@dataclass(frozen=True)
class ImportConfig:
    """Complete per-template import configuration."""

    formatting: FormattingOptions = field(default_factory=FormattingOptions)
    duplicate_detection: DuplicateDetectionConfig = field(default_factory=DuplicateDetectionConfig)
    old_transaction_filter: FilterConfig = field(default_factory=FilterConfig)
    column_mappings: tuple[ColumnMapping, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ImportConfig":
        """Build a config from a plain dict (YAML document or template).

        Args:
            data: Mapping with optional ``formatting``, ``duplicate_detection``,
                ``old_transaction_filter`` and ``column_mappings`` sections

        Returns:
            ImportConfig with defaults for anything not given
        """
        data = data or {}
        mappings = data.get("column_mappings") or {}
        if isinstance(mappings, dict):
            column_mappings = tuple(
                ColumnMapping(source_column=str(source), target_field=target)
                for source, target in mappings.items()
            )
        else:
            column_mappings = tuple(
                ColumnMapping(source_column=str(m["source_column"]), target_field=m["target_field"])
                for m in mappings
            )

        return cls(
            formatting=_build(FormattingOptions, data.get("formatting")),
            duplicate_detection=_build(DuplicateDetectionConfig, data.get("duplicate_detection")),
            old_transaction_filter=_build(FilterConfig, data.get("old_transaction_filter")),
            column_mappings=column_mappings,
        )

    def to_dict(self) -> dict[str, Any]:
        def plain(obj) -> dict[str, Any]:
            return {
                key: value.value if isinstance(value, Enum) else value
                for key, value in asdict(obj).items()
            }

        return {
            "formatting": plain(self.formatting),
            "duplicate_detection": plain(self.duplicate_detection),
            "old_transaction_filter": plain(self.old_transaction_filter),
            "column_mappings": {
                m.source_column: m.target_field.value for m in self.column_mappings
            },
        }

    def with_mappings(self, mappings: dict[str, str]) -> "ImportConfig":
        return replace(
            self,
            column_mappings=tuple(
                ColumnMapping(source_column=source, target_field=target)
                for source, target in mappings.items()
            ),
        )


def _build(cls, section: dict[str, Any] | None):
    """Instantiate a settings dataclass from a section, ignoring unknown keys."""
    section = section or {}
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning(f"Ignoring unknown {cls.__name__} settings: {', '.join(unknown)}")
    return cls(**{key: value for key, value in section.items() if key in known})


def load_import_config(config_dir: Path | str | None = None) -> ImportConfig:
    """Load import defaults from ``import_settings.yaml``.

    Args:
        config_dir: Path to configuration directory

    Returns:
        ImportConfig, or built-in defaults when the file is missing
    """
    config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
    config_file = config_dir / CONFIG_FILENAME
    if not config_file.exists():
        logger.warning(f"Config file not found: {config_file}")
        return ImportConfig()

    with open(config_file) as f:
        data = yaml.safe_load(f) or {}

    return ImportConfig.from_dict(data)
