"""
Import Models

Data structures shared by the processor, duplicate detector and filter.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any

from .currency import Money


@dataclass(frozen=True)
class CandidateTransaction:
    """A normalized transaction produced by an import, not yet accepted.

    The duplicate annotation fields are attached after detection and are
    excluded from equality and hashing, so annotating a candidate never
    changes its identity.
    """

    id: str
    date: date
    amount: Money
    description: str = ""
    notes: str = ""
    check_number: str | None = None
    category_hint: str | None = None
    source_row_index: int = 0
    transaction_type: str | None = None
    duplicate_of_id: str | None = field(default=None, compare=False)
    duplicate_confidence: float | None = field(default=None, compare=False)

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of_id is not None

    def with_duplicate(self, match: "DuplicateMatch | None") -> "CandidateTransaction":
        """Return a copy annotated with a duplicate match (or cleared)."""
        if match is None:
            return replace(self, duplicate_of_id=None, duplicate_confidence=None)
        return replace(
            self,
            duplicate_of_id=match.existing_id,
            duplicate_confidence=match.confidence,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": self.amount.amount,
            "currency": self.amount.currency,
            "description": self.description,
            "notes": self.notes,
            "check_number": self.check_number,
            "category_hint": self.category_hint,
            "source_row_index": self.source_row_index,
            "transaction_type": self.transaction_type,
            "is_duplicate": self.is_duplicate,
            "duplicate_of_id": self.duplicate_of_id,
            "duplicate_confidence": self.duplicate_confidence,
        }


@dataclass(frozen=True)
class ExistingTransaction:
    """Read-only projection of a stored transaction used for matching."""

    id: str
    date: date
    amount: Money
    description: str = ""


@dataclass(frozen=True)
class DuplicateMatch:
    """Best match between a candidate and an existing transaction."""

    candidate_id: str
    existing_id: str
    confidence: float
    date_match: bool
    amount_match: bool
    description_similarity: float

    def to_dict(self) -> dict:
        return {
            "candidate_id": self.candidate_id,
            "existing_id": self.existing_id,
            "confidence": self.confidence,
            "date_match": self.date_match,
            "amount_match": self.amount_match,
            "description_similarity": self.description_similarity,
        }


@dataclass
class RowError:
    """A row that could not be turned into a transaction."""

    row_index: int
    row: list[str]
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"row_index": self.row_index, "row": self.row, "errors": self.errors}


@dataclass
class ImportStats:
    """Aggregate counts for one processed import."""

    total_rows: int = 0
    valid_rows: int = 0
    error_rows: int = 0
    duplicate_count: int = 0


class FileType(str, Enum):
    """Detected import file type."""
    CSV = "csv"
    OFX = "ofx"


class FailureKind(str, Enum):
    """Fatal import failure categories."""
    PARSE_ERROR = "parse_error"
    CURRENCY_MISMATCH = "currency_mismatch"


@dataclass
class ImportResult:
    """Successful import processing output."""

    file_type: FileType
    currency: str
    transactions: list[CandidateTransaction] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    stats: ImportStats = field(default_factory=ImportStats)
    warnings: list[str] = field(default_factory=list)
    account_ids: list[str] = field(default_factory=list)
    date_range: tuple[date, date] | None = None

    @property
    def ok(self) -> bool:
        return True

    @property
    def duplicates(self) -> list[CandidateTransaction]:
        return [t for t in self.transactions if t.is_duplicate]


@dataclass
class ImportFailure:
    """Fatal failure for a whole import; never raised, always returned."""

    kind: FailureKind
    message: str
    details: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class FilterReason(str, Enum):
    """Why the old transaction filter included or excluded a candidate."""
    FILTER_DISABLED = "filter_disabled"
    NO_REFERENCE_DATE = "no_reference_date"
    ON_OR_AFTER_CUTOFF = "on_or_after_cutoff"
    OLD = "old"
    OLD_DUPLICATE = "old_duplicate"
    OLD_NOT_DUPLICATE = "old_not_duplicate"


@dataclass(frozen=True)
class FilterDecision:
    """Filter outcome for a single candidate."""

    included: bool
    reason: FilterReason


@dataclass
class FilterStats:
    """Filter counts, tracked the same way for every ignore mode."""

    total_count: int = 0
    included_count: int = 0
    excluded_count: int = 0
    old_duplicates_count: int = 0
    old_non_duplicates_count: int = 0


@dataclass
class FilterResult:
    """Outcome of the old transaction filter."""

    included: list = field(default_factory=list)
    excluded: list = field(default_factory=list)
    decisions: list[FilterDecision] = field(default_factory=list)
    stats: FilterStats = field(default_factory=FilterStats)
    cutoff_date: date | None = None
