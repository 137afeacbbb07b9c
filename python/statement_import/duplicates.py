"""
Duplicate Detection Module

Scores imported candidates against existing transactions (and against each
other) on date proximity, amount equality and description similarity.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable

from .config import DescriptionMatchMode, DuplicateDetectionConfig
from .models import CandidateTransaction, DuplicateMatch, ExistingTransaction
from .similarity import normalized_similarity

logger = logging.getLogger(__name__)

# Confidence weights
DATE_WEIGHT = 0.25
AMOUNT_WEIGHT = 0.35
DESCRIPTION_WEIGHT = 0.4

# Score multiplier when dates agree but amounts do not
AMOUNT_MISMATCH_FACTOR = 0.5

Comparable = CandidateTransaction | ExistingTransaction


def month_key(value: date) -> tuple[int, int]:
    return (value.year, value.month)


def adjacent_month_keys(value: date) -> list[tuple[int, int]]:
    """The month of a date plus the previous and next calendar months."""
    index = value.year * 12 + (value.month - 1)
    return [divmod(i, 12) for i in (index - 1, index, index + 1)]


def calculate_confidence(
    date_match: bool,
    amount_match: bool,
    description_similarity: float,
) -> float:
    """Combine the three match signals into a 0-1 confidence.

    Dates act as a gate. An amount mismatch halves what the date alone
    earned and ignores the description.
    """
    if not date_match:
        return 0.0
    score = DATE_WEIGHT

    if not amount_match:
        return score * AMOUNT_MISMATCH_FACTOR
    score += AMOUNT_WEIGHT

    score += DESCRIPTION_WEIGHT * description_similarity
    return score


class DuplicateDetector:
    """Finds likely duplicates using month-bucketed lookups."""

    def __init__(self, config: DuplicateDetectionConfig | None = None):
        """Initialize the duplicate detector.

        Args:
            config: Tolerances and thresholds (defaults when omitted)
        """
        self.config = config or DuplicateDetectionConfig()

    def description_similarity(self, a: str, b: str) -> float:
        if self.config.description_match_mode == DescriptionMatchMode.EXACT:
            return 1.0 if (a or "").strip().lower() == (b or "").strip().lower() else 0.0
        return normalized_similarity(a, b)

    def check(self, candidate: Comparable, existing: Comparable) -> DuplicateMatch | None:
        """Compare one pair of transactions.

        Args:
            candidate: Newly imported transaction
            existing: Transaction it may duplicate

        Returns:
            DuplicateMatch if the confidence reaches min_confidence, else None
        """
        date_diff = abs((candidate.date - existing.date).days)
        date_match = date_diff <= self.config.effective_date_diff_days

        amount_match = (
            candidate.amount.currency == existing.amount.currency
            and abs(candidate.amount.amount - existing.amount.amount) <= self.config.max_amount_diff
        )

        similarity = self.description_similarity(candidate.description, existing.description)
        confidence = calculate_confidence(date_match, amount_match, similarity)

        if confidence < self.config.min_confidence:
            return None

        return DuplicateMatch(
            candidate_id=candidate.id,
            existing_id=existing.id,
            confidence=confidence,
            date_match=date_match,
            amount_match=amount_match,
            description_similarity=similarity,
        )

    def _best_match(
        self,
        candidate: Comparable,
        others: Iterable[Comparable],
    ) -> DuplicateMatch | None:
        best: DuplicateMatch | None = None
        for other in others:
            match = self.check(candidate, other)
            if match and (best is None or match.confidence > best.confidence):
                best = match
        return best

    def detect(
        self,
        candidates: list[CandidateTransaction],
        existing: list[ExistingTransaction],
    ) -> list[DuplicateMatch]:
        """Find the best existing match for each candidate.

        Existing transactions are bucketed by month and each one is also
        placed in the neighbouring months, so a candidate only needs to
        look in its own bucket.

        Args:
            candidates: Newly imported transactions
            existing: Transactions already stored

        Returns:
            At most one match per candidate, in candidate order
        """
        if not candidates or not existing:
            return []

        buckets: dict[tuple[int, int], list[ExistingTransaction]] = defaultdict(list)
        for transaction in existing:
            for key in adjacent_month_keys(transaction.date):
                buckets[key].append(transaction)

        matches = []
        for candidate in candidates:
            match = self._best_match(candidate, buckets.get(month_key(candidate.date), []))
            if match:
                matches.append(match)

        logger.debug(
            f"Checked {len(candidates)} candidates against {len(existing)} existing: "
            f"{len(matches)} duplicates"
        )
        return matches

    def detect_internal(self, batch: list[CandidateTransaction]) -> list[DuplicateMatch]:
        """Find duplicates within a single import batch.

        The batch is ordered by source row. For every pair the later row is
        reported as the duplicate of the earlier one; once a row has been
        reported it is not compared again, while the earlier row stays
        available for further matches.

        Args:
            batch: Candidates from one import

        Returns:
            Matches with the later row as candidate_id
        """
        ordered = sorted(batch, key=lambda t: t.source_row_index)
        consumed: set[int] = set()
        matches = []

        for i, earlier in enumerate(ordered):
            if i in consumed:
                continue
            for j in range(i + 1, len(ordered)):
                if j in consumed:
                    continue
                match = self.check(ordered[j], earlier)
                if match:
                    consumed.add(j)
                    matches.append(match)

        logger.debug(f"Found {len(matches)} duplicates within batch of {len(batch)}")
        return matches


def check_duplicate(
    candidate: Comparable,
    existing: Comparable,
    config: DuplicateDetectionConfig | None = None,
) -> DuplicateMatch | None:
    """Convenience wrapper around DuplicateDetector.check."""
    return DuplicateDetector(config).check(candidate, existing)


def detect_duplicates(
    candidates: list[CandidateTransaction],
    existing: list[ExistingTransaction],
    config: DuplicateDetectionConfig | None = None,
) -> list[DuplicateMatch]:
    return DuplicateDetector(config).detect(candidates, existing)


def detect_internal_duplicates(
    batch: list[CandidateTransaction],
    config: DuplicateDetectionConfig | None = None,
) -> list[DuplicateMatch]:
    return DuplicateDetector(config).detect_internal(batch)


def annotate_duplicates(
    candidates: list[CandidateTransaction],
    matches: list[DuplicateMatch],
) -> list[CandidateTransaction]:
    """Attach each candidate's match (if any) to a copy of it."""
    by_candidate = {match.candidate_id: match for match in matches}
    return [candidate.with_duplicate(by_candidate.get(candidate.id)) for candidate in candidates]
