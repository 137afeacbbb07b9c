"""
Old Transaction Filter Module

Decides which imported transactions to keep when they predate the overlap
window with the transactions already stored.

Modes:
    - ignore-all: Skip every transaction older than the cutoff
    - ignore-duplicates: Skip old transactions flagged as duplicates only
    - do-not-ignore: Import everything
"""

import logging
from datetime import date, timedelta
from typing import Iterable

from .config import FilterConfig, OldTransactionMode
from .models import (
    CandidateTransaction,
    ExistingTransaction,
    FilterDecision,
    FilterReason,
    FilterResult,
    FilterStats,
)

logger = logging.getLogger(__name__)

FILTER_MODE_DESCRIPTIONS = {
    OldTransactionMode.IGNORE_ALL: "Skip all old transactions",
    OldTransactionMode.IGNORE_DUPLICATES: "Skip old duplicates, keep old non-duplicates",
    OldTransactionMode.DO_NOT_IGNORE: "Import all transactions",
}


def calculate_cutoff_date(newest_date: date | None, cutoff_days: int) -> date | None:
    """Cutoff date counted back from the newest existing transaction.

    Args:
        newest_date: Date of the newest existing transaction
        cutoff_days: Days before newest_date

    Returns:
        Cutoff date, or None when there is no existing transaction
    """
    if newest_date is None:
        return None
    return newest_date - timedelta(days=cutoff_days)


def is_before_cutoff(value: date, cutoff_date: date) -> bool:
    """True if value is strictly older than the cutoff."""
    return value < cutoff_date


def newest_existing_date(existing: Iterable[ExistingTransaction]) -> date | None:
    return max((t.date for t in existing), default=None)


def describe_filter_mode(mode: OldTransactionMode | str) -> str:
    return FILTER_MODE_DESCRIPTIONS[OldTransactionMode(mode)]


def filter_old_transactions(
    candidates: list[CandidateTransaction],
    newest_date: date | None,
    config: FilterConfig | None = None,
) -> FilterResult:
    """Split candidates into included and excluded by age and duplicate flag.

    Transactions on or after the cutoff are always included. Old/duplicate
    counts are tracked the same way in every ignore mode so that switching
    modes can be explained without re-running detection.

    Args:
        candidates: Candidates already annotated by duplicate detection
        newest_date: Date of the newest existing transaction, if any
        config: Mode and cutoff days

    Returns:
        FilterResult with one decision per candidate in input order
    """
    config = config or FilterConfig()
    result = FilterResult(stats=FilterStats(total_count=len(candidates)))

    if config.mode == OldTransactionMode.DO_NOT_IGNORE or newest_date is None:
        reason = (
            FilterReason.FILTER_DISABLED
            if config.mode == OldTransactionMode.DO_NOT_IGNORE
            else FilterReason.NO_REFERENCE_DATE
        )
        result.included = list(candidates)
        result.decisions = [FilterDecision(included=True, reason=reason) for _ in candidates]
        result.stats.included_count = len(candidates)
        return result

    cutoff = calculate_cutoff_date(newest_date, config.cutoff_days)
    result.cutoff_date = cutoff

    for candidate in candidates:
        if not is_before_cutoff(candidate.date, cutoff):
            decision = FilterDecision(included=True, reason=FilterReason.ON_OR_AFTER_CUTOFF)
        elif candidate.is_duplicate:
            result.stats.old_duplicates_count += 1
            if config.mode == OldTransactionMode.IGNORE_ALL:
                decision = FilterDecision(included=False, reason=FilterReason.OLD)
            else:
                decision = FilterDecision(included=False, reason=FilterReason.OLD_DUPLICATE)
        else:
            result.stats.old_non_duplicates_count += 1
            if config.mode == OldTransactionMode.IGNORE_ALL:
                decision = FilterDecision(included=False, reason=FilterReason.OLD)
            else:
                decision = FilterDecision(included=True, reason=FilterReason.OLD_NOT_DUPLICATE)

        result.decisions.append(decision)
        if decision.included:
            result.included.append(candidate)
        else:
            result.excluded.append(candidate)

    result.stats.included_count = len(result.included)
    result.stats.excluded_count = len(result.excluded)

    logger.debug(
        f"Old transaction filter ({config.mode.value}, cutoff {cutoff.isoformat()}): "
        f"{result.stats.included_count} included, {result.stats.excluded_count} excluded"
    )
    return result
