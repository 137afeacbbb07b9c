"""
String Similarity Module

Levenshtein edit distance and normalized similarity used for fuzzy
description matching.
"""

import math
import re

_NON_ALNUM = re.compile(r"[\W_]+")
_WHITESPACE = re.compile(r"\s+")

# Guards floor(max_len * (1 - min_similarity)) against binary rounding,
# e.g. 5 * (1 - 0.8) == 0.9999999999999998
_THRESHOLD_EPSILON = 1e-9


def levenshtein(a: str, b: str) -> int:
    """Calculate the Levenshtein distance between two strings.

    Args:
        a: First string
        b: Second string

    Returns:
        Minimum number of single-character insertions, deletions or
        substitutions turning a into b

    Example:
        >>> levenshtein("kitten", "sitting")
        3
    """
    if not a:
        return len(b)
    if not b:
        return len(a)

    matrix = [[0] * (len(b) + 1) for _ in range(len(a) + 1)]
    for i in range(len(a) + 1):
        matrix[i][0] = i
    for j in range(len(b) + 1):
        matrix[0][j] = j

    for i in range(1, len(a) + 1):
        for j in range(1, len(b) + 1):
            if a[i - 1] == b[j - 1]:
                matrix[i][j] = matrix[i - 1][j - 1]
            else:
                matrix[i][j] = min(
                    matrix[i - 1][j - 1] + 1,  # substitution
                    matrix[i][j - 1] + 1,  # insertion
                    matrix[i - 1][j] + 1,  # deletion
                )

    return matrix[len(a)][len(b)]


def levenshtein_with_threshold(a: str, b: str, max_distance: int) -> int:
    """Calculate the Levenshtein distance, giving up past a threshold.

    Uses two rolling rows sized by the shorter string and stops as soon as
    every value in the current row exceeds ``max_distance``.

    Args:
        a: First string
        b: Second string
        max_distance: Largest distance worth computing exactly

    Returns:
        The distance, or max_distance + 1 if it exceeds the threshold
    """
    if not a:
        return min(len(b), max_distance + 1)
    if not b:
        return min(len(a), max_distance + 1)

    if abs(len(a) - len(b)) > max_distance:
        return max_distance + 1

    # Distance is symmetric; keep the row buffers as short as possible
    if len(b) > len(a):
        a, b = b, a

    prev_row = list(range(len(b) + 1))
    current_row = [0] * (len(b) + 1)

    for i in range(1, len(a) + 1):
        current_row[0] = i
        min_in_row = i

        for j in range(1, len(b) + 1):
            if a[i - 1] == b[j - 1]:
                current_row[j] = prev_row[j - 1]
            else:
                current_row[j] = min(
                    prev_row[j - 1] + 1,
                    current_row[j - 1] + 1,
                    prev_row[j] + 1,
                )
            if current_row[j] < min_in_row:
                min_in_row = current_row[j]

        if min_in_row > max_distance:
            return max_distance + 1

        prev_row, current_row = current_row, prev_row

    return prev_row[len(b)]


def similarity(a: str, b: str) -> float:
    """Calculate the similarity ratio between two strings (0-1).

    Example:
        >>> similarity("hello", "helo")
        0.8
    """
    if a == b:
        return 1.0
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    distance = levenshtein(a, b)
    return 1 - distance / max(len(a), len(b))


def is_similar(a: str, b: str, min_similarity: float) -> bool:
    """Check whether two strings are at least ``min_similarity`` similar.

    Cheaper than similarity() for dissimilar strings because the distance
    computation stops early.
    """
    if a == b:
        return True

    max_length = max(len(a), len(b))
    if max_length == 0:
        return True

    max_distance = math.floor(max_length * (1 - min_similarity) + _THRESHOLD_EPSILON)
    if max_distance < 0:
        return False

    return levenshtein_with_threshold(a, b, max_distance) <= max_distance


def normalize_for_comparison(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    text = _NON_ALNUM.sub(" ", (text or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def normalized_similarity(a: str, b: str) -> float:
    """Similarity ratio after normalizing both strings."""
    return similarity(normalize_for_comparison(a), normalize_for_comparison(b))
