"""
String similarity and candidate span search for ProviderTrust.

Expected values (names, registration numbers) may span several OCR tokens,
so the cleaned text is scanned with word-level sliding windows of
comparable length and each window is scored independently.
"""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from Levenshtein import distance as levenshtein_distance

logger = logging.getLogger(__name__)


def edit_similarity(a: str, b: str) -> float:
    """
    Normalized Levenshtein similarity.

    Args:
        a: First string
        b: Second string

    Returns:
        1 - distance / max(len(a), len(b)), in [0, 1]; 0 if either is empty
    """
    if not a or not b:
        return 0.0
    distance = levenshtein_distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


def window_sizes(expected_tokens: int, slack: int = 1, max_tokens: int = 12) -> List[int]:
    """
    Window widths to try for an expected value of expected_tokens words.

    Args:
        expected_tokens: Token count of the expected value
        slack: How many tokens shorter or longer a window may be
        max_tokens: Upper bound on window width

    Returns:
        Ascending list of widths, at least [1]
    """
    low = max(1, expected_tokens - slack)
    high = max(low, min(expected_tokens + slack, max_tokens))
    return list(range(low, high + 1))


def candidate_spans(tokens: Sequence[str], widths: Sequence[int], sep: str = " ") -> Iterator[str]:
    """
    Yield every contiguous token window of the given widths, joined by sep.

    Order is deterministic: by width, then by position.
    """
    for width in widths:
        if width > len(tokens):
            break
        for start in range(len(tokens) - width + 1):
            yield sep.join(tokens[start:start + width])


def best_span(tokens: Sequence[str], expected: str,
              slack: int = 1, max_tokens: int = 12, sep: str = " ") -> Tuple[Optional[str], float]:
    """
    Find the window of tokens most similar to expected.

    Ties keep the earliest candidate, so results are reproducible.

    Args:
        tokens: Tokens of the cleaned document text
        expected: Normalized expected value
        slack: Window width slack around the expected token count
        max_tokens: Upper bound on window width
        sep: Separator used to join window tokens

    Returns:
        Tuple of (best span or None, similarity)
    """
    if not tokens or not expected:
        return None, 0.0

    widths = window_sizes(len(expected.split()), slack, max_tokens)
    best: Optional[str] = None
    best_score = 0.0
    for span in candidate_spans(tokens, widths, sep):
        score = edit_similarity(span, expected)
        if score > best_score:
            best, best_score = span, score
            if score == 1.0:
                break
    return best, best_score
