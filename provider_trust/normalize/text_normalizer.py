"""
OCR text normalization for ProviderTrust.

Lowercases extracted document text, strips diacritics and punctuation noise
introduced by OCR, and collapses whitespace so expected values can be
compared case- and accent-insensitively. Arabic script is preserved.
"""

import re
import logging
import unicodedata
from typing import List, Optional

logger = logging.getLogger(__name__)

# Latin letters, digits and the Arabic block survive cleaning
_NOISE_PATTERN = re.compile(r'[^a-z0-9\u0600-\u06FF\s]')
_WHITESPACE_PATTERN = re.compile(r'\s+')
_NON_DIGIT_PATTERN = re.compile(r'\D')


def strip_diacritics(text: str) -> str:
    """
    Remove combining marks after compatibility decomposition.

    Args:
        text: Input text

    Returns:
        Text without accents, e.g. "Clinique Sainte-Hélène" -> "Clinique Sainte-Helene"
    """
    decomposed = unicodedata.normalize('NFKD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: Optional[str]) -> str:
    """
    Normalize raw extracted text for matching.

    Deterministic and idempotent: normalize_text(normalize_text(s)) == normalize_text(s).

    Args:
        text: Raw text, may be None

    Returns:
        Cleaned text
    """
    if not text or not isinstance(text, str):
        return ""

    text = strip_diacritics(text).lower()
    text = _NOISE_PATTERN.sub(' ', text)
    return _WHITESPACE_PATTERN.sub(' ', text).strip()


def extract_digits(text: Optional[str]) -> str:
    """Keep only the digits of text, used for registration numbers and dates."""
    if not text:
        return ""
    return _NON_DIGIT_PATTERN.sub('', text)


def tokenize(cleaned_text: str) -> List[str]:
    """Split normalized text into word tokens."""
    return cleaned_text.split() if cleaned_text else []


def digit_tokens(cleaned_text: str) -> List[str]:
    """
    Digit runs of the cleaned text, one per token that contains digits.

    Args:
        cleaned_text: Output of normalize_text

    Returns:
        Digit-only projections of the tokens, empty ones dropped
    """
    return [digits for digits in (extract_digits(token) for token in tokenize(cleaned_text)) if digits]
