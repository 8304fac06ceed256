"""
Document verification scorer for ProviderTrust.

Matches text extracted from an uploaded registration document against the
identity and registration values a provider claims, producing per-field
similarity scores and an aggregate score used to gate automatic acceptance
versus manual review.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from ..extraction.text_extractor import DocumentTextExtractor
from ..errors import ProviderTrustError
from ..models import FieldVerification, VerificationResult
from ..normalize.config import get_default_trust_config, load_trust_config, DEFAULT_CONFIG_PATH
from ..normalize.text_normalizer import digit_tokens, extract_digits, normalize_text, tokenize
from .similarity import best_span

logger = logging.getLogger(__name__)


class VerificationScorer:
    """
    Scores extracted document text against expected field values.

    Stateless between calls: every verify() works only on its own inputs,
    so one scorer may be shared across worker threads.
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize scorer with configuration.

        Args:
            config: Scoring section of the ProviderTrust configuration
        """
        defaults = get_default_trust_config()["scoring"]
        self.config = {**defaults, **(config or {})}
        self.field_threshold = float(self.config["field_threshold"])
        self.field_thresholds = dict(self.config.get("field_thresholds") or {})
        self.global_threshold = float(self.config["global_threshold"])
        self.mandatory_fields = list(self.config["mandatory_fields"])
        self.digit_fields = set(self.config["digit_fields"])
        self.window_slack = int(self.config["window_slack"])
        self.max_window_tokens = int(self.config["max_window_tokens"])

        logger.info("Initialized VerificationScorer")

    def threshold_for(self, field_key: str) -> float:
        """Acceptance threshold for one field."""
        return float(self.field_thresholds.get(field_key, self.field_threshold))

    def _score_digits(self, expected_digits: str, digits_text: str,
                      cleaned_text: str) -> Dict[str, Any]:
        if expected_digits in digits_text:
            return {"similarity": 1.0, "matched_word": expected_digits}

        span, similarity = best_span(
            digit_tokens(cleaned_text),
            expected_digits,
            slack=self.window_slack,
            max_tokens=self.max_window_tokens,
            sep="",
        )
        return {"similarity": similarity, "matched_word": span}

    def _score_text(self, expected_norm: str, cleaned_text: str,
                    tokens: List[str]) -> Dict[str, Any]:
        if expected_norm and f" {expected_norm} " in f" {cleaned_text} ":
            return {"similarity": 1.0, "matched_word": expected_norm}

        span, similarity = best_span(
            tokens,
            expected_norm,
            slack=self.window_slack,
            max_tokens=self.max_window_tokens,
        )
        return {"similarity": similarity, "matched_word": span}

    def verify_field(self, field_key: str, expected_value: str, cleaned_text: str,
                     digits_text: str, tokens: List[str]) -> FieldVerification:
        """
        Score one expected value against the document.

        Args:
            field_key: Expected field key, e.g. "registrationNumber"
            expected_value: Value as the provider entered it
            cleaned_text: Normalized document text
            digits_text: Digit-only projection of the raw text
            tokens: Tokens of cleaned_text

        Returns:
            Field match detail
        """
        expected_digits = extract_digits(expected_value) if field_key in self.digit_fields else ""

        if expected_digits:
            match = self._score_digits(expected_digits, digits_text, cleaned_text)
        else:
            match = self._score_text(normalize_text(expected_value), cleaned_text, tokens)

        similarity = match["similarity"]
        return FieldVerification(
            found=similarity >= self.threshold_for(field_key),
            similarity=similarity,
            expected_value=expected_value,
            matched_word=match["matched_word"],
        )

    def verify(self, raw_text: Optional[str],
               expected_fields: Mapping[str, Any]) -> VerificationResult:
        """
        Score raw extracted text against expected field values.

        An empty or unreadable extraction yields a failed result, never an
        exception.

        Args:
            raw_text: Text extracted from the document
            expected_fields: Mapping of field key to expected value; empty
                values are omitted from the result, and an omitted
                mandatory field fails the document

        Returns:
            Verification result with per-field detail and aggregate score
        """
        start = time.perf_counter()
        raw_text = raw_text or ""
        cleaned_text = normalize_text(raw_text)
        digits_text = extract_digits(raw_text)
        tokens = tokenize(cleaned_text)

        if not cleaned_text:
            logger.warning("Extracted text is empty, all fields will fail")

        fields: Dict[str, FieldVerification] = {}
        for field_key, value in expected_fields.items():
            expected_value = "" if value is None else str(value).strip()
            if not expected_value:
                continue
            fields[field_key] = self.verify_field(
                field_key, expected_value, cleaned_text, digits_text, tokens
            )

        if fields:
            overall_score = 100.0 * sum(f.similarity for f in fields.values()) / len(fields)
        else:
            overall_score = 0.0

        missing_mandatory = [key for key in self.mandatory_fields if key not in fields]
        if missing_mandatory:
            logger.warning(f"No expected value for mandatory fields {missing_mandatory}")
        mandatory_found = not missing_mandatory and all(
            fields[key].found for key in self.mandatory_fields
        )
        success = bool(fields) and overall_score >= self.global_threshold and mandatory_found

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.info(f"Scored document against {len(fields)} fields: "
                    f"score={overall_score:.1f}, success={success}")

        return VerificationResult(
            success=success,
            overall_score=overall_score,
            fields=fields,
            raw_text=raw_text,
            cleaned_text=cleaned_text,
            processed_at=datetime.now(timezone.utc),
            processing_time_ms=elapsed_ms,
        )

    def verify_document(self, document: Any, expected_fields: Mapping[str, Any],
                        extractor: DocumentTextExtractor) -> VerificationResult:
        """
        Extract text from a document and score it.

        Extraction failures are treated as an empty extraction.

        Args:
            document: Whatever the extractor accepts, typically a file path
            expected_fields: Mapping of field key to expected value
            extractor: Text extraction collaborator

        Returns:
            Verification result
        """
        try:
            raw_text = extractor.extract_text(document)
        except ProviderTrustError as e:
            logger.warning(f"Text extraction failed for {document}: {e}")
            raw_text = ""
        return self.verify(raw_text, expected_fields)

    def get_scoring_statistics(self, results: List[VerificationResult]) -> Dict[str, Any]:
        """
        Summarize a batch of verification results.

        Args:
            results: Verification results

        Returns:
            Dictionary with score distribution and per-field found rates
        """
        if not results:
            return {}

        scores = pd.Series([r.overall_score for r in results])
        field_rows = [
            {"field": key, "found": detail.found, "similarity": detail.similarity}
            for r in results for key, detail in r.fields.items()
        ]
        fields_df = pd.DataFrame(field_rows, columns=["field", "found", "similarity"])

        field_stats = {}
        if not fields_df.empty:
            grouped = fields_df.groupby("field")
            field_stats = {
                field: {
                    "found_rate": float(group["found"].mean()),
                    "mean_similarity": float(group["similarity"].mean()),
                }
                for field, group in grouped
            }

        success_count = sum(1 for r in results if r.success)
        return {
            "total_documents": len(results),
            "success_count": success_count,
            "success_rate": success_count / len(results),
            "score_statistics": {
                "mean_score": float(scores.mean()),
                "median_score": float(scores.median()),
                "min_score": float(scores.min()),
                "max_score": float(scores.max()),
            },
            "field_statistics": field_stats,
            "thresholds": {
                "field_threshold": self.field_threshold,
                "global_threshold": self.global_threshold,
            },
        }


def create_verification_scorer(config_path: str = DEFAULT_CONFIG_PATH) -> VerificationScorer:
    """
    Convenience function to create a scorer from a configuration file.

    Args:
        config_path: Path to configuration file

    Returns:
        Initialized verification scorer
    """
    config = load_trust_config(config_path)
    return VerificationScorer(config.get("scoring", {}))
