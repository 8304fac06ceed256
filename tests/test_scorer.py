"""
Unit tests for the document verification scorer.
"""

import pytest
import shutil
import tempfile
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from provider_trust.errors import ExtractionError
from provider_trust.extraction.text_extractor import (
    ExtensionDispatchExtractor,
    PdfTextExtractor,
    PlainTextExtractor,
)
from provider_trust.match.scorer import VerificationScorer


REGISTRATION_TEXT = """
ROYAUME DU MAROC
Registre de Commerce de Casablanca
N° 12345/2020
Dénomination : Clinique Atlas
Représentant légal : Youssef El Amrani
"""


def build_pdf(text: str) -> bytes:
    """Build a one-page PDF with a Helvetica text layer."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += b"xref\n0 %d\n" % (len(objects) + 1)
    pdf += b"0000000000 65535 f \n"
    for offset in offsets:
        pdf += b"%010d 00000 n \n" % offset
    pdf += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1, xref_offset)
    return bytes(pdf)


class TestVerificationScorer:
    """Test cases for document scoring."""

    def setup_method(self):
        """Setup test fixtures."""
        self.scorer = VerificationScorer()

    def test_empty_text_fails(self):
        """Test an empty extraction fails every field without raising."""
        result = self.scorer.verify("", {"registrationNumber": "12345", "facilityName": "Clinique Atlas"})

        assert result.success is False
        assert result.overall_score == 0.0
        assert result.cleaned_text == ""
        for detail in result.fields.values():
            assert detail.found is False
            assert detail.similarity == 0.0

    def test_none_text_fails(self):
        """Test a missing extraction behaves like an empty one."""
        result = self.scorer.verify(None, {"facilityName": "Clinique Atlas"})
        assert result.success is False
        assert result.raw_text == ""

    def test_verbatim_values_match(self):
        """Test values present verbatim score 1.0."""
        result = self.scorer.verify(REGISTRATION_TEXT, {
            "registrationNumber": "12345/2020",
            "facilityName": "Clinique Atlas",
            "fullName": "Youssef El Amrani",
        })

        assert result.success is True
        assert result.overall_score == pytest.approx(100.0)
        registration = result.fields["registrationNumber"]
        assert registration.found is True
        assert registration.similarity == 1.0
        assert registration.expected_value == "12345/2020"
        assert result.fields["facilityName"].matched_word == "clinique atlas"

    def test_registration_number_ignores_punctuation(self):
        """Test digit fields compare digits only."""
        result = self.scorer.verify(REGISTRATION_TEXT, {"registrationNumber": "RC 12345-2020"})
        assert result.fields["registrationNumber"].similarity == 1.0

    def test_accents_and_case_ignored(self):
        """Test accents and case do not affect matching."""
        result = self.scorer.verify("CLINIQUE SAINTE-HÉLÈNE", {"facilityName": "Clinique Sainte Helene"})
        assert result.fields["facilityName"].similarity == 1.0

    def test_ocr_noise_tolerated(self):
        """Test a single OCR substitution still counts as found."""
        result = self.scorer.verify("Cl1nique Atlas, Casablanca", {"facilityName": "Clinique Atlas"})

        detail = result.fields["facilityName"]
        assert detail.found is True
        assert 0.8 <= detail.similarity < 1.0
        assert detail.matched_word == "cl1nique atlas"

    def test_empty_expected_values_omitted(self):
        """Test empty or missing expected values are left out."""
        result = self.scorer.verify(REGISTRATION_TEXT, {
            "registrationNumber": "12345/2020",
            "date": "",
            "fullName": None,
            "facilityName": "   ",
        })
        assert list(result.fields) == ["registrationNumber"]

    def test_no_expected_fields(self):
        """Test scoring with nothing to compare."""
        result = self.scorer.verify(REGISTRATION_TEXT, {})
        assert result.fields == {}
        assert result.overall_score == 0.0
        assert result.success is False

    def test_mandatory_field_blocks_success(self):
        """Test a missing registration number fails even with a passing score."""
        scorer = VerificationScorer({"global_threshold": 50.0})
        result = scorer.verify("Clinique Atlas Casablanca", {
            "facilityName": "Clinique Atlas",
            "registrationNumber": "98765",
        })

        assert result.overall_score == pytest.approx(50.0)
        assert result.fields["registrationNumber"].found is False
        assert result.success is False

    def test_missing_mandatory_field_fails(self):
        """Test a mandatory field with no expected value fails the document."""
        result = self.scorer.verify(REGISTRATION_TEXT, {
            "facilityName": "Clinique Atlas",
            "registrationNumber": None,
            "fullName": "Youssef El Amrani",
        })

        assert list(result.fields) == ["facilityName", "fullName"]
        assert result.overall_score == pytest.approx(100.0)
        assert result.success is False

    def test_no_mandatory_fields_configured(self):
        """Test documents pass on score alone when nothing is mandatory."""
        scorer = VerificationScorer({"mandatory_fields": []})
        result = scorer.verify(REGISTRATION_TEXT, {"facilityName": "Clinique Atlas"})
        assert result.success is True

    def test_per_field_threshold(self):
        """Test per-field threshold overrides."""
        scorer = VerificationScorer({"field_thresholds": {"facilityName": 0.99}})
        result = scorer.verify("Cl1nique Atlas", {"facilityName": "Clinique Atlas"})
        assert result.fields["facilityName"].found is False
        assert scorer.threshold_for("fullName") == 0.8

    def test_deterministic(self):
        """Test identical inputs give identical scores."""
        expected = {"registrationNumber": "12346/2020", "facilityName": "Clinique Atlass"}
        first = self.scorer.verify(REGISTRATION_TEXT, expected)
        second = self.scorer.verify(REGISTRATION_TEXT, expected)

        assert first.overall_score == second.overall_score
        assert first.success == second.success
        for key in expected:
            assert first.fields[key] == second.fields[key]

    def test_to_document_uses_camel_case(self):
        """Test the persisted result shape."""
        document = self.scorer.verify(REGISTRATION_TEXT, {"facilityName": "Clinique Atlas"}).to_document()
        assert "overallScore" in document
        assert "processedAt" in document
        assert "matchedWord" in document["fields"]["facilityName"]

    def test_scoring_statistics(self):
        """Test batch statistics."""
        results = [
            self.scorer.verify(REGISTRATION_TEXT, {"facilityName": "Clinique Atlas",
                                                   "registrationNumber": "12345/2020"}),
            self.scorer.verify("", {"facilityName": "Clinique Atlas"}),
        ]
        stats = self.scorer.get_scoring_statistics(results)

        assert stats["total_documents"] == 2
        assert stats["success_count"] == 1
        assert stats["success_rate"] == 0.5
        assert stats["score_statistics"]["max_score"] == pytest.approx(100.0)
        assert stats["field_statistics"]["facilityName"]["found_rate"] == 0.5
        assert self.scorer.get_scoring_statistics([]) == {}


class TestDocumentExtraction:
    """Test cases for text extraction and document scoring."""

    def setup_method(self):
        """Setup test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.scorer = VerificationScorer()

    def teardown_method(self):
        """Cleanup test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_plain_text_document(self):
        """Test scoring a text sidecar file."""
        path = Path(self.temp_dir) / "registration.txt"
        path.write_text(REGISTRATION_TEXT, encoding="utf-8")

        result = self.scorer.verify_document(path, {"registrationNumber": "12345/2020"},
                                             ExtensionDispatchExtractor())
        assert result.success is True

    def test_missing_document_scores_as_empty(self):
        """Test an unreadable document yields a failed result."""
        missing = Path(self.temp_dir) / "missing.txt"
        result = self.scorer.verify_document(missing, {"registrationNumber": "12345"},
                                             PlainTextExtractor())
        assert result.success is False
        assert result.overall_score == 0.0

    def test_plain_text_extractor_raises(self):
        """Test extraction errors are typed."""
        with pytest.raises(ExtractionError):
            PlainTextExtractor().extract_text(Path(self.temp_dir) / "missing.txt")

    def test_unknown_extension(self):
        """Test unsupported document types are rejected."""
        with pytest.raises(ExtractionError):
            ExtensionDispatchExtractor().extract_text(Path(self.temp_dir) / "scan.tiff")

    def test_pdf_text_layer(self):
        """Test reading and scoring the text layer of a PDF."""
        path = Path(self.temp_dir) / "registration.pdf"
        path.write_bytes(build_pdf("Clinique Atlas RC 12345/2020"))

        text = PdfTextExtractor().extract_text(path)
        assert "Clinique Atlas" in text

        result = self.scorer.verify_document(path, {
            "facilityName": "Clinique Atlas",
            "registrationNumber": "12345/2020",
        }, ExtensionDispatchExtractor())
        assert result.success is True

    def test_corrupt_pdf(self):
        """Test a file that is not a PDF raises a typed error."""
        path = Path(self.temp_dir) / "corrupt.pdf"
        path.write_bytes(b"this is not a pdf document")

        with pytest.raises(ExtractionError):
            PdfTextExtractor().extract_text(path)

        result = self.scorer.verify_document(path, {"registrationNumber": "12345"},
                                             ExtensionDispatchExtractor())
        assert result.success is False
        assert result.overall_score == 0.0

    def test_missing_pdf(self):
        """Test a missing PDF raises a typed error."""
        with pytest.raises(ExtractionError):
            PdfTextExtractor().extract_text(Path(self.temp_dir) / "missing.pdf")
