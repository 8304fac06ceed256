"""
Document text extraction for ProviderTrust.

The scorer only consumes the string output of an extractor. Text layers of
PDF documents are read with pdfminer.six; OCR of scanned images is an
external capability plugged in through the same interface.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from pdfminer.high_level import extract_text as pdfminer_extract_text
from pdfminer.psparser import PSException

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class DocumentTextExtractor(ABC):
    """Turns an uploaded document into raw text."""

    @abstractmethod
    def extract_text(self, document: PathLike) -> str:
        """
        Extract raw text from a document.

        Args:
            document: Path to the document

        Returns:
            Raw text, possibly empty

        Raises:
            ExtractionError: If the document cannot be read at all
        """


class PlainTextExtractor(DocumentTextExtractor):
    """Reads text files, e.g. sidecar output of an external OCR run."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def extract_text(self, document: PathLike) -> str:
        try:
            return Path(document).read_text(encoding=self.encoding, errors="replace")
        except OSError as e:
            raise ExtractionError(f"Cannot read {document}: {e}") from e


class PdfTextExtractor(DocumentTextExtractor):
    """Reads the embedded text layer of a PDF, up to max_pages pages."""

    def __init__(self, max_pages: int = 3):
        self.max_pages = max_pages

    def extract_text(self, document: PathLike) -> str:
        try:
            text = pdfminer_extract_text(str(document), maxpages=self.max_pages)
        except (OSError, PSException) as e:
            raise ExtractionError(f"Cannot parse PDF {document}: {e}") from e

        if not text.strip():
            logger.warning(f"PDF {document} has no text layer; OCR it before scoring")
        return text


class ExtensionDispatchExtractor(DocumentTextExtractor):
    """Picks an extractor from the document's file extension."""

    def __init__(self, extractors: Optional[Dict[str, DocumentTextExtractor]] = None):
        self.extractors = extractors or {
            ".pdf": PdfTextExtractor(),
            ".txt": PlainTextExtractor(),
        }

    def extract_text(self, document: PathLike) -> str:
        suffix = Path(document).suffix.lower()
        extractor = self.extractors.get(suffix)
        if extractor is None:
            raise ExtractionError(f"No extractor registered for '{suffix}' documents")
        return extractor.extract_text(document)
