from abc import ABC, abstractmethod
from dataclasses import dataclass

from docflow.processor.models import DocumentMetadata


@dataclass(frozen=True)
class PdfContent:
    """Everything a PDF engine returns for one document."""

    page_count: int
    text: str
    metadata: DocumentMetadata


class BasePdfExtractor(ABC):
    """Contract for all PDF extraction adapters."""

    name: str = ""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfContent:
        """Extract page count, plain text and metadata from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfContent with pages joined by newlines and stripped.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
