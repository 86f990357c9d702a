import io
from typing import Any

import pdfplumber
from pdfminer.pdftypes import resolve1

from docflow.pdf.base import BasePdfExtractor, PdfContent
from docflow.pdf.exceptions import PdfExtractionError
from docflow.pdf.metadata import build_metadata, header_version


class PdfPlumberAdapter(BasePdfExtractor):
    """Extracts text and document info from PDF using pdfplumber."""

    name = "pdfplumber"

    def extract(self, pdf_bytes: bytes) -> PdfContent:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
                catalog: dict[str, Any] = resolve1(pdf.doc.catalog) or {}
                metadata = build_metadata(
                    pdf.metadata or {},
                    pdf_version=header_version(pdf_bytes),
                    is_encrypted=getattr(pdf.doc, "encryption", None) is not None,
                    page_layout=resolve1(catalog.get("PageLayout")),
                    page_mode=resolve1(catalog.get("PageMode")),
                )
            return PdfContent(
                page_count=len(pages),
                text="\n".join(pages).strip(),
                metadata=metadata,
            )
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
