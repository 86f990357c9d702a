import pymupdf

from docflow.pdf.base import BasePdfExtractor, PdfContent
from docflow.pdf.exceptions import PdfExtractionError
from docflow.pdf.metadata import build_metadata, header_version


class PyMuPdfAdapter(BasePdfExtractor):
    """Extracts text and document info from PDF using PyMuPDF."""

    name = "pymupdf"

    def extract(self, pdf_bytes: bytes) -> PdfContent:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
                metadata = build_metadata(
                    doc.metadata or {},
                    pdf_version=header_version(pdf_bytes),
                    is_encrypted=bool(doc.is_encrypted),
                    page_layout=doc.pagelayout,
                    page_mode=doc.pagemode,
                )
            return PdfContent(
                page_count=len(pages),
                text="\n".join(pages).strip(),
                metadata=metadata,
            )
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
