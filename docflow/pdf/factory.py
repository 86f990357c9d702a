from docflow.config.settings import Settings
from docflow.pdf.base import BasePdfExtractor
from docflow.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docflow.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Creates the PDF engine named by settings.pdf_engine."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        adapter.name: adapter for adapter in (PdfPlumberAdapter, PyMuPdfAdapter)
    }

    @classmethod
    def engines(cls) -> list[str]:
        return sorted(cls.ADAPTERS)

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        engine = settings.pdf_engine.strip().lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(f"Unknown PDF engine '{engine}'. Choose from: {cls.engines()}")
        return adapter_cls()
