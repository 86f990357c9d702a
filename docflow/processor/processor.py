import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path

from docflow.config.settings import Settings
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.logging.logger import Log
from docflow.pdf.base import BasePdfExtractor, PdfContent
from docflow.pdf.exceptions import PdfExtractionError
from docflow.pdf.factory import PdfExtractorFactory
from docflow.processor.exceptions import (
    DocumentNotFoundError,
    ExtractionFailedError,
    ExtractionTimeoutError,
    FileTooLargeError,
    UnsupportedMimeTypeError,
)
from docflow.processor.file_loader import BaseDocumentStorage, LocalDocumentStorage
from docflow.processor.models import DocumentRecord, ExtractionResult


class Processor:
    """Validates one document and extracts its pages, text and metadata.

    Pipeline: load record -> validate -> read -> extract (bounded) -> report.
    Has no queue awareness; failures are raised as classified ProcessorError.
    """

    def __init__(
        self,
        doc_repo: BaseDocumentRepository,
        storage: BaseDocumentStorage,
        pdf_extractor: BasePdfExtractor,
        *,
        max_file_size_bytes: int,
        timeout_seconds: float,
        supported_mime_types: list[str],
    ) -> None:
        self._doc_repo = doc_repo
        self._storage = storage
        self._pdf_extractor = pdf_extractor
        self._max_file_size_bytes = max_file_size_bytes
        self._timeout_seconds = timeout_seconds
        self._supported_mime_types = frozenset(supported_mime_types)

    def process(self, document_id: str) -> ExtractionResult:
        """Run validation and extraction for a document."""
        started = time.monotonic()
        Log.info(f"Processing document {document_id}")

        # Step 1: Validate
        record = self._doc_repo.get(document_id)
        self._validate(record)

        # Step 2: Extract
        raw_bytes = self._storage.read_all(record.file_path)
        Log.info(f"Loaded {len(raw_bytes)} bytes for document {document_id}")
        content = self._extract_with_timeout(document_id, raw_bytes)

        # Step 3: Report
        elapsed = time.monotonic() - started
        Log.info(
            f"Extracted {content.page_count} pages, {len(content.text)} chars "
            f"from document {document_id} in {elapsed:.2f}s"
        )
        return ExtractionResult(
            document_id=document_id,
            page_count=content.page_count,
            text=content.text,
            metadata=content.metadata,
            engine=self._pdf_extractor.name,
            elapsed_seconds=elapsed,
        )

    def _validate(self, record: DocumentRecord) -> None:
        if not self._storage.exists(record.file_path):
            raise DocumentNotFoundError(f"File not found at path: {record.file_path}")

        size = self._storage.stat(record.file_path)
        if size > self._max_file_size_bytes:
            raise FileTooLargeError(
                f"File size ({size}) exceeds maximum allowed size ({self._max_file_size_bytes})"
            )
        if size != record.file_size:
            Log.warning(
                f"File size mismatch for {record.id}: DB={record.file_size}, Actual={size}"
            )

        if record.mime_type not in self._supported_mime_types:
            raise UnsupportedMimeTypeError(f"Unsupported MIME type: {record.mime_type}")

        Log.debug(f"File validation passed for: {record.id}")

    def _extract_with_timeout(self, document_id: str, raw_bytes: bytes) -> PdfContent:
        """Race the PDF engine against the time budget.

        On timeout the engine thread is left to finish on its own and its
        result is dropped with the future.
        """
        future: Future[PdfContent] = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._pdf_extractor.extract(raw_bytes))
            except Exception as exc:
                future.set_exception(exc)

        thread = threading.Thread(target=run, name=f"extract-{document_id}", daemon=True)
        thread.start()
        try:
            return future.result(timeout=self._timeout_seconds)
        except FutureTimeoutError as exc:
            raise ExtractionTimeoutError(
                f"PDF processing timeout after {self._timeout_seconds:g}s"
            ) from exc
        except PdfExtractionError as exc:
            raise ExtractionFailedError(f"PDF extraction failed: {exc}") from exc


def build_processor(
    settings: Settings,
    doc_repo: BaseDocumentRepository,
    files_root: Path | None = None,
) -> Processor:
    """Build a Processor with all required adapters."""
    storage = LocalDocumentStorage(
        files_root=files_root if files_root is not None else Path(settings.files_root)
    )
    return Processor(
        doc_repo=doc_repo,
        storage=storage,
        pdf_extractor=PdfExtractorFactory.create(settings),
        max_file_size_bytes=settings.max_file_size_bytes,
        timeout_seconds=settings.extraction_timeout_seconds,
        supported_mime_types=settings.supported_mime_types,
    )
