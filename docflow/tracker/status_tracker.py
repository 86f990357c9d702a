from typing import Any

from docflow.database.repositories.base import BaseDocumentRepository
from docflow.logging.logger import Log
from docflow.processor.models import ExtractionResult, ProcessingStatus


class StatusTracker:
    """Single writer of a document record's processing-status and extraction fields.

    Every write sets absolute values, so repeating a call with the same
    arguments leaves the record unchanged.
    """

    def __init__(self, doc_repo: BaseDocumentRepository) -> None:
        self._doc_repo = doc_repo

    def mark_pending(self, document_id: str) -> None:
        self._write(document_id, ProcessingStatus.PENDING, {"error_message": None})

    def mark_processing(self, document_id: str) -> None:
        self._write(document_id, ProcessingStatus.PROCESSING, {"error_message": None})

    def mark_completed(self, document_id: str, extraction: ExtractionResult) -> None:
        record = self._doc_repo.get(document_id)
        metadata: dict[str, Any] = {
            **record.metadata,
            **extraction.metadata.to_dict(),
            "processing_info": extraction.processing_info(),
        }
        metadata.pop("error_message", None)
        self._write(
            document_id,
            ProcessingStatus.COMPLETED,
            {
                "num_pages": extraction.page_count,
                "extracted_text": extraction.text,
                "metadata": metadata,
                "error_message": None,
            },
        )

    def mark_failed(self, document_id: str, message: str) -> None:
        self._write(document_id, ProcessingStatus.FAILED, {"error_message": message})

    def _write(
        self,
        document_id: str,
        status: ProcessingStatus,
        fields: dict[str, Any],
    ) -> None:
        self._doc_repo.update(document_id, {"processing_status": status, **fields})
        Log.info(f"Document {document_id} status -> {status.value}")
