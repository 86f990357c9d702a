import threading
from dataclasses import replace
from typing import Any

from docflow.database.repositories.base import BaseDocumentRepository
from docflow.processor.exceptions import DocumentNotFoundError
from docflow.processor.models import DocumentRecord, ProcessingStatus


class InMemoryDocumentRepository(BaseDocumentRepository):
    """Process-local record store used with the in-process queue and in tests."""

    def __init__(self, records: list[DocumentRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, DocumentRecord] = {r.id: r for r in records or []}

    def add(self, record: DocumentRecord) -> None:
        with self._lock:
            self._records[record.id] = record

    def get(self, document_id: str) -> DocumentRecord:
        with self._lock:
            record = self._records.get(document_id)
        if record is None:
            raise DocumentNotFoundError(f"File not found: {document_id}")
        return record

    def update(self, document_id: str, fields: dict[str, Any]) -> None:
        self._check_fields(fields)
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                raise DocumentNotFoundError(f"File not found: {document_id}")
            changes = dict(fields)
            if "processing_status" in changes:
                changes["processing_status"] = ProcessingStatus(changes["processing_status"])
            self._records[document_id] = replace(record, **changes)
