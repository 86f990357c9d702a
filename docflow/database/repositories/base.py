from abc import ABC, abstractmethod
from typing import Any

from docflow.processor.models import DocumentRecord


class BaseDocumentRepository(ABC):
    """Contract for the store that owns document records."""

    UPDATABLE_FIELDS = frozenset(
        {"processing_status", "num_pages", "extracted_text", "metadata", "error_message"}
    )

    @abstractmethod
    def get(self, document_id: str) -> DocumentRecord:
        """Return the record.

        Raises:
            DocumentNotFoundError: if no record with this ID exists.
        """

    @abstractmethod
    def update(self, document_id: str, fields: dict[str, Any]) -> None:
        """Overwrite the given fields, last write wins.

        Raises:
            DocumentNotFoundError: if no record with this ID exists.
            ValueError: if a field is not one of UPDATABLE_FIELDS.
        """

    def _check_fields(self, fields: dict[str, Any]) -> None:
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update document fields: {sorted(unknown)}")
