from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class DocumentRecord:
    """Domain model for a stored document (subset of the record store's columns)."""

    id: str
    file_path: str
    file_size: int
    mime_type: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    num_pages: int | None = None
    extracted_text: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None


@dataclass(frozen=True)
class DocumentMetadata:
    """Normalized PDF document information."""

    title: str | None = None
    author: str | None = None
    subject: str | None = None
    keywords: str | None = None
    creator: str | None = None
    producer: str | None = None
    creation_date: datetime | None = None
    modification_date: datetime | None = None
    pdf_version: str | None = None
    is_encrypted: bool = False
    page_layout: str | None = None
    page_mode: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("creation_date", "modification_date"):
            value = data[key]
            data[key] = value.isoformat() if value is not None else None
        return data


@dataclass(frozen=True)
class ExtractionResult:
    """Output of a successful extraction."""

    document_id: str
    page_count: int
    text: str
    metadata: DocumentMetadata
    engine: str = ""
    elapsed_seconds: float = 0.0
    extracted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def processing_info(self) -> dict[str, Any]:
        return {
            "engine": self.engine,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "processed_at": self.extracted_at.isoformat(),
        }
