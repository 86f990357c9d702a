from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import get_connection
from docflow.database.repositories.base import BaseDocumentRepository
from docflow.processor.exceptions import DocumentNotFoundError
from docflow.processor.models import DocumentRecord, ProcessingStatus


class DocumentsRepository(BaseDocumentRepository):
    """Database operations for the files table."""

    def get(self, document_id: str) -> DocumentRecord:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, file_path, file_size, mime_type, processing_status,
                           num_pages, extracted_text, metadata, error_message
                    FROM files
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"File not found: {document_id}")

        return DocumentRecord(
            id=str(row["id"]),
            file_path=row["file_path"],
            file_size=int(row["file_size"]),
            mime_type=row["mime_type"],
            processing_status=ProcessingStatus(row["processing_status"]),
            num_pages=row["num_pages"],
            extracted_text=row["extracted_text"],
            metadata=row["metadata"] or {},
            error_message=row["error_message"],
        )

    def update(self, document_id: str, fields: dict[str, Any]) -> None:
        self._check_fields(fields)
        if not fields:
            return
        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in fields
        ]
        query = sql.SQL("UPDATE files SET {}, updated_at = NOW() WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        values = [self._adapt(value) for value in fields.values()]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, (*values, document_id))
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"File not found: {document_id}")
            conn.commit()

    @staticmethod
    def _adapt(value: Any) -> Any:
        if isinstance(value, dict):
            return Jsonb(value)
        if isinstance(value, ProcessingStatus):
            return value.value
        return value
