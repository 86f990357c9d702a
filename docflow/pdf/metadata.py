"""Normalization of raw PDF document-information dictionaries."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from docflow.processor.models import DocumentMetadata

_PDF_DATE_RE = re.compile(
    r"^D?:?(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?"
    r"(?P<hour>\d{2})?(?P<minute>\d{2})?(?P<second>\d{2})?"
    r"(?P<tz>[Zz]|[+\-]\d{2}'?(\d{2})?'?)?"
)
_HEADER_RE = re.compile(rb"%PDF-(\d+\.\d+)")


def parse_pdf_date(raw: Any) -> datetime | None:
    """Parse a PDF date string such as ``D:20240131120000+01'00'``.

    Returns None when the value is missing or unparseable. Dates without an
    offset are taken as UTC.
    """
    text = as_text(raw)
    if text is None:
        return None
    match = _PDF_DATE_RE.match(text.strip())
    if match is None:
        return None
    parts = match.groupdict()
    try:
        naive = datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
        )
    except ValueError:
        return None
    return naive.replace(tzinfo=_parse_offset(parts["tz"]))


def _parse_offset(raw: str | None) -> timezone:
    if not raw or raw in ("Z", "z"):
        return timezone.utc
    digits = raw[1:].replace("'", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4]) if len(digits) >= 4 else 0
    delta = timedelta(hours=hours, minutes=minutes)
    return timezone(delta if raw[0] == "+" else -delta)


def as_text(value: Any) -> str | None:
    """Coerce a PDF object (str, bytes, PSLiteral) to a non-empty string."""
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    elif hasattr(value, "name"):
        value = value.name
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    return text or None


def header_version(pdf_bytes: bytes) -> str | None:
    match = _HEADER_RE.search(pdf_bytes[:1024])
    return match.group(1).decode("ascii") if match else None


def build_metadata(
    info: dict[str, Any],
    *,
    pdf_version: str | None = None,
    is_encrypted: bool = False,
    page_layout: Any = None,
    page_mode: Any = None,
) -> DocumentMetadata:
    """Build DocumentMetadata from an info dict with case-insensitive keys."""
    lowered = {str(k).lower(): v for k, v in info.items()}
    return DocumentMetadata(
        title=as_text(lowered.get("title")),
        author=as_text(lowered.get("author")),
        subject=as_text(lowered.get("subject")),
        keywords=as_text(lowered.get("keywords")),
        creator=as_text(lowered.get("creator")),
        producer=as_text(lowered.get("producer")),
        creation_date=parse_pdf_date(lowered.get("creationdate")),
        modification_date=parse_pdf_date(lowered.get("moddate")),
        pdf_version=pdf_version,
        is_encrypted=is_encrypted,
        page_layout=as_text(page_layout),
        page_mode=as_text(page_mode),
    )
