class PdfExtractionError(Exception):
    """Raised when a PDF engine cannot extract content from the given bytes."""
