"""OCR pipeline errors."""


class OcrError(Exception):
    """Raised when a transcription request fails for a file."""


class OcrRateLimitError(OcrError):
    """Raised when the API keeps rate limiting after every retry attempt."""
