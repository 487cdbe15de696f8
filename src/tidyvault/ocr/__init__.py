"""OCR transcription of vault attachments."""

from .client import API_KEY_ENV, OcrClient, parse_retry_delay
from .errors import OcrError, OcrRateLimitError
from .models import OcrBatchSummary, OcrResult
from .pipeline import STOP_SENTINEL, OcrPipeline, request_stop

__all__ = [
    "API_KEY_ENV",
    "OcrBatchSummary",
    "OcrClient",
    "OcrError",
    "OcrPipeline",
    "OcrRateLimitError",
    "OcrResult",
    "STOP_SENTINEL",
    "parse_retry_delay",
    "request_stop",
]
