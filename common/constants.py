"""Project-wide constants (size ceilings, timeouts, transfer sizes)."""

TEXT_PREVIEW_MAX_BYTES: int = 500_000
VIDEO_PREVIEW_MAX_BYTES: int = 100_000_000
PDF_PREVIEW_MAX_BYTES: int = 50_000_000

PREVIEW_TIMEOUT_SECONDS: float = 30.0
VIDEO_PREVIEW_TIMEOUT_SECONDS: float = 60.0

UPLOAD_TIMEOUT_SECONDS: float = 60.0
UPLOAD_TIMEOUT_PER_MIB_SECONDS: float = 0.1
DOWNLOAD_CHUNK_SIZE_BYTES: int = 8192

# Seconds a completed upload stays visible before leaving the active set
COMPLETED_UPLOAD_LINGER_SECONDS: float = 2.0

REQUEST_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_BACKOFF_MULTIPLIER: float = 2.0

REQUEST_ID_HEADER: str = "X-Request-ID"
