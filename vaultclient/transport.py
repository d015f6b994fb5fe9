"""Async HTTP client for the SecureVault REST API."""

import asyncio
import mimetypes
import os
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, BinaryIO, Callable, Optional, Sequence, Tuple

import httpx

from common.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    REQUEST_ID_HEADER,
    UPLOAD_TIMEOUT_PER_MIB_SECONDS,
)
from common.logging_config import get_logger
from common.types import LocalFile
from vaultclient.config import Settings
from vaultclient.credentials import bearer_headers
from vaultclient.exceptions import AuthRequiredError, NetworkError, TransportTimeoutError
from vaultclient.schemas import FileDescriptor, UploadResult

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class ProgressReader:
    """File-like wrapper that reports how many bytes the transport has read."""

    def __init__(self, fileobj: BinaryIO, total: int, on_progress: Optional[ProgressCallback] = None):
        """
        Initialize the progress reader.

        Args:
            fileobj: Binary file object to read from
            total: Total size of the file in bytes
            on_progress: Called with (bytes_read, total) after every chunk
        """
        self._file = fileobj
        self.total = total
        self.on_progress = on_progress
        self._read = 0

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size)
        if chunk:
            self._read += len(chunk)
            if self.on_progress is not None:
                self.on_progress(self._read, self.total)
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._file.seek(offset, whence)
        if whence == os.SEEK_SET:
            self._read = position
        return position

    def tell(self) -> int:
        return self._file.tell()

    def close(self) -> None:
        self._file.close()


def calculate_upload_timeout(base_timeout: float, file_size: int) -> float:
    """
    Calculate timeout for upload based on file size.

    Args:
        base_timeout: Timeout for an empty file in seconds
        file_size: File size in bytes

    Returns:
        Timeout in seconds (base + 0.1s per MiB)
    """
    size_mib = file_size / (1024 * 1024)
    return base_timeout + size_mib * UPLOAD_TIMEOUT_PER_MIB_SECONDS


def content_endpoint(file: FileDescriptor, is_public: bool, token: Optional[str]) -> Tuple[str, dict]:
    """
    Pick the endpoint serving a file's bytes.

    Files with an active share token are served by the public endpoint
    without credentials. Everything else goes to the per-id endpoint, which
    needs the bearer token, except in a public context where no auth header
    is ever sent.

    Returns:
        Tuple of (endpoint path, request headers)

    Raises:
        AuthRequiredError: If the authenticated endpoint is needed and no token is available
    """
    share_token = file.public_token
    if share_token:
        return f"/p/{share_token}", {}
    if is_public:
        return f"/files/{file.id}/download", {}
    if not token:
        raise AuthRequiredError("Authentication required for file access")
    return f"/files/{file.id}/download", bearer_headers(token)


class RestClient:
    """HTTP client for the REST API with retry logic and error handling."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER
    ):
        """
        Initialize the REST client.

        Args:
            settings: Endpoint and timeout settings
            transport: Optional httpx transport (tests pass httpx.MockTransport)
            max_retries: Retry attempts for idempotent metadata reads
            retry_backoff_multiplier: Base of the exponential backoff in seconds
        """
        self.settings = settings
        self.session = httpx.AsyncClient(
            base_url=settings.rest_base_url,
            timeout=settings.timeout,
            transport=transport
        )
        self.max_retries = max_retries
        self.retry_backoff_multiplier = retry_backoff_multiplier
        logger.info(f"Initialized RestClient [base_url={settings.rest_base_url}]")

    def _with_request_id(self, kwargs: dict) -> str:
        request_id = str(uuid.uuid4())
        headers = dict(kwargs.get('headers') or {})
        headers[REQUEST_ID_HEADER] = request_id
        kwargs['headers'] = headers
        return request_id

    async def request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make a single HTTP request, translating transport failures.

        Raises:
            TransportTimeoutError: If the request timed out
            NetworkError: If the server could not be reached
        """
        request_id = self._with_request_id(kwargs)
        logger.debug(f"Making request: {method} {endpoint} [request_id={request_id}]")
        try:
            response = await self.session.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Request timed out: {method} {endpoint} [request_id={request_id}]")
            raise TransportTimeoutError() from e
        except httpx.RequestError as e:
            logger.warning(f"Network error: {method} {endpoint} error={type(e).__name__} [request_id={request_id}]")
            raise NetworkError("Cannot connect to server. Is it running?") from e
        logger.debug(
            f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
        )
        return response

    async def request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Only used for idempotent reads.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses client default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            NetworkError: If max retries exceeded or connection fails
        """
        max_retries = self.max_retries if max_retries is None else max_retries
        backoff = self.retry_backoff_multiplier

        for attempt in range(max_retries + 1):
            try:
                response = await self.request(method, endpoint, **kwargs)
            except NetworkError as e:
                if attempt >= max_retries:
                    logger.error(f"Network error (max retries exceeded): {method} {endpoint} error={e}")
                    raise
                delay = backoff ** attempt
                logger.warning(
                    f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{method} {endpoint}, retrying in {delay}s"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 500 and attempt < max_retries:
                delay = backoff ** attempt
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{method} {endpoint} status={response.status_code}, retrying in {delay}s"
                )
                await asyncio.sleep(delay)
                continue

            return response

        raise NetworkError("Max retries exceeded")

    @staticmethod
    def format_error(response: httpx.Response, prefix: str = "HTTP") -> str:
        """
        Map an error response to a user-facing message.

        Uses ``error.message`` from a structured body when present, otherwise
        the status line.
        """
        try:
            error_data = response.json()
        except ValueError:
            error_data = None

        if isinstance(error_data, dict):
            error = error_data.get('error')
            if isinstance(error, dict) and error.get('message'):
                return str(error['message'])
            if isinstance(error_data.get('detail'), str):
                return error_data['detail']

        return f"{prefix}: {response.status_code} {response.reason_phrase}".rstrip()

    def raise_for_status(self, response: httpx.Response, prefix: str = "HTTP") -> None:
        """
        Raise NetworkError for non-2xx responses.
        """
        if 200 <= response.status_code < 300:
            return
        raise NetworkError(self.format_error(response, prefix), status_code=response.status_code)

    async def fetch_bytes(self, endpoint: str, headers: dict) -> Tuple[bytes, str]:
        """
        GET an endpoint and return its body and content type.

        Raises:
            NetworkError: On transport failure or non-2xx response
        """
        response = await self.request('GET', endpoint, headers=headers)
        if not response.is_success:
            raise NetworkError(
                f"Failed to load preview: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code
            )
        return response.content, response.headers.get('Content-Type', 'application/octet-stream')

    @asynccontextmanager
    async def stream(self, endpoint: str, headers: dict) -> AsyncIterator[httpx.Response]:
        """
        Stream a GET response, raising NetworkError for non-2xx.
        """
        request_headers = dict(headers)
        request_headers[REQUEST_ID_HEADER] = str(uuid.uuid4())
        try:
            async with self.session.stream('GET', endpoint, headers=request_headers) as response:
                if not response.is_success:
                    await response.aread()
                    raise NetworkError(
                        f"Download failed: {self.format_error(response)}",
                        status_code=response.status_code
                    )
                yield response
        except httpx.TimeoutException as e:
            raise TransportTimeoutError() from e
        except httpx.RequestError as e:
            raise NetworkError("Cannot connect to server. Is it running?") from e

    async def upload_file(
        self,
        local_file: LocalFile,
        token: str,
        tags: Sequence[str] = (),
        on_progress: Optional[ProgressCallback] = None,
        base_timeout: Optional[float] = None
    ) -> UploadResult:
        """
        Upload one file as multipart form data.

        Args:
            local_file: File to send
            token: Bearer token
            tags: Tags attached to the file
            on_progress: Called with (bytes_sent, total) as the body is consumed
            base_timeout: Timeout for an empty file (settings default if None)

        Returns:
            Parsed upload response

        Raises:
            TransportTimeoutError: If the upload timed out
            NetworkError: On transport failure, non-2xx or malformed response
        """
        base_timeout = self.settings.upload_timeout if base_timeout is None else base_timeout
        timeout = calculate_upload_timeout(base_timeout, local_file.size)
        content_type = mimetypes.guess_type(local_file.name)[0] or 'application/octet-stream'
        data = {'tags': ','.join(tags)} if tags else None

        with local_file.open() as fileobj:
            reader = ProgressReader(fileobj, local_file.size, on_progress)
            try:
                response = await self.session.post(
                    '/files',
                    files={'file': (local_file.name, reader, content_type)},
                    data=data,
                    headers={**bearer_headers(token), REQUEST_ID_HEADER: str(uuid.uuid4())},
                    timeout=timeout
                )
            except httpx.TimeoutException as e:
                raise TransportTimeoutError(
                    f"Upload timed out (timeout: {timeout:.1f}s)"
                ) from e
            except httpx.RequestError as e:
                raise NetworkError("Network error during upload") from e

        if not response.is_success:
            raise NetworkError(self.format_error(response, "Upload failed"), status_code=response.status_code)

        try:
            return UploadResult.model_validate(response.json())
        except ValueError as e:
            raise NetworkError("Invalid JSON response") from e

    async def move_file(self, file_id: str, folder_id: str, token: str) -> None:
        """
        Move a file into a folder.

        Raises:
            NetworkError: On transport failure or non-2xx response
        """
        response = await self.request(
            'PATCH',
            f'/files/{file_id}/move',
            json={'folder_id': folder_id},
            headers=bearer_headers(token)
        )
        self.raise_for_status(response, "Move failed")

    async def aclose(self) -> None:
        """Close the HTTP session."""
        await self.session.aclose()
