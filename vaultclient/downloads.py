"""Save-to-disk downloads of remote files."""

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import unquote

from common.constants import DOWNLOAD_CHUNK_SIZE_BYTES
from common.logging_config import get_logger, log_operation
from vaultclient.credentials import CredentialProvider
from vaultclient.exceptions import VaultError
from vaultclient.schemas import FileDescriptor
from vaultclient.transport import RestClient, content_endpoint

logger = get_logger(__name__)

FILENAME_PATTERN = re.compile(r'filename[^;=\n]*=(([\'"]).*?\2|[^;\n]*)', re.IGNORECASE)
EXTENDED_FILENAME_PATTERN = re.compile(r"filename\*\s*=\s*([^']*)'[^']*'([^;\n]+)", re.IGNORECASE)


def _safe_name(name: str) -> str:
    name = Path(name.replace('\\', '/')).name.strip()
    return "" if name in ('.', '..') else name


def filename_from_disposition(header: Optional[str], fallback: str) -> str:
    """
    Extract the filename from a Content-Disposition header.

    Prefers the RFC 5987 ``filename*=`` form, then ``filename=``. The result
    is reduced to a bare name so it cannot point outside the target
    directory; the fallback is used when nothing usable is found.
    """
    name = ""
    if header:
        extended = EXTENDED_FILENAME_PATTERN.search(header)
        if extended:
            encoding = extended.group(1).strip() or 'utf-8'
            try:
                name = unquote(extended.group(2).strip(), encoding=encoding, errors='replace')
            except LookupError:
                name = unquote(extended.group(2).strip())
        else:
            match = FILENAME_PATTERN.search(header)
            if match and match.group(1):
                name = match.group(1).replace('"', '').replace("'", '')
    return _safe_name(name) or _safe_name(fallback) or "download"


def _available_path(path: Path) -> Path:
    """Return ``path`` or the first free ``name (n).ext`` next to it."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


@dataclass(frozen=True)
class DownloadResult:
    """Outcome of one download."""
    file_id: str
    filename: str
    path: Optional[Path] = None
    size: int = 0
    error: Optional[VaultError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        if self.error is not None:
            return f'Failed to download "{self.filename}": {self.error.user_message}'
        return f'File "{self.filename}" downloaded successfully!'


class DownloadTrigger:
    """Streams files to disk using the same endpoint rules as previews."""

    def __init__(self, rest: RestClient, credentials: CredentialProvider, download_dir: Union[str, Path]):
        self._rest = rest
        self._credentials = credentials
        self.download_dir = Path(download_dir)

    async def download(
        self,
        file: FileDescriptor,
        output_dir: Optional[Union[str, Path]] = None,
        is_public: bool = False,
        on_progress: Optional[Callable[[int, int], None]] = None
    ) -> DownloadResult:
        """
        Download ``file`` into a directory.

        Never raises for download failures; a partially written file is removed.

        Args:
            file: File to download
            output_dir: Target directory (the trigger's download_dir if None)
            is_public: True when browsing through a public share
            on_progress: Called with (bytes_written, total) where total is 0 if unknown

        Returns:
            DownloadResult with the saved path or the error
        """
        target_dir = Path(output_dir) if output_dir is not None else self.download_dir
        filename = file.original_filename
        try:
            endpoint, headers = content_endpoint(file, is_public, self._credentials.get_token())
            with log_operation(logger, "REST", "download", file_id=file.id) as extra:
                async with self._rest.stream(endpoint, headers) as response:
                    filename = filename_from_disposition(
                        response.headers.get('Content-Disposition'), file.original_filename
                    )
                    try:
                        total = int(response.headers.get('Content-Length') or 0)
                    except ValueError:
                        total = 0

                    target_dir.mkdir(parents=True, exist_ok=True)
                    path = _available_path(target_dir / filename)
                    written = 0
                    try:
                        with open(path, 'wb') as f:
                            async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE_BYTES):
                                await asyncio.to_thread(f.write, chunk)
                                written += len(chunk)
                                if on_progress is not None:
                                    on_progress(written, total)
                    except BaseException:
                        path.unlink(missing_ok=True)
                        raise
                    extra['bytes'] = written
        except VaultError as e:
            logger.warning(f"Download failed [file_id={file.id}]: {e}")
            return DownloadResult(file.id, filename, error=e)
        except OSError as e:
            logger.error(f"Error writing download [file_id={file.id}]: {e}")
            return DownloadResult(file.id, filename, error=VaultError(f"Error writing file: {e}"))

        return DownloadResult(file.id, filename, path=path, size=written)
