"""Consumer-owned store of transient object URLs backed by spooled temp files."""

import asyncio
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredObject:
    """Bytes materialized behind an object URL."""
    url: str
    path: Path
    mime_type: str
    size: int


class ObjectURLStore:
    """
    Creates and revokes object URLs for one consumer.

    Each URL is a ``file://`` URL of a spooled copy of the bytes, so external
    viewers can open it. Revoking deletes the copy. A store is never shared
    between consumers.
    """

    def __init__(self, spool_dir: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            spool_dir: Parent directory for spooled files (system temp dir if None)
        """
        self._root = Path(tempfile.mkdtemp(prefix="securevault-", dir=spool_dir))
        self._objects: Dict[str, StoredObject] = {}
        self._closed = False

    def _spool_path(self, filename: str) -> Path:
        if self._closed:
            raise RuntimeError("ObjectURLStore is closed")
        suffix = Path(filename).suffix if filename else ""
        return self._root / f"{uuid.uuid4().hex}{suffix}"

    def create(self, data: bytes, mime_type: str, filename: str = "") -> str:
        """
        Materialize ``data`` and return its URL.

        Args:
            data: Object contents
            mime_type: Content type reported by the server
            filename: Original filename, used only for the spooled file's suffix

        Returns:
            The new object URL
        """
        path = self._spool_path(filename)
        path.write_bytes(data)
        return self.adopt(path, mime_type, len(data))

    async def spool(self, data: bytes, filename: str = "") -> Path:
        """
        Write ``data`` to a fresh spool file in a worker thread.

        The file has no URL until it is passed to ``adopt``; an unadopted
        file should be handed to ``discard``.
        """
        path = self._spool_path(filename)
        try:
            await asyncio.to_thread(path.write_bytes, data)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return path

    def adopt(self, path: Path, mime_type: str, size: int) -> str:
        """Give a spooled file an object URL."""
        if self._closed:
            raise RuntimeError("ObjectURLStore is closed")
        url = path.as_uri()
        self._objects[url] = StoredObject(url=url, path=path, mime_type=mime_type, size=size)
        logger.debug(f"Created object URL [size={size} mime={mime_type}]")
        return url

    def discard(self, path: Path) -> None:
        path.unlink(missing_ok=True)

    def revoke(self, url: str) -> bool:
        """
        Release an object URL.

        Returns:
            True if the URL was live, False if it was unknown or already revoked
        """
        stored = self._objects.pop(url, None)
        if stored is None:
            logger.warning(f"Revoke of unknown or already revoked object URL: {url}")
            return False
        stored.path.unlink(missing_ok=True)
        logger.debug(f"Revoked object URL [size={stored.size}]")
        return True

    def get(self, url: str) -> StoredObject:
        """
        Look up a live object.

        Raises:
            KeyError: If the URL is not live
        """
        return self._objects[url]

    def read_bytes(self, url: str) -> bytes:
        return self.get(url).path.read_bytes()

    def is_live(self, url: str) -> bool:
        return url in self._objects

    @property
    def live_urls(self) -> List[str]:
        return list(self._objects)

    def close(self) -> None:
        """Revoke every remaining URL and remove the spool directory."""
        for url in list(self._objects):
            self.revoke(url)
        shutil.rmtree(self._root, ignore_errors=True)
        self._closed = True
