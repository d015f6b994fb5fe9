"""Shared client-side data types (local files, upload tasks)."""

import io
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union


class UploadStatus(str, Enum):
    """Lifecycle states of a single upload."""

    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class LocalFile:
    """
    A file on the user's side waiting to be uploaded.

    Exactly one of ``path`` or ``data`` is set.
    """
    name: str
    size: int
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "LocalFile":
        path = Path(path)
        return cls(name=path.name, size=os.path.getsize(path), path=path)

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "LocalFile":
        return cls(name=name, size=len(data), data=data)

    def open(self) -> BinaryIO:
        """Open the file contents for binary reading."""
        if self.path is not None:
            return open(self.path, 'rb')
        return io.BytesIO(self.data or b"")


@dataclass
class UploadTask:
    """
    Client-side record of one file upload.

    ``progress`` only ever grows; ``relocation_error`` is set when the upload
    itself succeeded but moving it into the destination folder failed.
    """
    task_id: str
    name: str
    size: int
    progress: int = 0
    status: UploadStatus = UploadStatus.UPLOADING
    error: Optional[str] = None
    file_id: Optional[str] = None
    relocation_error: Optional[str] = None
    is_duplicate: bool = field(default=False)

    def advance(self, progress: int) -> bool:
        """
        Raise progress to ``progress`` percent.

        Returns:
            True if the stored value changed
        """
        progress = max(0, min(100, progress))
        if progress <= self.progress:
            return False
        self.progress = progress
        return True
