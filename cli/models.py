"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal, Optional


@dataclass(frozen=True)
class TokenCommand:
    """Store the bearer token used for authenticated requests."""

    token: str
    command: Literal["token"] = "token"


@dataclass(frozen=True)
class LogoutCommand:
    """Forget the stored bearer token."""

    command: Literal["logout"] = "logout"


@dataclass(frozen=True)
class InfoCommand:
    """Show a file's metadata."""

    file_id: str
    command: Literal["info"] = "info"


@dataclass(frozen=True)
class PreviewCommand:
    """Preview a file by id."""

    file_id: str
    command: Literal["preview"] = "preview"


@dataclass(frozen=True)
class PublicPreviewCommand:
    """Preview a publicly shared file by share token."""

    share_token: str
    command: Literal["preview-public"] = "preview-public"


@dataclass(frozen=True)
class ClosePreviewCommand:
    """Close the current preview."""

    command: Literal["close"] = "close"


@dataclass(frozen=True)
class DownloadCommand:
    """Download file by id."""

    file_id: str
    output_dir: Optional[str] = None
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class UploadCommand:
    """Upload local files, optionally into a folder and with tags."""

    file_list: tuple[str, ...]
    tag_list: tuple[str, ...] = ()
    folder_id: Optional[str] = None
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ListUploadsCommand:
    """Show active uploads."""

    command: Literal["uploads"] = "uploads"


@dataclass(frozen=True)
class DismissCommand:
    """Remove an upload from the active list."""

    task_id: str
    command: Literal["dismiss"] = "dismiss"


@dataclass(frozen=True)
class ShareFileCommand:
    """Make a file public or private."""

    file_id: str
    public: bool
    command: Literal["share"] = "share"


@dataclass(frozen=True)
class ShareFolderCommand:
    """Create or remove a folder share link."""

    folder_id: str
    public: bool
    command: Literal["share-folder"] = "share-folder"


CommandRequest = (
    TokenCommand
    | LogoutCommand
    | InfoCommand
    | PreviewCommand
    | PublicPreviewCommand
    | ClosePreviewCommand
    | DownloadCommand
    | UploadCommand
    | ListUploadsCommand
    | DismissCommand
    | ShareFileCommand
    | ShareFolderCommand
)
