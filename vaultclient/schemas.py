"""Pydantic schemas for backend payloads."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShareLink(BaseModel):
    """Public share link attached to a file or folder."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    token: str
    is_active: bool = True
    download_count: Optional[int] = None
    created_at: Optional[str] = None
    id: Optional[str] = None


class FileDescriptor(BaseModel):
    """Remote file metadata as known to the client."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    original_filename: str
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0
    folder_id: Optional[str] = None
    is_public: bool = False
    share_link: Optional[ShareLink] = None
    tags: List[str] = Field(default_factory=list)
    owner_id: Optional[str] = None
    download_count: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def public_token(self) -> Optional[str]:
        """Share token usable for unauthenticated access, if any."""
        if self.share_link and self.share_link.token and self.share_link.is_active:
            return self.share_link.token
        return None


class FolderDescriptor(BaseModel):
    """Remote folder metadata."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    parent_id: Optional[str] = None
    owner_id: Optional[str] = None
    share_link: Optional[ShareLink] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class UploadedFile(BaseModel):
    """File fragment returned by the upload endpoint."""
    model_config = ConfigDict(extra="ignore")

    id: str
    original_filename: str
    size_bytes: int = 0


class UploadResult(BaseModel):
    """Response model for file upload."""
    model_config = ConfigDict(extra="ignore")

    file: UploadedFile
    hash: Optional[str] = None
    is_duplicate: bool = False


class FolderShareStatus(BaseModel):
    """Response model for folder share status."""
    model_config = ConfigDict(extra="ignore")

    has_share_link: bool = False
    token: Optional[str] = None
