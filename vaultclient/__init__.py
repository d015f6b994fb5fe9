"""Async client for the SecureVault file service."""

from vaultclient.blobs import ObjectURLStore
from vaultclient.config import Settings
from vaultclient.credentials import CredentialProvider, StaticCredentials
from vaultclient.downloads import DownloadResult, DownloadTrigger
from vaultclient.preview import NoPreview, PreviewError, PreviewResolver, PreviewSession
from vaultclient.schemas import FileDescriptor, FolderDescriptor, ShareLink
from vaultclient.sharing import ShareService
from vaultclient.transport import RestClient
from vaultclient.uploads import UploadCoordinator

__all__ = [
    "CredentialProvider",
    "DownloadResult",
    "DownloadTrigger",
    "FileDescriptor",
    "FolderDescriptor",
    "NoPreview",
    "ObjectURLStore",
    "PreviewError",
    "PreviewResolver",
    "PreviewSession",
    "RestClient",
    "Settings",
    "ShareLink",
    "ShareService",
    "StaticCredentials",
    "UploadCoordinator",
]
