"""File visibility and share-link operations."""

from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from common.logging_config import get_logger
from vaultclient.credentials import CredentialProvider, bearer_headers
from vaultclient.downloads import filename_from_disposition
from vaultclient.exceptions import AuthRequiredError, NetworkError
from vaultclient.schemas import FileDescriptor, FolderShareStatus, ShareLink
from vaultclient.transport import RestClient

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

EXPIRED_LINK_MESSAGE = "This file link is invalid or has expired"


class ShareService:
    """Reads file metadata and toggles public sharing of files and folders."""

    def __init__(self, rest: RestClient, credentials: CredentialProvider):
        self._rest = rest
        self._credentials = credentials

    def _auth_headers(self) -> dict:
        token = self._credentials.get_token()
        if not token:
            raise AuthRequiredError("Not logged in. Please run: token <bearer-token>")
        return bearer_headers(token)

    def file_share_url(self, token: str) -> str:
        return f"{self._rest.settings.app_base_url}/public/files/share/{token}"

    def folder_share_url(self, token: str) -> str:
        return f"{self._rest.settings.app_base_url}/p/f/{token}"

    async def get_file(self, file_id: str) -> FileDescriptor:
        """
        Fetch a file's metadata.

        Raises:
            AuthRequiredError: If no credential is available
            NetworkError: On transport failure or non-2xx response
        """
        response = await self._rest.request_with_retry(
            'GET', f'/files/{file_id}', headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to load file details")
        return _parse_file(response)

    async def set_visibility(self, file_id: str, is_public: bool) -> None:
        """Mark a file public or private without touching its share link."""
        response = await self._rest.request(
            'PATCH',
            f'/files/{file_id}/visibility',
            json={'is_public': is_public},
            headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to update visibility")
        logger.info(f"Updated file visibility [file_id={file_id} is_public={is_public}]")

    async def toggle_public(self, file_id: str, is_public: bool) -> FileDescriptor:
        """
        Make a file public (issuing a share link) or private.

        Returns:
            The updated file, carrying its share link when public
        """
        response = await self._rest.request(
            'PATCH',
            f'/files/{file_id}/public',
            json={'is_public': is_public},
            headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to toggle file visibility")
        updated = _parse_file(response)
        logger.info(f"Toggled public sharing [file_id={file_id} is_public={updated.is_public}]")
        return updated

    async def folder_share_status(self, folder_id: str) -> FolderShareStatus:
        response = await self._rest.request_with_retry(
            'GET', f'/folders/{folder_id}/share/status', headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to load share information")
        return _parse(response, FolderShareStatus)

    async def share_folder(self, folder_id: str) -> ShareLink:
        """Create a public share link for a folder."""
        response = await self._rest.request(
            'POST', f'/folders/{folder_id}/share', headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to create folder share link")
        link = _parse(response, ShareLink)
        logger.info(f"Created folder share link [folder_id={folder_id}]")
        return link

    async def unshare_folder(self, folder_id: str) -> None:
        """Remove a folder's public share link."""
        response = await self._rest.request(
            'DELETE', f'/folders/{folder_id}/share', headers=self._auth_headers()
        )
        self._rest.raise_for_status(response, "Failed to remove share")
        logger.info(f"Removed folder share link [folder_id={folder_id}]")

    async def describe_public_file(self, token: str) -> FileDescriptor:
        """
        Build a descriptor for a publicly shared file from its response headers.

        No credentials are sent.

        Raises:
            NetworkError: If the link is unknown, inactive or unreachable
        """
        response = await self._rest.request('HEAD', f'/p/{token}')
        if response.status_code == 405:
            logger.debug(f"HEAD not allowed for public link, retrying with GET [token={token}]")
            # Headers only; the body is left unread.
            try:
                async with self._rest.stream(f'/p/{token}', {}) as streamed:
                    return _public_descriptor(token, streamed)
            except NetworkError as e:
                if e.status_code == 404:
                    raise NetworkError(EXPIRED_LINK_MESSAGE, status_code=404) from e
                raise
        return _public_descriptor(token, response)


def _public_descriptor(token: str, response: httpx.Response) -> FileDescriptor:
    if not response.is_success:
        raise NetworkError(
            EXPIRED_LINK_MESSAGE if response.status_code == 404
            else f"HTTP: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code
        )
    size = _parse_int(response.headers.get('Content-Length'))
    return FileDescriptor(
        id=token,
        original_filename=filename_from_disposition(
            response.headers.get('Content-Disposition'), 'unknown-file'
        ),
        mime_type=response.headers.get('Content-Type', 'application/octet-stream'),
        size_bytes=size or 0,
        is_public=True,
        share_link=ShareLink(token=token, is_active=True, download_count=0),
    )


def _parse(response: httpx.Response, model: Type[ModelT]) -> ModelT:
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        logger.warning(f"Unexpected response body from {response.request.url.path}: {e}")
        raise NetworkError("Invalid JSON response") from e


def _parse_file(response: httpx.Response) -> FileDescriptor:
    """Accept both ``{"file": {...}}`` and a bare file object."""
    try:
        data = response.json()
        if isinstance(data, dict) and isinstance(data.get('file'), dict):
            data = data['file']
        return FileDescriptor.model_validate(data)
    except ValueError as e:
        logger.warning(f"Unexpected response body from {response.request.url.path}: {e}")
        raise NetworkError("Invalid JSON response") from e


def _parse_int(raw: Optional[str]) -> Optional[int]:
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None
