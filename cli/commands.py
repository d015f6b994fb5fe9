"""Command handler functions for CLI operations."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from common.logging_config import get_logger
from cli.config import Config
from cli.constants import CONFIG_DIR, CONFIG_FILENAME, TEXT_PREVIEW_MAX_LINES
from cli.models import (
    ClosePreviewCommand,
    DismissCommand,
    DownloadCommand,
    InfoCommand,
    ListUploadsCommand,
    LogoutCommand,
    PreviewCommand,
    PublicPreviewCommand,
    ShareFileCommand,
    ShareFolderCommand,
    TokenCommand,
    UploadCommand,
)
from cli.utils import format_file_size, format_upload_task
from vaultclient.config import Settings
from vaultclient.downloads import DownloadTrigger
from vaultclient.file_kinds import PreviewKind, describe_file, is_code_file
from vaultclient.preview import NoPreview, NoPreviewReason, PreviewError, PreviewResolver, PreviewResult
from vaultclient.schemas import FileDescriptor
from vaultclient.sharing import ShareService
from vaultclient.transport import RestClient
from vaultclient.uploads import UploadCoordinator

logger = get_logger(__name__)


@dataclass
class VaultClients:
    """Everything one REPL session talks to. The stored config doubles as the credential provider."""
    config: Config
    rest: RestClient
    share: ShareService
    resolver: PreviewResolver
    uploads: UploadCoordinator
    downloads: DownloadTrigger

    async def aclose(self) -> None:
        await self.uploads.aclose()
        await self.resolver.aclose()
        await self.rest.aclose()


def default_config_path() -> Path:
    return Path.home() / CONFIG_DIR / CONFIG_FILENAME


def create_clients(
    config: Config,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> VaultClients:
    """
    Wire the service objects for one session.

    Args:
        config: CLI configuration, also used as credential provider
        settings: Endpoint settings (read from the environment if None)
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Raises:
        ConfigurationError: If required settings are missing
    """
    if settings is None:
        settings = Settings.from_env(overrides=config.settings_overrides())
    rest = RestClient(settings, transport=transport, **config.get_retry_config())
    logger.debug(f"Created session clients [rest_base_url={settings.rest_base_url}]")
    return VaultClients(
        config=config,
        rest=rest,
        share=ShareService(rest, config),
        resolver=PreviewResolver(rest, config),
        uploads=UploadCoordinator(rest, config, max_concurrent=settings.max_concurrent_uploads),
        downloads=DownloadTrigger(rest, config, config.get_download_dir()),
    )


def handle_token(cmd: TokenCommand, clients: VaultClients) -> str:
    """
    Handle 'token' command.

    Args:
        cmd: TokenCommand with the bearer token
        clients: Session clients

    Returns:
        Confirmation message
    """
    clients.config.set_token(cmd.token)
    logger.info("Stored bearer token")
    return "Token saved. Authenticated requests will use it from now on."


def handle_logout(cmd: LogoutCommand, clients: VaultClients) -> str:
    clients.resolver.close()
    clients.config.set_token(None)
    logger.info("Cleared bearer token")
    return "Logged out."


async def handle_info(cmd: InfoCommand, clients: VaultClients) -> str:
    """
    Handle 'info' command.

    Returns:
        Formatted file metadata
    """
    file = await clients.share.get_file(cmd.file_id)
    return format_file_info(file, clients.share)


def format_file_info(file: FileDescriptor, share: ShareService) -> str:
    category = describe_file(file.mime_type, file.original_filename)
    lines = [
        f"{file.original_filename}",
        f"  id:       {file.id}",
        f"  type:     {file.mime_type} ({category.value})",
        f"  size:     {format_file_size(file.size_bytes)}",
        f"  folder:   {file.folder_id or '(root)'}",
        f"  public:   {'yes' if file.is_public else 'no'}",
    ]
    if file.tags:
        lines.append(f"  tags:     {', '.join(file.tags)}")
    if file.public_token:
        lines.append(f"  link:     {share.file_share_url(file.public_token)}")
    return "\n".join(lines)


async def handle_preview(cmd: PreviewCommand, clients: VaultClients) -> str:
    """
    Handle 'preview' command.

    Looks up the file's metadata and resolves its preview. Only the newest
    preview is kept; the previous one is released first.
    """
    file = await clients.share.get_file(cmd.file_id)
    result = await clients.resolver.resolve(file)
    return format_preview(result, file, clients.resolver)


async def handle_public_preview(cmd: PublicPreviewCommand, clients: VaultClients) -> str:
    file = await clients.share.describe_public_file(cmd.share_token)
    result = await clients.resolver.resolve(file, is_public=True)
    return format_preview(result, file, clients.resolver)


def format_preview(result: PreviewResult, file: FileDescriptor, resolver: PreviewResolver) -> str:
    """Render a preview outcome as terminal text."""
    if isinstance(result, PreviewError):
        return f"Error: {result.message}"
    if isinstance(result, NoPreview):
        if result.reason is NoPreviewReason.UNSUPPORTED:
            return (
                f"No preview available for {file.original_filename} ({file.mime_type}).\n"
                f"Use: download {file.id}"
            )
        return f"Preview of {file.original_filename} was {result.reason.value}."

    header = (
        f"Preview ready: {result.filename} "
        f"({result.kind.value}, {format_file_size(result.size)}, {result.renderer} viewer)\n"
        f"  {result.url}"
    )
    if result.kind is not PreviewKind.TEXT:
        return header

    lines = resolver.read_text(result).splitlines()
    shown = lines[:TEXT_PREVIEW_MAX_LINES]
    label = "code" if is_code_file(result.filename, result.mime_type) else "text"
    body = "\n".join(f"{number:4d} | {line}" for number, line in enumerate(shown, start=1))
    footer = f"\n  ... {len(lines) - len(shown)} more line(s)" if len(lines) > len(shown) else ""
    return f"{header}\n--- {label} ---\n{body}{footer}"


def handle_close(cmd: ClosePreviewCommand, clients: VaultClients) -> str:
    if clients.resolver.target_id is None:
        return "No preview open."
    clients.resolver.close()
    return "Preview closed."


async def handle_download(cmd: DownloadCommand, clients: VaultClients) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with file id and optional output directory
        clients: Session clients

    Returns:
        Success or error message with the saved path
    """
    logger.info(f"Executing download command [file_id={cmd.file_id} output_dir={cmd.output_dir}]")
    file = await clients.share.get_file(cmd.file_id)
    output_dir = Path(cmd.output_dir).expanduser() if cmd.output_dir else None
    result = await clients.downloads.download(file, output_dir)
    if result.ok:
        return f"{result.message}\n  saved to {result.path} ({format_file_size(result.size)})"
    return result.message


def handle_upload(cmd: UploadCommand, clients: VaultClients) -> str:
    """
    Handle 'upload' command.

    Uploads run in the background; progress is reported by the session's
    upload observers and by the 'uploads' command.
    """
    logger.info(
        f"Executing upload command: {len(cmd.file_list)} files "
        f"[folder_id={cmd.folder_id} tags={list(cmd.tag_list)}]"
    )
    paths = [Path(name).expanduser() for name in cmd.file_list]
    tasks = clients.uploads.enqueue(paths, destination_folder_id=cmd.folder_id, tags=cmd.tag_list)
    return "\n".join(["Started upload(s):"] + [f"  {format_upload_task(task)}" for task in tasks])


def handle_list_uploads(cmd: ListUploadsCommand, clients: VaultClients) -> str:
    active = clients.uploads.active
    if not active:
        return "No active uploads."
    return "\n".join(format_upload_task(task) for task in active)


def handle_dismiss(cmd: DismissCommand, clients: VaultClients) -> str:
    if clients.uploads.dismiss(cmd.task_id):
        return f"Dismissed {cmd.task_id}."
    return f"Error: no active upload with id {cmd.task_id}"


async def handle_share_file(cmd: ShareFileCommand, clients: VaultClients) -> str:
    """
    Handle 'share' and 'unshare' commands.

    Returns:
        The public link when sharing, a confirmation otherwise
    """
    file = await clients.share.toggle_public(cmd.file_id, cmd.public)
    if not cmd.public:
        return f"{file.original_filename} is now private."
    if file.public_token:
        return f"{file.original_filename} is now public: {clients.share.file_share_url(file.public_token)}"
    return f"{file.original_filename} is now public."


async def handle_share_folder(cmd: ShareFolderCommand, clients: VaultClients) -> str:
    """
    Handle 'share-folder' and 'unshare-folder' commands.

    Sharing an already shared folder prints its existing link.
    """
    if not cmd.public:
        await clients.share.unshare_folder(cmd.folder_id)
        return f"Share link for folder {cmd.folder_id} removed."

    status = await clients.share.folder_share_status(cmd.folder_id)
    if status.has_share_link and status.token:
        token = status.token
    else:
        token = (await clients.share.share_folder(cmd.folder_id)).token
    return f"Folder {cmd.folder_id} is shared: {clients.share.folder_share_url(token)}"
