"""Command parser for CLI input."""

import shlex
from typing import Callable, Dict, Optional

from cli.models import (
    ClosePreviewCommand,
    CommandRequest,
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


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0].lower()
    parser = _PARSERS.get(command_name)
    if parser is None:
        raise ParseError(f"Unknown command: {tokens[0]}")
    return parser(tokens[1:])


def _single_argument(name: str, placeholder: str) -> Callable[[list[str]], str]:
    def take(args: list[str]) -> str:
        if len(args) != 1:
            raise ParseError(f"{name} requires exactly 1 argument: <{placeholder}>")
        return args[0]
    return take


def _no_arguments(name: str, args: list[str]) -> None:
    if args:
        raise ParseError(f"{name} takes no arguments")


def _parse_token(args: list[str]) -> TokenCommand:
    """Parse 'token <bearer-token>' command."""
    token = _single_argument("token", "bearer-token")(args)
    if token.lower() == "bearer":
        raise ParseError("token expects the raw token, without the 'Bearer' prefix")
    return TokenCommand(token=token)


def _parse_logout(args: list[str]) -> LogoutCommand:
    _no_arguments("logout", args)
    return LogoutCommand()


def _parse_info(args: list[str]) -> InfoCommand:
    return InfoCommand(file_id=_single_argument("info", "file-id")(args))


def _parse_preview(args: list[str]) -> PreviewCommand:
    return PreviewCommand(file_id=_single_argument("preview", "file-id")(args))


def _parse_preview_public(args: list[str]) -> PublicPreviewCommand:
    return PublicPreviewCommand(share_token=_single_argument("preview-public", "share-token")(args))


def _parse_close(args: list[str]) -> ClosePreviewCommand:
    _no_arguments("close", args)
    return ClosePreviewCommand()


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <file-id> [output_dir]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <file-id> [output_dir]")

    file_id = args[0]
    output_dir = args[1] if len(args) > 1 else None

    return DownloadCommand(file_id=file_id, output_dir=output_dir)


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload [--folder ID] [--tags a,b] files...' command.

    Options may appear anywhere; everything else is a file path. A
    literal '--' ends option parsing.
    """
    file_list = []
    tag_list: list[str] = []
    folder_id: Optional[str] = None
    options_done = False

    index = 0
    while index < len(args):
        arg = args[index]
        if not options_done and arg == "--":
            options_done = True
        elif not options_done and arg in ("--folder", "--tags"):
            if index + 1 >= len(args):
                raise ParseError(f"{arg} requires a value")
            value = args[index + 1]
            if arg == "--folder":
                if folder_id is not None:
                    raise ParseError("--folder given more than once")
                folder_id = value
            else:
                tag_list.extend(tag.strip() for tag in value.split(",") if tag.strip())
            index += 1
        elif not options_done and arg.startswith("--folder="):
            folder_id = arg.split("=", 1)[1]
        elif not options_done and arg.startswith("--tags="):
            tag_list.extend(tag.strip() for tag in arg.split("=", 1)[1].split(",") if tag.strip())
        else:
            file_list.append(arg)
        index += 1

    if not file_list:
        raise ParseError("upload requires at least one file")
    if folder_id is not None and not folder_id:
        raise ParseError("--folder requires a value")

    return UploadCommand(file_list=tuple(file_list), tag_list=tuple(tag_list), folder_id=folder_id)


def _parse_uploads(args: list[str]) -> ListUploadsCommand:
    _no_arguments("uploads", args)
    return ListUploadsCommand()


def _parse_dismiss(args: list[str]) -> DismissCommand:
    return DismissCommand(task_id=_single_argument("dismiss", "upload-id")(args))


def _parse_share(args: list[str]) -> ShareFileCommand:
    return ShareFileCommand(file_id=_single_argument("share", "file-id")(args), public=True)


def _parse_unshare(args: list[str]) -> ShareFileCommand:
    return ShareFileCommand(file_id=_single_argument("unshare", "file-id")(args), public=False)


def _parse_share_folder(args: list[str]) -> ShareFolderCommand:
    return ShareFolderCommand(folder_id=_single_argument("share-folder", "folder-id")(args), public=True)


def _parse_unshare_folder(args: list[str]) -> ShareFolderCommand:
    return ShareFolderCommand(folder_id=_single_argument("unshare-folder", "folder-id")(args), public=False)


_PARSERS: Dict[str, Callable[[list[str]], CommandRequest]] = {
    "token": _parse_token,
    "logout": _parse_logout,
    "info": _parse_info,
    "preview": _parse_preview,
    "preview-public": _parse_preview_public,
    "close": _parse_close,
    "download": _parse_download,
    "upload": _parse_upload,
    "uploads": _parse_uploads,
    "dismiss": _parse_dismiss,
    "share": _parse_share,
    "unshare": _parse_unshare,
    "share-folder": _parse_share_folder,
    "unshare-folder": _parse_unshare_folder,
}
