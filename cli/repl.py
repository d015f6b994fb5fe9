"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from typing import Awaitable, Callable, Dict, Optional, Union

from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from common.logging_config import get_logger
from common.types import UploadStatus, UploadTask
from cli.commands import (
    VaultClients,
    handle_close,
    handle_dismiss,
    handle_download,
    handle_info,
    handle_list_uploads,
    handle_logout,
    handle_preview,
    handle_public_preview,
    handle_share_file,
    handle_share_folder,
    handle_token,
    handle_upload,
)
from cli.completer import VaultCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
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
from cli.parser import ParseError, parse_command
from cli.utils import format_upload_task
from vaultclient.exceptions import VaultError

logger = get_logger(__name__)

Handler = Callable[..., Union[str, Awaitable[str]]]

HANDLERS: Dict[type, Handler] = {
    TokenCommand: handle_token,
    LogoutCommand: handle_logout,
    InfoCommand: handle_info,
    PreviewCommand: handle_preview,
    PublicPreviewCommand: handle_public_preview,
    ClosePreviewCommand: handle_close,
    DownloadCommand: handle_download,
    UploadCommand: handle_upload,
    ListUploadsCommand: handle_list_uploads,
    DismissCommand: handle_dismiss,
    ShareFileCommand: handle_share_file,
    ShareFolderCommand: handle_share_folder,
}

PROGRESS_STEP = 25


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


async def dispatch_command(cmd_obj: CommandRequest, clients: VaultClients) -> str:
    """Dispatch parsed command to appropriate handler.

    Service errors are turned into an error line so one failed command
    never ends the session.
    """
    handler = HANDLERS.get(type(cmd_obj))
    if handler is None:
        return f"Unknown command type: {type(cmd_obj)}"
    try:
        result = handler(cmd_obj, clients)
        if not isinstance(result, str):
            result = await result
        return result
    except VaultError as e:
        logger.warning(f"Command failed [command={cmd_obj.command}]: {e}")
        return f"Error: {e.user_message}"


def print_ansi(text: str, output=None) -> None:
    """Print text containing ANSI colour codes through prompt_toolkit."""
    print_formatted_text(ANSI(text), output=output)


class UploadReporter:
    """Upload observer printing progress milestones and outcomes above the prompt."""

    def __init__(self, write: Optional[Callable[[str], None]] = None, step: int = PROGRESS_STEP):
        self._write = write or print_ansi
        self._step = step
        self._reported: Dict[str, int] = {}

    def on_change(self, task: UploadTask) -> None:
        if task.status is UploadStatus.UPLOADING:
            milestone = task.progress // self._step * self._step
            if milestone <= self._reported.get(task.task_id, 0):
                return
            self._reported[task.task_id] = milestone
            if milestone >= 100:
                return
        elif task.relocation_error is None and self._reported.get(task.task_id) == -1:
            return
        else:
            self._reported[task.task_id] = -1
        self._write(format_upload_task(task))

    def on_remove(self, task: UploadTask) -> None:
        self._reported.pop(task.task_id, None)

    def on_error(self, task: UploadTask, error: VaultError) -> None:
        logger.debug(f"Upload reported error [task_id={task.task_id}]: {error}")

    def attach(self, clients: VaultClients) -> None:
        clients.uploads.on_change = self.on_change
        clients.uploads.on_remove = self.on_remove
        clients.uploads.on_error = self.on_error


async def repl_loop(clients: VaultClients) -> None:
    """Start interactive REPL with prompt_toolkit."""
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=VaultCompleter(), history=history, style=STYLE
    )
    UploadReporter().attach(clients)

    clear_screen()
    show_welcome()

    # raw keeps the colour codes of result lines intact
    with patch_stdout(raw=True):
        while True:
            try:
                user_input = await session.prompt_async([("class:prompt", PROMPT_TEXT)])

                if not user_input.strip():
                    continue

                if user_input.strip() == "exit":
                    print("Goodbye!")
                    break

                if user_input.strip() == "help":
                    print(HELP_TEXT)
                    continue

                if user_input.strip() == "clear":
                    clear_screen()
                    show_welcome()
                    continue

                cmd_obj = parse_command(user_input)
                result = await dispatch_command(cmd_obj, clients)
                print(result)

            except ParseError as e:
                print(f"Error: {e}")
            except KeyboardInterrupt:
                continue
            except EOFError:
                print("\nGoodbye!")
                break
