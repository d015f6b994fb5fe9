"""Custom completer for the SecureVault CLI with local path completion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS

UPLOAD_OPTIONS = ("--folder", "--tags")


class VaultCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path and option completion for the 'upload' command
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on cursor position and context.

        For the first token, completes command names.
        For 'upload' arguments, completes options and paths on the local disk.
        """
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        if command != "upload":
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        previous = tokens[-1] if is_typing_new_token else (tokens[-2] if len(tokens) > 1 else "")
        if previous in UPLOAD_OPTIONS:
            return

        if current_word.startswith("-"):
            for option in UPLOAD_OPTIONS:
                if option.startswith(current_word):
                    yield Completion(option, start_position=-len(current_word))
            return

        already_typed = set(tokens[1:] if is_typing_new_token else tokens[1:-1])
        yield from self._complete_paths(current_word, already_typed)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str, exclude: set) -> Iterable[Completion]:
        """
        Complete local file and directory paths.

        Directories complete with a trailing slash so completion can continue
        into them; hidden entries are only offered once a '.' is typed.
        """
        if partial.endswith("/"):
            directory_text, prefix = partial, ""
        else:
            directory_text, _, prefix = partial.rpartition("/")
            if directory_text or partial.startswith("/"):
                directory_text += "/"

        directory = Path(directory_text).expanduser()
        if not directory.is_absolute():
            directory = Path.cwd() / directory
        if not directory.is_dir():
            return

        try:
            entries = sorted(directory.iterdir(), key=lambda item: item.name)
        except OSError:
            return

        for item in entries:
            if not item.name.startswith(prefix):
                continue
            if item.name.startswith(".") and not prefix.startswith("."):
                continue
            candidate = f"{directory_text}{item.name}"
            if item.is_dir():
                candidate += "/"
            elif candidate in exclude:
                continue
            yield Completion(candidate, start_position=-len(partial))
