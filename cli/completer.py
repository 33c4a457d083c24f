"""Custom completer for the filedock CLI with path and unit-id completion."""

from pathlib import Path
from typing import Iterable, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS, UNIT_COMMANDS
from ingestion.registry import FileUnitRegistry


class FiledockCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path completion for the 'upload' command
    - Unit id completion for 'delete' and 'retry' from the registry
    """

    def __init__(self, registry: Optional[FileUnitRegistry] = None, base_dir: Optional[Path] = None):
        self.registry = registry
        self.base_dir = base_dir

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]

        if command == "upload":
            already_typed = set(tokens[1:] if is_typing_new_token else tokens[1:-1])
            yield from self._complete_paths(current_word, already_typed)
        elif command in UNIT_COMMANDS and len(tokens) - (0 if is_typing_new_token else 1) == 1:
            yield from self._complete_unit_ids(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str, exclude: set) -> Iterable[Completion]:
        """
        Complete file and directory paths relative to the working directory.

        Directories complete with a trailing slash so the user can descend.
        """
        base_dir = self.base_dir or Path.cwd()
        head, _, name_prefix = partial.rpartition("/")
        directory = base_dir / head if head else base_dir
        if partial.startswith("/"):
            directory = Path(head or "/")

        if not directory.is_dir():
            return

        prefix = f"{head}/" if head or partial.startswith("/") else ""
        for item in sorted(directory.iterdir()):
            if item.name.startswith(".") and not name_prefix.startswith("."):
                continue
            if not item.name.startswith(name_prefix):
                continue
            candidate = f"{prefix}{item.name}" + ("/" if item.is_dir() else "")
            if candidate in exclude:
                continue
            yield Completion(candidate, start_position=-len(partial))

    def _complete_unit_ids(self, partial: str) -> Iterable[Completion]:
        if self.registry is None:
            return
        for unit in self.registry.snapshot():
            if unit.id.startswith(partial):
                yield Completion(unit.id, start_position=-len(partial), display_meta=unit.name)
