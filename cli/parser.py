"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    DeleteCommand,
    ListCommand,
    RetryCommand,
    SyncCommand,
    UploadCommand,
    UseCommand,
    WaitCommand,
    WhoamiCommand,
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
    args = tokens[1:]

    if command_name == "upload":
        if not args:
            raise ParseError("upload requires at least one file")
        return UploadCommand(file_list=tuple(args))
    elif command_name in ("delete", "retry"):
        unit_ref = _parse_single(command_name, args, "<unit-id>")
        return DeleteCommand(unit_ref=unit_ref) if command_name == "delete" else RetryCommand(unit_ref=unit_ref)
    elif command_name == "use":
        return UseCommand(owner_id=_parse_single(command_name, args, "<owner-id>"))
    elif command_name in _NO_ARG_COMMANDS:
        if args:
            raise ParseError(f"{command_name} takes no arguments")
        return _NO_ARG_COMMANDS[command_name]()
    else:
        raise ParseError(f"Unknown command: {command_name}")


_NO_ARG_COMMANDS = {
    "list": ListCommand,
    "sync": SyncCommand,
    "wait": WaitCommand,
    "whoami": WhoamiCommand,
}


def _parse_single(command_name: str, args: list[str], placeholder: str) -> str:
    if len(args) != 1:
        raise ParseError(f"{command_name} requires exactly 1 argument: {placeholder}")
    return args[0]
