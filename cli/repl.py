"""REPL with prompt_toolkit for user interaction."""

import os
import sys

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from cli.commands import (
    handle_delete,
    handle_list,
    handle_retry,
    handle_sync,
    handle_upload,
    handle_use,
    handle_wait,
    handle_whoami,
)
from cli.completer import FiledockCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    DeleteCommand,
    ListCommand,
    RetryCommand,
    SyncCommand,
    UploadCommand,
    UseCommand,
    WaitCommand,
    WhoamiCommand,
)
from cli.parser import ParseError, parse_command
from cli.utils import ProgressPrinter
from common.config import Config
from common.logging_config import get_logger
from ingestion.engine import IngestionEngine

logger = get_logger(__name__)


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


async def dispatch_command(cmd_obj, engine: IngestionEngine, config: Config) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        return handle_upload(cmd_obj, engine)
    elif isinstance(cmd_obj, ListCommand):
        return handle_list(cmd_obj, engine)
    elif isinstance(cmd_obj, DeleteCommand):
        return handle_delete(cmd_obj, engine)
    elif isinstance(cmd_obj, RetryCommand):
        return handle_retry(cmd_obj, engine)
    elif isinstance(cmd_obj, SyncCommand):
        return await handle_sync(cmd_obj, engine)
    elif isinstance(cmd_obj, WaitCommand):
        return await handle_wait(cmd_obj, engine)
    elif isinstance(cmd_obj, WhoamiCommand):
        return handle_whoami(cmd_obj, config)
    elif isinstance(cmd_obj, UseCommand):
        return await handle_use(cmd_obj, engine, config)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


async def repl_loop(engine: IngestionEngine, config: Config) -> None:
    """Start interactive REPL; uploads keep running while the prompt waits for input."""
    unsubscribe = engine.registry.subscribe(ProgressPrinter(engine.registry))
    session: PromptSession = PromptSession(
        completer=FiledockCompleter(engine.registry),
        history=InMemoryHistory(),
        style=STYLE,
    )

    clear_screen()
    show_welcome()

    loaded = await engine.reconcile()
    if config.get_owner_id() is None:
        print("No owner set. Run: use <owner-id>\n")
    else:
        print(f"Loaded {loaded} stored file(s).\n")

    try:
        with patch_stdout():
            while True:
                try:
                    user_input = await session.prompt_async([("class:prompt", PROMPT_TEXT)])

                    if not user_input.strip():
                        continue

                    if user_input.strip() == "exit":
                        break

                    if user_input.strip() == "help":
                        print(HELP_TEXT)
                        continue

                    if user_input.strip() == "clear":
                        clear_screen()
                        show_welcome()
                        continue

                    cmd_obj = parse_command(user_input)
                    result = await dispatch_command(cmd_obj, engine, config)
                    print(result)

                except ParseError as e:
                    print(f"Error: {e}")
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    break
    finally:
        if engine.in_flight:
            print(f"Waiting for {engine.in_flight} upload(s) to finish...")
        unsubscribe()
        await engine.close()
        print("Goodbye!")
