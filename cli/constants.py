"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "list", "delete", "retry", "sync", "wait", "whoami", "use", "clear", "exit", "help"]

UNIT_COMMANDS = ("delete", "retry")

STYLE = Style.from_dict(
    {
        "prompt": "#2E9BF0 bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;155;240m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
  ___ _ _         _         _
 | __(_) |___  __| |___  __| |__
 | _|| | / -_)/ _` / _ \\/ _| / /
 |_| |_|_\\___|\\__,_\\___/\\__|_\\_\\
{RESET}"""

WELCOME_TITLE = "filedock - upload files and keep track of them"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "filedock> "

HELP_TEXT = """Available commands:
  upload <path> [<path> ...]    Upload files (each upload runs concurrently)
  list                          Show tracked files, newest first
  delete <unit-id>              Remove a file from the list and the metadata store
  retry <unit-id>               Upload a failed file again
  sync                          Reload the list from the metadata store
  wait                          Wait until running uploads finish
  whoami                        Show the current owner
  use <owner-id>                Switch owner and reload the list
  clear                         Clear screen and redisplay welcome message
  help                          Show this help
  exit                          Exit REPL (waits for running uploads)

Unit ids may be shortened to any unique prefix.
Examples:
  upload report.pdf photos/cat.png
  list
  retry tmp_3f2a
  delete 8c1e"""

PROGRESS_STEP_PERCENT = 25
ID_DISPLAY_LENGTH = 12
