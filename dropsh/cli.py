"""Main CLI Entry Point"""

import logging
import os
import tempfile
from typing import Callable

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory
from rich.console import Console

from .client import BackendClient
from .commands import CommandHandler
from .completion import DropshCompleter
from .config import Config
from .version import get_version_string

console = Console()
logger = logging.getLogger(__name__)


def prompt_fragments(handler: CommandHandler) -> FormattedText:
    """Prompt showing the local and remote current directories"""
    local = handler.local_cwd
    home = os.path.expanduser("~")
    if local == home or local.startswith(home + os.sep):
        local = "~" + local[len(home):]
    return FormattedText([
        ("ansigreen", local),
        ("", " "),
        ("ansired bold", "dropbox"),
        ("", ":"),
        ("ansiblue bold", handler.remote_cwd),
        ("", "$ "),
    ])


def repl_loop(handler: CommandHandler, read_line: Callable[[], str]) -> None:
    """Run commands until read_line raises EOFError.

    Ctrl-C while reading yields an empty line; Ctrl-C while a command runs
    abandons that command. Neither ends the session.
    """
    while True:
        try:
            line = read_line()
        except KeyboardInterrupt:
            console.print(highlight=False)
            continue
        except EOFError:
            console.print(highlight=False)
            break

        try:
            handler.execute(line)
        except KeyboardInterrupt:
            console.print(highlight=False)
            continue


def open_history(history_path: str) -> FileHistory:
    """History file with fallback to a temp file"""
    try:
        os.makedirs(os.path.dirname(history_path) or ".", exist_ok=True)
        with open(history_path, "a"):
            pass
        return FileHistory(history_path)
    except OSError:
        temp_history = tempfile.NamedTemporaryFile(
            mode="w", delete=False, suffix="_dropsh_history"
        )
        temp_history.close()
        console.print(
            f"[yellow]Warning: Cannot use {history_path}, using temporary history file[/yellow]",
            highlight=False,
        )
        return FileHistory(temp_history.name)


def start_repl(config: Config):
    """Start interactive REPL session"""
    client = BackendClient(config.backend)
    handler = CommandHandler(client, config=config)
    logger.debug("starting session with %r", config)

    session = PromptSession(
        history=open_history(config.history_file),
        auto_suggest=AutoSuggestFromHistory(),
        completer=DropshCompleter(handler),
        complete_while_typing=False,
    )
    console.print(f"[dim]{get_version_string()}[/dim]", highlight=False)
    console.print("type 'help' for help, Ctrl-D to exit", highlight=False)

    repl_loop(handler, lambda: session.prompt(prompt_fragments(handler)))


@click.command()
@click.version_option(version=get_version_string(), prog_name="dropsh")
@click.option(
    "--backend",
    default=None,
    help="Backend program (can also set via DROPSH_BACKEND environment variable)",
    show_default="dropbox_uploader.sh",
)
@click.option("--editor", default=None, help="Editor used by vi (default: $EDITOR or vi)")
@click.option("--history-file", default=None, help="Prompt history file (default: ~/.dropsh_history)")
@click.option("-v", "--verbose", is_flag=True, help="Log backend calls and cache activity")
def main(backend, editor, history_file, verbose):
    """dropsh - shell for a remote file store"""
    config = Config.from_args(
        backend=backend, editor=editor, history_file=history_file, verbose=verbose
    )
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    start_repl(config)


if __name__ == "__main__":
    main()
