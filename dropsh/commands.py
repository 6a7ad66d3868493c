"""REPL Command Handlers"""

import logging
import os
import shlex
from typing import List, Optional

from rich.console import Console

from .cache import DirectoryCache
from .client import BackendClient
from .config import Config
from .errors import DropshError, LocalFilesystemError, PathError, UsageError
from .listing import format_listing
from .local import LocalRunner
from .paths import ROOT, PathResolver, normalize, parent
from .pipeline import LOCAL_PLACEHOLDER, FetchRunPipeline, quote_literal, shell_template

logger = logging.getLogger(__name__)

# name -> (command template, options); "{}" is replaced by the local copy
VIEW_COMMANDS = {
    "cat": ("cat", {}),
    "less": ("less", {}),
    "exif": ("exif", {}),
    "eog": ("eog", {}),
    "exifdate": (
        "exif {} | grep Date.and.Time | head -1 | cut -f2 -d'|' | sed -e s/:/-/ -e s/:/-/",
        {"silent": True},
    ),
}

EXEC_SEPARATOR = ":::"
EXEC_USAGE = "Usage: exec [--silent] <command...> ::: <filename> [filename...]"
FORCE_FLAG = "-rf"


class CommandHandler:
    """Session state and command dispatch for one dropsh session.

    Tracks two current directories: the remote one, kept here, and the
    local one, which is the process working directory. Only cd and lcd
    change them.
    """

    def __init__(
        self,
        client: BackendClient,
        runner: Optional[LocalRunner] = None,
        config: Optional[Config] = None,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.client = client
        self.config = config or Config()
        self.runner = runner or LocalRunner(self.config.shell)
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.cache = DirectoryCache(client)
        self.resolver = PathResolver(self.cache)
        self.pipeline = FetchRunPipeline(
            client, self.resolver, self.runner, self.console, self.err_console
        )

        self.remote_cwd = ROOT
        self.previous_remote_cwd = ROOT
        self.previous_local_cwd: Optional[str] = None

        self.commands = {
            "help": self.cmd_help,
            "cd": self.cmd_cd,
            "pwd": self.cmd_pwd,
            "ls": self.cmd_ls,
            "lsfresh": self.cmd_lsfresh,
            "rm": self.cmd_rm,
            "mkdir": self.cmd_mkdir,
            "mv": self.cmd_mv,
            "get": self.cmd_get,
            "put": self.cmd_put,
            "lcd": self.cmd_lcd,
            "lls": self.cmd_lls,
            "lpwd": self.cmd_lpwd,
            "bash": self.cmd_bash,
            "vi": self.cmd_vi,
            "exec": self.cmd_exec,
            "grep": self.cmd_grep,
            "exit": self.cmd_exit,
        }
        for name, (template, options) in VIEW_COMMANDS.items():
            self.commands[name] = self._view_command(name, template, **options)

    @property
    def command_names(self) -> List[str]:
        return sorted(self.commands)

    @property
    def local_cwd(self) -> str:
        return os.getcwd()

    def execute(self, line: str) -> None:
        """Execute one input line. Errors are reported, never raised."""
        if not line.strip() or line.lstrip().startswith("#"):
            return

        try:
            parts = shlex.split(line)
        except ValueError as e:
            self._error(str(e))
            return
        if not parts or parts[0].startswith("#"):
            return

        cmd, args = parts[0], parts[1:]
        handler = self.commands.get(cmd)
        if handler is None:
            self._error(f"{cmd}: command not found")
            return

        try:
            handler(args)
        except DropshError as e:
            logger.debug("%s failed: %r", cmd, e)
            self._error(str(e))

    def abspath(self, path: str) -> str:
        return self.resolver.absolute(path, self.remote_cwd)

    def _error(self, message: str) -> None:
        self.err_console.print(f"dropsh: {message}", markup=False, highlight=False)

    def _echo(self, output: str) -> None:
        if output:
            self.console.print(output, end="" if output.endswith("\n") else "\n",
                               markup=False, highlight=False)

    def _invalidate(self, *paths: str) -> None:
        for path in paths:
            self.cache.invalidate(normalize(path))

    def cmd_help(self, args: List[str]) -> None:
        """Show help information"""
        commands_help = [
            ("Remote Commands", ""),
            ("  cd [path|-]", "Change remote directory (- = previous)"),
            ("  pwd", "Print remote directory"),
            ("  ls [path]", "List remote directory (cached)"),
            ("  lsfresh [path]", "List remote directory, bypassing the cache"),
            ("  mkdir <dir>", "Create remote directory"),
            ("  rm [-rf] <path>", "Remove remote file (-rf for directories)"),
            ("  mv <src> <dest>", "Move/rename remote file or directory"),
            ("  get <remote> [local]", "Download remote file"),
            ("  put <local> [remote]", "Upload local file (default: into remote cwd)"),
            ("", ""),
            ("Local Commands", ""),
            ("  lcd [dir|-]", "Change local directory"),
            ("  lls [args...]", "List local directory"),
            ("  lpwd", "Print local directory"),
            ("  bash", "Start an interactive local shell"),
            ("", ""),
            ("Run Local Tools On Remote Files", ""),
            ("  vi <file>", "Edit remote file (created if missing)"),
            ("  grep <regex> <file>", "Search remote file"),
            ("  exec [--silent] <cmd...> ::: <file...>", "Run cmd per file; {} = local copy, {{}} = remote path"),
        ]
        commands_help.extend(
            (f"  {name} <file>", f"Fetch a copy and run {template.split()[0]} on it")
            for name, (template, _) in VIEW_COMMANDS.items()
        )
        commands_help.extend([
            ("", ""),
            ("Lines starting with # are ignored. Ctrl-D exits.", ""),
        ])

        self.console.print("\ndropsh commands\n", highlight=False)
        for cmd, desc in commands_help:
            if not cmd and not desc:
                self.console.print(highlight=False)
            elif not desc:
                self.console.print(f"[bold]{cmd}[/bold]", highlight=False)
            else:
                self.console.print(f"{cmd:<42} {desc}", markup=False, highlight=False)
        self.console.print(highlight=False)

    def cmd_cd(self, args: List[str]) -> None:
        """Change remote directory"""
        if len(args) > 1:
            raise UsageError("cd: too many arguments")
        path = args[0] if args else ROOT
        target = self.previous_remote_cwd if path == "-" else self.abspath(path)

        if not self.resolver.exists(target):
            raise PathError("cd", path, "No such file or directory")
        if not self.resolver.is_directory(target):
            raise PathError("cd", path, "Not a directory")
        self.previous_remote_cwd, self.remote_cwd = self.remote_cwd, target

    def cmd_pwd(self, args: List[str]) -> None:
        """Print remote directory"""
        self.console.print(self.remote_cwd, markup=False, highlight=False)

    def cmd_ls(self, args: List[str], fresh: bool = False) -> None:
        """List remote directory contents"""
        if len(args) > 1:
            raise UsageError("ls: too many arguments")
        path = self.abspath(args[0]) if args else self.remote_cwd
        if fresh:
            snapshot = self.cache.force_refresh(path)
        else:
            snapshot = self.cache.get(path)
        for line in format_listing(snapshot):
            self.console.print(line, highlight=False)

    def cmd_lsfresh(self, args: List[str]) -> None:
        """List remote directory contents, bypassing the cache"""
        self.cmd_ls(args, fresh=True)

    def cmd_rm(self, args: List[str]) -> None:
        """Remove a remote file; directories need -rf"""
        force = FORCE_FLAG in args
        paths = [arg for arg in args if arg != FORCE_FLAG]
        if len(paths) != 1:
            raise UsageError("Usage: rm [-rf] <path>")
        path = self.abspath(paths[0])
        if path == ROOT:
            raise PathError("rm", paths[0], "Refusing to remove the root directory")

        if not self.resolver.exists(path, fresh=True):
            raise PathError("rm", paths[0], "No such file or directory")
        is_dir = self.resolver.is_directory(path)
        if is_dir and not force:
            raise PathError("rm", paths[0], f"Is a directory (use rm {FORCE_FLAG})")

        try:
            output = self.client.delete(path)
        finally:
            self._invalidate(parent(path), *([path] if is_dir else []))
        self._echo(output)

    def cmd_mkdir(self, args: List[str]) -> None:
        """Create a remote directory"""
        if len(args) != 1:
            raise UsageError("Usage: mkdir <directory>")
        path = self.abspath(args[0])
        try:
            output = self.client.mkdir(path)
        finally:
            self._invalidate(parent(path))
        self._echo(output)

    def cmd_mv(self, args: List[str]) -> None:
        """Move/rename a remote file or directory"""
        if len(args) != 2:
            raise UsageError("Usage: mv <src> <dest>")
        src, dest = (self.abspath(arg) for arg in args)
        try:
            output = self.client.move(src, dest)
        finally:
            # Either path may be a directory; drop both and their parents
            self._invalidate(parent(src), src, dest, parent(dest))
        self._echo(output)

    def cmd_get(self, args: List[str]) -> None:
        """Download a remote file"""
        if len(args) not in (1, 2):
            raise UsageError("Usage: get <filename> [local_filename]")
        src = self.abspath(args[0])
        self._echo(self.client.download(src, args[1] if len(args) == 2 else None))

    def cmd_put(self, args: List[str]) -> None:
        """Upload a local file"""
        if len(args) not in (1, 2):
            raise UsageError("Usage: put <local_filename> [filename]")
        local = args[0]
        target = args[1] if len(args) == 2 else ""
        dest = self.abspath(target)
        if not target or target.endswith("/"):
            # Trailing slash tells the backend to upload into the directory
            dest = dest.rstrip("/") + "/"
        try:
            output = self.client.upload(local, dest)
        finally:
            self._invalidate(dest, parent(dest))
        self._echo(output)

    def cmd_lcd(self, args: List[str]) -> None:
        """Change local directory"""
        if len(args) > 1:
            raise UsageError("lcd: too many arguments")
        target = args[0] if args else os.path.expanduser("~")
        if target == "-":
            if self.previous_local_cwd is None:
                raise LocalFilesystemError("lcd: OLDPWD not set")
            target = self.previous_local_cwd

        current = os.getcwd()
        try:
            os.chdir(target)
        except FileNotFoundError:
            raise LocalFilesystemError(f"lcd: {target}: No such file or directory")
        except NotADirectoryError:
            raise LocalFilesystemError(f"lcd: {target}: Not a directory")
        except PermissionError:
            raise LocalFilesystemError(f"lcd: {target}: Permission denied")
        except OSError as e:
            raise LocalFilesystemError(f"lcd: {target}: {e.strerror or e}")
        self.previous_local_cwd = current

    def cmd_lls(self, args: List[str]) -> None:
        """List local directory"""
        self.runner.run_args(["ls", *args])

    def cmd_lpwd(self, args: List[str]) -> None:
        """Print local directory"""
        self.console.print(self.local_cwd, markup=False, highlight=False)

    def cmd_bash(self, args: List[str]) -> None:
        """Start an interactive local shell"""
        if args:
            raise UsageError("Usage: bash")
        self.runner.interactive_shell()

    def cmd_vi(self, args: List[str]) -> None:
        """Edit a remote file locally and upload it afterwards"""
        if len(args) != 1:
            raise UsageError("Usage: vi <filename>")
        path = self.abspath(args[0])
        if self.resolver.is_directory(path, fresh=True):
            raise PathError("vi", args[0], "Is a directory")
        self.pipeline.run_with_local_copy(path, self.config.editor, write_back=True)

    def cmd_exec(self, args: List[str]) -> None:
        """Run a local command over a copy of each listed remote file"""
        silent = bool(args) and args[0] == "--silent"
        if silent:
            args = args[1:]
        if EXEC_SEPARATOR not in args:
            raise UsageError(EXEC_USAGE)
        idx = args.index(EXEC_SEPARATOR)
        tokens, filenames = args[:idx], args[idx + 1:]
        if not tokens or not filenames:
            raise UsageError(EXEC_USAGE)

        template = shell_template(tokens)
        for filename in filenames:
            self.pipeline.run_with_local_copy(self.abspath(filename), template, silent=silent)

    def cmd_grep(self, args: List[str]) -> None:
        """Search a remote file with a regex"""
        if len(args) != 2:
            raise UsageError("Usage: grep <regex> <filename>")
        regex, filename = args
        template = f"grep {quote_literal(regex)} {LOCAL_PLACEHOLDER}"
        self.pipeline.run_with_local_copy(self.abspath(filename), template, silent=True)

    def cmd_exit(self, args: List[str]) -> None:
        """Refuse to exit; only end-of-input ends the session"""
        raise UsageError("Use Ctrl-D to exit (safety first!)")

    def _view_command(self, name: str, template: str, silent: bool = False):
        def handler(args: List[str]) -> None:
            if len(args) != 1:
                raise UsageError(f"Usage: {name} <filename>")
            self.pipeline.run_with_local_copy(self.abspath(args[0]), template, silent=silent)

        handler.__doc__ = f"Run '{template}' on a local copy of a remote file"
        return handler
