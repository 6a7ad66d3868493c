"""Local process execution"""

import logging
import subprocess
from typing import List

from .errors import LocalFilesystemError

logger = logging.getLogger(__name__)


class LocalRunner:
    """Runs local programs attached to the terminal.

    Calls block until the program exits; its stdio is inherited so editors
    and pagers work interactively.
    """

    def __init__(self, shell: str = "bash"):
        self.shell = shell

    def run(self, command_line: str) -> int:
        """Run a shell command line and return its exit status"""
        logger.debug("local: %s", command_line)
        return subprocess.call(command_line, shell=True)

    def run_args(self, args: List[str]) -> int:
        """Run a program with an explicit argument vector"""
        logger.debug("local: %s", args)
        try:
            return subprocess.call(args)
        except FileNotFoundError:
            raise LocalFilesystemError(f"{args[0]}: command not found")

    def interactive_shell(self) -> int:
        """Hand the terminal to an interactive local shell"""
        return self.run_args([self.shell])
