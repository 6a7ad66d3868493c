"""Fetch a remote file into scratch space, run a local command over it"""

import logging
import os
import posixpath
import re
import shlex
import tempfile
from typing import List

from rich.console import Console

from .errors import BackendCommandFailed
from .paths import parent

logger = logging.getLogger(__name__)

LOCAL_PLACEHOLDER = "{}"
REMOTE_PLACEHOLDER = "{{}}"
PLACEHOLDER_RE = re.compile(r"\{\{\}\}|\{\}")


def render_command(template: str, local_path: str, remote_path: str) -> str:
    """Substitute escaped paths into a shell command template.

    ``{}`` becomes the local scratch path and ``{{}}`` the original remote
    path. A template with neither gets ``{}`` appended as its last argument.
    """
    if LOCAL_PLACEHOLDER not in template:
        template = f"{template} {LOCAL_PLACEHOLDER}"

    def substitute(match):
        if match.group(0) == REMOTE_PLACEHOLDER:
            return shlex.quote(remote_path)
        return shlex.quote(local_path)

    return PLACEHOLDER_RE.sub(substitute, template)


def shell_template(tokens: List[str]) -> str:
    """Join already-split tokens back into a template, quoting everything
    except the placeholders so they survive as substitution points"""
    words = []
    for token in tokens:
        pieces = PLACEHOLDER_RE.split(token)
        markers = PLACEHOLDER_RE.findall(token)
        word = shlex.quote(pieces[0]) if pieces[0] or not markers else ""
        for marker, piece in zip(markers, pieces[1:]):
            word += marker
            if piece:
                word += shlex.quote(piece)
        words.append(word)
    return " ".join(words)


def quote_literal(word: str) -> str:
    """Shell-quote word so render_command leaves any braces in it alone"""
    # Inside single quotes '' is an empty concatenation: '{''}' is still {}
    return shlex.quote(word).replace(LOCAL_PLACEHOLDER, "{''}")


class FetchRunPipeline:
    """Runs local commands over private copies of remote files.

    The scratch directory holding the copy is removed on every exit path,
    including a failed fetch or an exception from the local command.
    """

    def __init__(self, client, resolver, runner, console: Console = None, err_console: Console = None):
        self.client = client
        self.resolver = resolver
        self.runner = runner
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def run_with_local_copy(
        self,
        remote_path: str,
        template: str,
        silent: bool = False,
        write_back: bool = False,
    ) -> int:
        """Fetch remote_path, run template over the copy, optionally upload it back.

        Args:
            remote_path: Absolute remote path
            template: Shell command template (see render_command)
            silent: Suppress backend output
            write_back: Upload the copy to remote_path after the command exits,
                whether or not the remote file existed before

        Returns:
            Exit status of the local command
        """
        with tempfile.TemporaryDirectory(prefix="dropsh_") as scratch:
            local_path = os.path.join(scratch, posixpath.basename(remote_path) or "file")
            logger.debug("scratch copy of %s at %s", remote_path, local_path)
            command = render_command(template, local_path, remote_path)

            if not write_back:
                self._fetch(remote_path, local_path, silent)
                return self.runner.run(command)

            if self.resolver.exists(remote_path):
                self._fetch(remote_path, local_path, silent)
            status = self.runner.run(command)
            try:
                output = self.client.upload(local_path, remote_path)
            finally:
                self.resolver.cache.invalidate(parent(remote_path))
            if not silent:
                self._echo(output)
            return status

    def _fetch(self, remote_path: str, local_path: str, silent: bool) -> None:
        # A failed fetch is reported and the command still runs on the missing file
        try:
            output = self.client.download(remote_path, local_path)
        except BackendCommandFailed as e:
            logger.debug("fetch of %s failed: %s", remote_path, e)
            self.err_console.print(f"dropsh: {e}", markup=False, highlight=False)
            return
        if not silent:
            self._echo(output)

    def _echo(self, output: str) -> None:
        if output:
            self.console.print(output, end="" if output.endswith("\n") else "\n",
                               markup=False, highlight=False)
