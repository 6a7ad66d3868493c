"""Backend CLI client

Every remote operation is delegated to an external program invoked as
``<backend> <verb> <args...>``. The client captures its output and turns a
non-zero exit status into :class:`BackendCommandFailed`.
"""

import logging
import subprocess
from typing import List, Optional

from .errors import BackendCommandFailed

logger = logging.getLogger(__name__)


class BackendClient:
    """Client for the backend program (dropbox_uploader.sh compatible)"""

    def __init__(self, program: str = "dropbox_uploader.sh"):
        """
        Initialize backend client.

        Args:
            program: Backend executable name or path
        """
        self.program = program

    def run(self, verb: str, *args: str) -> str:
        """Run one backend verb and return its captured stdout

        Raises:
            BackendCommandFailed: if the program is missing or exits non-zero
        """
        cmd: List[str] = [self.program, verb, *args]
        logger.debug("backend: %s", cmd)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
        except FileNotFoundError:
            raise BackendCommandFailed(verb, None, f"{self.program}: command not found")
        except OSError as e:
            raise BackendCommandFailed(verb, None, f"{self.program}: {e.strerror or e}")

        logger.debug("backend: %s exited with %d", verb, result.returncode)
        if result.returncode != 0:
            raise BackendCommandFailed(
                verb, result.returncode, (result.stdout or "") + (result.stderr or "")
            )
        return result.stdout

    def list(self, path: str) -> str:
        """Raw listing text for a remote directory"""
        return self.run("list", path)

    def download(self, remote_path: str, local_path: Optional[str] = None) -> str:
        """Download a remote file, optionally to an explicit local destination"""
        if local_path is None:
            return self.run("download", remote_path)
        return self.run("download", remote_path, local_path)

    def upload(self, local_path: str, remote_path: str) -> str:
        """Upload a local file; a trailing '/' on remote_path means 'into this directory'"""
        return self.run("upload", local_path, remote_path)

    def move(self, src: str, dest: str) -> str:
        """Move/rename a remote file or directory"""
        return self.run("move", src, dest)

    def delete(self, path: str) -> str:
        """Remove a remote file or directory"""
        return self.run("delete", path)

    def mkdir(self, path: str) -> str:
        """Create a remote directory"""
        return self.run("mkdir", path)
