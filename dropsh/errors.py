"""Exceptions raised inside a dropsh session"""

from typing import Optional


class DropshError(Exception):
    """Base class for every error reported at the command boundary"""
    pass


class MalformedBackendOutput(DropshError):
    """The backend's list output did not follow the expected format"""

    def __init__(self, reason: str, raw: str = ""):
        self.reason = reason
        self.raw = raw
        message = reason
        if raw:
            message = f"{reason}:\n{raw.rstrip()}"
        super().__init__(message)


class BackendCommandFailed(DropshError):
    """The backend program exited with a non-zero status"""

    def __init__(self, verb: str, returncode: Optional[int], output: str = ""):
        self.verb = verb
        self.returncode = returncode
        self.output = output
        text = output.rstrip()
        if not text:
            text = f"{verb} failed with exit status {returncode}"
        super().__init__(text)


class UsageError(DropshError):
    """Wrong argument count or shape for a command"""
    pass


class PathError(DropshError):
    """Remote path does not exist or has the wrong type"""

    def __init__(self, command: str, path: str, reason: str):
        self.command = command
        self.path = path
        self.reason = reason
        super().__init__(f"{command}: {path}: {reason}")


class LocalFilesystemError(DropshError):
    """Local navigation failure"""
    pass
