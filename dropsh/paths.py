"""Remote path resolution and existence checks"""

import posixpath

from .cache import DirectoryCache

ROOT = "/"


def normalize(path: str) -> str:
    """Normalize an absolute remote path: no '.', '..', duplicate or trailing slashes"""
    normalized = posixpath.normpath(path)
    # POSIX keeps a leading '//' as implementation-defined; collapse it
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    if normalized == "/.":
        normalized = ROOT
    return normalized


def parent(path: str) -> str:
    """Parent directory of an absolute path; the root is its own parent"""
    return posixpath.dirname(normalize(path))


class PathResolver:
    """Answers path questions for a session by consulting its DirectoryCache"""

    def __init__(self, cache: DirectoryCache):
        self.cache = cache

    @staticmethod
    def absolute(path: str, base_dir: str) -> str:
        """Resolve path against base_dir lexically, never touching the backend"""
        if not path:
            return normalize(base_dir)
        if path.startswith("/"):
            return normalize(path)
        return normalize(posixpath.join(base_dir, path))

    def _lookup(self, path: str, fresh: bool):
        directory, name = posixpath.split(normalize(path))
        if fresh:
            self.cache.invalidate(directory)
        return self.cache.get(directory), name

    def exists(self, path: str, fresh: bool = False) -> bool:
        """Whether an absolute path exists remotely.

        Args:
            path: Absolute remote path
            fresh: Re-fetch the parent listing instead of trusting the cache

        Raises:
            BackendCommandFailed, MalformedBackendOutput: from the parent listing
        """
        if normalize(path) == ROOT:
            return True
        snapshot, name = self._lookup(path, fresh)
        return snapshot.exists(name)

    def is_directory(self, path: str, fresh: bool = False) -> bool:
        """Whether an absolute path is a remote directory (see exists)"""
        if normalize(path) == ROOT:
            return True
        snapshot, name = self._lookup(path, fresh)
        return snapshot.is_dir(name)
