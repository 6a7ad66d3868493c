"""Per-session cache of remote directory snapshots"""

import logging
from typing import Dict

from .listing import DirectorySnapshot, parse_listing

logger = logging.getLogger(__name__)


class DirectoryCache:
    """Absolute remote path -> DirectorySnapshot, filled on miss.

    The backend sends no change notifications, so every command that mutates
    the remote store must invalidate the directories it may have changed.
    Not safe to share between sessions.
    """

    def __init__(self, client):
        self.client = client
        self._listings: Dict[str, DirectorySnapshot] = {}

    def get(self, path: str) -> DirectorySnapshot:
        """Cached snapshot for path, fetching it from the backend on a miss"""
        snapshot = self._listings.get(path)
        if snapshot is not None:
            logger.debug("cache hit: %s", path)
            return snapshot
        logger.debug("cache miss: %s", path)
        return self.force_refresh(path)

    def force_refresh(self, path: str) -> DirectorySnapshot:
        """Re-fetch path and replace its entry.

        Backend or parse errors propagate and leave the existing entry alone.
        """
        snapshot = parse_listing(self.client.list(path))
        self._listings[path] = snapshot
        logger.debug("cache stored: %s (%d dirs, %d files)",
                     path, len(snapshot.directories), len(snapshot.file_sizes))
        return snapshot

    def invalidate(self, path: str) -> None:
        """Drop the entry for path; no-op if absent"""
        if self._listings.pop(path, None) is not None:
            logger.debug("cache invalidated: %s", path)

    def __contains__(self, path) -> bool:
        return path in self._listings

    def __len__(self) -> int:
        return len(self._listings)
