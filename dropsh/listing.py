"""Directory listing parser and renderer"""

import re
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from rich.markup import escape

from .errors import MalformedBackendOutput

# ` > Listing "/photos"... DONE`
LISTING_HEADER_RE = re.compile(r'^ > Listing ".*"\.\.\. DONE$')
# ` [D] 0 name with spaces` / ` [F] 1024 name`
LISTING_ENTRY_RE = re.compile(r"^ \[([DF])\] *(?:([0-9]{1,30}) +)?([^ ].*)$")


class DirectorySnapshot:
    """Contents of one remote directory at the moment it was fetched.

    Directory names and file sizes are kept in listing order. A snapshot is
    never modified after construction; the cache replaces it wholesale.
    """

    __slots__ = ("_directories", "_dir_set", "_file_sizes")

    def __init__(self, directories: Iterable[str] = (), file_sizes: Optional[Mapping[str, int]] = None):
        dirs = tuple(dict.fromkeys(directories))
        sizes = dict(file_sizes or {})
        overlap = set(dirs) & set(sizes)
        if overlap:
            raise ValueError(f"entries listed as both file and directory: {sorted(overlap)}")
        self._directories = dirs
        self._dir_set = frozenset(dirs)
        self._file_sizes = MappingProxyType(sizes)

    @property
    def directories(self) -> Tuple[str, ...]:
        return self._directories

    @property
    def file_sizes(self) -> Mapping[str, int]:
        return self._file_sizes

    @property
    def files(self) -> Tuple[str, ...]:
        return tuple(self._file_sizes)

    def is_dir(self, name: str) -> bool:
        return name in self._dir_set

    def exists(self, name: str) -> bool:
        return name in self._dir_set or name in self._file_sizes

    def __eq__(self, other):
        if not isinstance(other, DirectorySnapshot):
            return NotImplemented
        return self._dir_set == other._dir_set and dict(self._file_sizes) == dict(other._file_sizes)

    def __hash__(self):
        return hash((self._dir_set, frozenset(self._file_sizes.items())))

    def __repr__(self):
        return (
            f"DirectorySnapshot(directories={list(self._directories)}, "
            f"file_sizes={dict(self._file_sizes)})"
        )


def parse_listing(raw: str) -> DirectorySnapshot:
    """Parse one backend ``list`` response.

    The first line must be the backend's "listing ... DONE" marker; every
    following line must be a ``[D|F] <size> <name>`` entry. Anything else
    raises MalformedBackendOutput; there is no soft empty result.

    Args:
        raw: Captured stdout of ``<backend> list <path>``

    Returns:
        DirectorySnapshot with the parsed entries
    """
    lines = raw.rstrip("\n").splitlines()
    if not lines or not LISTING_HEADER_RE.match(lines[0]):
        raise MalformedBackendOutput("unrecognized first line of backend listing", raw)

    directories: List[str] = []
    file_sizes = {}
    for line in lines[1:]:
        match = LISTING_ENTRY_RE.match(line)
        if not match:
            raise MalformedBackendOutput(f"could not parse listing entry {line!r}", raw)
        kind, size, name = match.groups()
        if kind == "D":
            if name in file_sizes:
                raise MalformedBackendOutput(f"{name!r} listed as both file and directory", raw)
            directories.append(name)
        else:
            if not size:
                raise MalformedBackendOutput(f"missing size for file {name!r}", raw)
            if name in directories:
                raise MalformedBackendOutput(f"{name!r} listed as both file and directory", raw)
            file_sizes[name] = int(size)

    return DirectorySnapshot(directories, file_sizes)


def format_listing(snapshot: DirectorySnapshot) -> List[str]:
    """Render a snapshot as rich markup lines: directories first, then files"""
    lines = []
    for name in snapshot.directories:
        lines.append(f"{'-':>10}  [bold cyan]{escape(name)}/[/bold cyan]")
    for name, size in snapshot.file_sizes.items():
        lines.append(f"{size:>10}  {escape(name)}")
    return lines
