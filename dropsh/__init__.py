"""dropsh - interactive shell for a remote file store driven by a backend CLI"""

from .version import __version__

__all__ = ["__version__"]
