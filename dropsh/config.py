"""Configuration management for dropsh"""

import os


class Config:
    """Configuration for a dropsh session"""

    def __init__(self):
        # Backend program invoked as `<backend> <verb> <args...>`
        self.backend = os.getenv("DROPSH_BACKEND", "dropbox_uploader.sh")
        self.editor = os.getenv("EDITOR") or "vi"
        self.shell = os.getenv("SHELL") or "bash"
        self.history_file = os.path.expanduser(
            os.getenv("DROPSH_HISTFILE", "~/.dropsh_history")
        )
        self.log_level = os.getenv("DROPSH_LOG_LEVEL", "WARNING").upper()

    @classmethod
    def from_env(cls):
        """Create configuration from environment variables"""
        return cls()

    @classmethod
    def from_args(
        cls,
        backend: str = None,
        editor: str = None,
        history_file: str = None,
        verbose: bool = False,
    ):
        """Create configuration from command line arguments"""
        config = cls()
        if backend:
            config.backend = backend
        if editor:
            config.editor = editor
        if history_file:
            config.history_file = os.path.expanduser(history_file)
        if verbose:
            config.log_level = "DEBUG"
        return config

    def __repr__(self):
        return (
            f"Config(backend={self.backend}, editor={self.editor}, "
            f"shell={self.shell}, history_file={self.history_file})"
        )
