"""clickmark: bookmark collection kept in sync with a remote directory."""

__version__ = "0.1.0"
