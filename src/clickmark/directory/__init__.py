"""Remote directory backends: the authoritative home of a user's entries."""

from clickmark.directory.base import RemoteDirectory, RemoteRecord
from clickmark.directory.memory import InMemoryDirectory

__all__ = ["InMemoryDirectory", "RemoteDirectory", "RemoteRecord"]
