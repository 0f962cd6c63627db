"""Directory protocol and shared types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class RemoteRecord:
    """An entry as the directory reports it."""

    url: str
    click_count: int
    last_clicked: int | None
    inserted_at: int


@runtime_checkable
class RemoteDirectory(Protocol):
    """Protocol that all directory backends must implement.

    Every method raises ``RemoteUnavailable`` on transport or auth failure and
    ``RemoteRejected`` when the directory declines the request.
    """

    async def list(self) -> list[RemoteRecord]:
        """Return every entry of the current user, in no particular order."""
        ...

    async def insert(self, url: str) -> None: ...

    async def delete(self, url: str) -> None: ...

    async def rename(self, old_url: str, new_url: str) -> None: ...

    async def increment_click(self, url: str) -> None: ...
