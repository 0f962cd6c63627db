"""Process-local directory used by the demo shell and the test suite.

Nothing is persisted: the dict lives only as long as the instance.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from clickmark.directory.base import RemoteRecord
from clickmark.errors import RemoteRejected, RemoteUnavailable

logger = logging.getLogger(__name__)


class InMemoryDirectory:
    """Dict-backed directory keyed by URL.

    ``fail_next(op)`` makes the next call of that operation raise, which is
    how tests drive the failure paths.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: dict[str, RemoteRecord] = {}
        self._clock = clock
        self._failures: dict[str, list[Exception]] = {}
        self.token: str | None = None
        self.calls: list[tuple[str, tuple]] = []

    # ── Test hooks ───────────────────────────────────────────

    def seed(self, *records: RemoteRecord) -> None:
        for record in records:
            self._records[record.url] = record

    def fail_next(self, op: str, error: Exception | None = None) -> None:
        self._failures.setdefault(op, []).append(error or RemoteUnavailable(f"{op} failed"))

    def set_token(self, token: str | None) -> None:
        self.token = token

    def urls(self) -> set[str]:
        return set(self._records)

    def _enter(self, op: str, *args) -> None:
        self.calls.append((op, args))
        logger.debug("in-memory directory: %s%r", op, args)
        pending = self._failures.get(op)
        if pending:
            raise pending.pop(0)

    # ── RemoteDirectory ──────────────────────────────────────

    async def list(self) -> list[RemoteRecord]:
        self._enter("list")
        return [
            RemoteRecord(r.url, r.click_count, r.last_clicked, r.inserted_at)
            for r in self._records.values()
        ]

    async def insert(self, url: str) -> None:
        self._enter("insert", url)
        if url in self._records:
            raise RemoteRejected(f"duplicate: {url}")
        self._records[url] = RemoteRecord(url, 0, None, int(self._clock()))

    async def delete(self, url: str) -> None:
        self._enter("delete", url)
        self._records.pop(url, None)

    async def rename(self, old_url: str, new_url: str) -> None:
        self._enter("rename", old_url, new_url)
        record = self._records.get(old_url)
        if record is None:
            raise RemoteRejected(f"not found: {old_url}")
        if new_url in self._records:
            raise RemoteRejected(f"duplicate: {new_url}")
        del self._records[old_url]
        record.url = new_url
        self._records[new_url] = record

    async def increment_click(self, url: str) -> None:
        self._enter("increment_click", url)
        record = self._records.get(url)
        if record is None:
            raise RemoteRejected(f"not found: {url}")
        record.click_count += 1
        record.last_clicked = int(self._clock())
