"""Entry store, the single in-memory owner of a user's bookmarks.

Responsibilities:
1. Hold the ordered collection and the per-URL busy markers
2. Validate inserts locally before any remote call
3. Apply each mutation under its policy (optimistic or confirm-then-apply)
4. Serialize whole-collection writers (load, reload, insert) behind one lock
5. Discard results that complete after the epoch they started in
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from clickmark.config import StoreConfig
from clickmark.entries import (
    MUTATION_POLICY,
    Entry,
    EntryRow,
    Identity,
    MutationPolicy,
    Operation,
    SortKey,
    SortState,
    StoreState,
)
from clickmark.errors import (
    ClickmarkError,
    DuplicateEntry,
    NotAuthenticated,
    RemoteError,
    RemoteUnavailable,
    ValidationError,
)
from clickmark.ordering import newest_first, shuffle_entries, sort_entries
from clickmark.validation import check_new_entry, check_url

if TYPE_CHECKING:
    from clickmark.directory.base import RemoteDirectory

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUBMITTING = "submitting"
DELETING = "deleting"
RENAMING = "renaming"
CLICKING = "clicking"


@dataclass(eq=False)
class _Busy:
    """One in-flight operation on one URL, tagged with the epoch it started in.

    Compared by identity, so a late completion only ever removes its own marker.
    """

    kind: str
    url: str
    epoch: int


@dataclass(eq=False)
class _Lane:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class EntryStore:
    """Bookmark collection kept consistent with a remote directory."""

    def __init__(
        self,
        directory: RemoteDirectory,
        config: StoreConfig | None = None,
        *,
        call_timeout: float | None = 30,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._directory = directory
        self._config = config or StoreConfig()
        self._call_timeout = call_timeout
        self._clock = clock
        self._rng = rng or random.Random()

        self._identity: Identity | None = None
        self._session = 0  # bumped on login/logout
        self._epoch = 0  # bumped on login/logout and on every load
        self._state = StoreState.UNLOADED
        self._entries: list[Entry] = []
        self.sort_state = SortState()
        self._edit_mode = False
        self._edits: dict[str, str] = {}  # url → edited value
        self._busy: dict[str, list[_Busy]] = {}
        self._writer_lock = asyncio.Lock()
        self._lanes: dict[str, _Lane] = {}  # per-URL rename serialization
        self.last_error: ClickmarkError | None = None

    # ── Read-only view ───────────────────────────────────────

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    @property
    def edit_mode(self) -> bool:
        return self._edit_mode

    @property
    def is_submitting(self) -> bool:
        return bool(self._marked(SUBMITTING))

    @property
    def busy_urls(self) -> frozenset[str]:
        return frozenset(url for url, markers in self._busy.items() if markers)

    def is_deleting(self, url: str) -> bool:
        return url in self._marked(DELETING)

    def snapshot(self) -> tuple[EntryRow, ...]:
        """Current ordering with a busy flag per entry."""
        busy = self.busy_urls
        return tuple(EntryRow(entry, entry.url in busy) for entry in self._entries)

    def find(self, url: str) -> Entry | None:
        for entry in self._entries:
            if entry.url == url:
                return entry
        return None

    def edit_value(self, url: str) -> str:
        """Value to show in the edit field for ``url``."""
        return self._edits.get(url, url)

    # ── Identity lifecycle ───────────────────────────────────

    def login(self, identity: Identity) -> None:
        self._reset()
        self._identity = identity
        self._hand_token(identity.token)
        logger.info("Logged in as %s (epoch %d)", identity.principal, self._epoch)

    def logout(self) -> None:
        principal = self._identity.principal if self._identity else None
        self._reset()
        self._identity = None
        self._hand_token(None)
        logger.info("Logged out %s; collection cleared", principal)

    def _reset(self) -> None:
        self._session += 1
        self._epoch += 1
        self._state = StoreState.UNLOADED
        self._entries = []
        self._edits = {}
        self._edit_mode = False
        self._busy = {}
        self._lanes = {}
        self.sort_state = SortState()
        self.last_error = None

    def _hand_token(self, token: str | None) -> None:
        set_token = getattr(self._directory, "set_token", None)
        if set_token and callable(set_token):
            set_token(token)

    # ── Busy markers ─────────────────────────────────────────

    def _mark(self, kind: str, url: str) -> _Busy:
        marker = _Busy(kind, url, self._epoch)
        self._busy.setdefault(url, []).append(marker)
        return marker

    def _unmark(self, marker: _Busy) -> None:
        markers = self._busy.get(marker.url)
        if not markers:
            return
        for i, m in enumerate(markers):
            if m is marker:
                del markers[i]
                break
        if not markers:
            del self._busy[marker.url]

    def _marked(self, kind: str) -> set[str]:
        return {
            url for url, markers in self._busy.items() if any(m.kind == kind for m in markers)
        }

    # ── Remote calls ─────────────────────────────────────────

    async def _call(self, name: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(call(), timeout=self._call_timeout)
        except asyncio.TimeoutError as e:
            raise RemoteUnavailable(f"{name} timed out after {self._call_timeout}s") from e

    def _now(self) -> int:
        return int(self._clock())

    # ── Load ─────────────────────────────────────────────────

    async def load(self) -> list[Entry]:
        """Replace the collection with a fresh read of the directory."""
        if self._identity is None:
            raise NotAuthenticated("Loading entries requires a logged-in identity")
        async with self._writer_lock:
            return await self._reload()

    async def _reload(self) -> list[Entry]:
        # Caller holds the writer lock.
        self._epoch += 1
        epoch = self._epoch
        previous = self._state
        self._state = StoreState.LOADING
        try:
            records = await self._call("list", self._directory.list)
        except RemoteError as e:
            if epoch == self._epoch:
                self._state = previous
                self.last_error = e
            logger.warning("Loading entries failed: %s", e)
            raise

        if epoch != self._epoch:
            logger.warning("Discarding load for stale epoch %d (now %d)", epoch, self._epoch)
            return self.entries

        deleting = self._marked(DELETING)
        self._entries = newest_first(
            Entry(
                url=r.url,
                inserted_at=r.inserted_at,
                click_count=r.click_count,
                last_clicked=r.last_clicked,
            )
            for r in records
            if r.url not in deleting
        )
        self._state = StoreState.READY
        self.last_error = None
        logger.info("Loaded %d entries (epoch %d)", len(self._entries), epoch)
        return self.entries

    # ── Insert ───────────────────────────────────────────────

    async def insert(self, raw_url: str) -> Entry | None:
        """Validate, store remotely, then put the new entry at the front.

        Returns ``None`` without an identity. Raises ``ValidationError`` before
        any remote call, or ``RemoteError`` after leaving the collection as it was.
        """
        if self._identity is None:
            return None

        pending = self._marked(SUBMITTING)
        url = check_new_entry(
            raw_url,
            existing={e.url for e in self._entries} | pending,
            size=len(self._entries) + len(pending),
            capacity=self._config.capacity,
            max_length=self._config.max_url_length,
        )

        session = self._session
        marker = self._mark(SUBMITTING, url)
        try:
            async with self._writer_lock:
                await self._call("insert", lambda: self._directory.insert(url))
                if session != self._session:
                    logger.warning("Insert of %s completed after logout; ignored", url)
                    return None
                entry = Entry(url=url, inserted_at=self._now())
                self._entries.insert(0, entry)
        except RemoteError as e:
            if session == self._session:
                self.last_error = e
            logger.warning("Insert of %s failed: %s", url, e)
            raise
        finally:
            self._unmark(marker)

        logger.debug("Inserted %s", url)
        return entry

    # ── Single-entry mutations ───────────────────────────────

    async def _mutate(
        self,
        op: Operation,
        url: str,
        kind: str,
        call: Callable[[], Awaitable[None]],
        apply: Callable[[], None],
    ) -> bool:
        """Run one keyed mutation under its policy from ``MUTATION_POLICY``.

        Optimistic operations apply first and repair with a full reload on
        failure. Confirm-then-apply operations leave local state untouched
        on failure.
        """
        policy = MUTATION_POLICY[op]
        session = self._session
        marker = self._mark(kind, url)
        try:
            if policy is MutationPolicy.OPTIMISTIC:
                apply()
            try:
                await self._call(op.value, call)
            except RemoteError as e:
                logger.warning("%s of %s failed: %s", op.value, url, e)
                if session != self._session:
                    return False
                self.last_error = e
                if policy is MutationPolicy.OPTIMISTIC:
                    self._unmark(marker)
                    await self._repair(op, url)
                return False

            if policy is MutationPolicy.CONFIRM_THEN_APPLY:
                if marker.epoch != self._epoch:
                    logger.info(
                        "%s of %s confirmed for stale epoch %d; not applied",
                        op.value,
                        url,
                        marker.epoch,
                    )
                else:
                    apply()
            return True
        finally:
            self._unmark(marker)

    async def _repair(self, op: Operation, url: str) -> None:
        logger.info("Reloading after failed %s of %s", op.value, url)
        try:
            async with self._writer_lock:
                await self._reload()
        except RemoteError as e:
            logger.error("Reload after failed %s of %s also failed: %s", op.value, url, e)

    def _replace(self, url: str, change: Callable[[Entry], Entry]) -> None:
        self._entries = [change(e) if e.url == url else e for e in self._entries]

    async def delete(self, url: str) -> bool:
        """Remove ``url`` now; reload everything if the directory refuses."""
        if self._identity is None or self.find(url) is None:
            return False

        def remove() -> None:
            self._entries = [e for e in self._entries if e.url != url]

        return await self._mutate(
            Operation.DELETE, url, DELETING, lambda: self._directory.delete(url), remove
        )

    async def increment_click(self, url: str) -> bool:
        if self._identity is None or self.find(url) is None:
            return False

        def count() -> None:
            now = self._now()
            self._replace(url, lambda e: e.clicked(now))

        return await self._mutate(
            Operation.INCREMENT_CLICK,
            url,
            CLICKING,
            lambda: self._directory.increment_click(url),
            count,
        )

    @asynccontextmanager
    async def _lane(self, url: str):
        """Hold the rename lane for ``url``; the lane is dropped when unused."""
        lane = self._lanes.get(url)
        if lane is None:
            lane = self._lanes[url] = _Lane()
        lane.users += 1
        try:
            async with lane.lock:
                yield
        finally:
            lane.users -= 1
            if lane.users == 0 and self._lanes.get(url) is lane:
                del self._lanes[url]

    async def rename(self, url: str, new_url: str) -> bool:
        """Rename ``url`` once the directory confirms; discard the edit otherwise."""
        if self._identity is None:
            return False
        async with self._lane(url):
            if self.find(url) is None:
                logger.warning("Rename of %s skipped: entry no longer present", url)
                return False
            try:
                target = check_url(new_url, self._config.max_url_length)
                if target != url and self.find(target) is not None:
                    raise DuplicateEntry(f"{target} is already added.")
            except ValidationError as e:
                logger.warning("Rename of %s discarded: %s", url, e)
                self.last_error = e
                return False
            if target == url:
                return False

            return await self._mutate(
                Operation.RENAME,
                url,
                RENAMING,
                lambda: self._directory.rename(url, target),
                lambda: self._replace(url, lambda e: e.renamed(target)),
            )

    # ── Edit mode ────────────────────────────────────────────

    def set_edit(self, url: str, value: str) -> None:
        """Record the edit field's current text for ``url``."""
        self._edits[url] = value

    async def commit_edit(self, url: str) -> bool:
        """The edit field for ``url`` lost focus: rename if its value changed."""
        value = self._edits.pop(url, None)
        if value is None or value == url:
            return False
        return await self.rename(url, value)

    async def toggle_edit_mode(self) -> bool:
        """Flip edit mode and return the new mode.

        Leaving edit mode first pushes every changed field through ``rename``.
        """
        if not self._edit_mode:
            self._edit_mode = True
            return True

        edits, self._edits = self._edits, {}
        changed = [(url, value) for url, value in edits.items() if value != url]
        if changed:
            logger.debug("Flushing %d edits", len(changed))
            await asyncio.gather(*(self.rename(url, value) for url, value in changed))
        self._edit_mode = False
        return False

    # ── Local ordering ───────────────────────────────────────

    def sort(self, key: SortKey) -> list[Entry]:
        ascending = self.sort_state.flip(key)
        self._entries = sort_entries(
            self._entries,
            key,
            ascending,
            now=self._now(),
            never_clicked_first=self._config.never_clicked_first,
        )
        return self.entries

    def shuffle(self) -> list[Entry]:
        self._entries = shuffle_entries(self._entries, self._rng)
        return self.entries
