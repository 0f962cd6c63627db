"""Bookmark entry model and the small state records the store is built on."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


@dataclass(frozen=True)
class Entry:
    """One bookmark. Mutations go through ``dataclasses.replace``."""

    url: str
    inserted_at: int
    click_count: int = 0
    last_clicked: int | None = None

    def clicked(self, now: int) -> Entry:
        return replace(self, click_count=self.click_count + 1, last_clicked=now)

    def renamed(self, url: str) -> Entry:
        return replace(self, url=url)


@dataclass(frozen=True)
class EntryRow:
    """Read-only view of an entry plus its busy flag, as handed to a view."""

    entry: Entry
    busy: bool = False


@dataclass(frozen=True)
class Identity:
    """The logged-in user. Only its presence is checked locally."""

    principal: str
    token: str = field(default="", repr=False)


class StoreState(Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"


class SortKey(Enum):
    ALPHABETICAL = "alphabetical"
    CLICK_COUNT = "click_count"
    LAST_VISIT = "last_visit"


@dataclass
class SortState:
    """Independent direction flag per sort key.

    A flag holds the direction the *next* sort on that key will use and
    flips after each use.
    """

    alpha_ascending: bool = True
    count_ascending: bool = False
    last_visit_ascending: bool = True

    _FLAGS = {
        SortKey.ALPHABETICAL: "alpha_ascending",
        SortKey.CLICK_COUNT: "count_ascending",
        SortKey.LAST_VISIT: "last_visit_ascending",
    }

    def ascending(self, key: SortKey) -> bool:
        return getattr(self, self._FLAGS[key])

    def flip(self, key: SortKey) -> bool:
        """Return the direction to use now and toggle it for next time."""
        name = self._FLAGS[key]
        current = getattr(self, name)
        setattr(self, name, not current)
        return current


class Operation(Enum):
    INSERT = "insert"
    DELETE = "delete"
    RENAME = "rename"
    INCREMENT_CLICK = "increment_click"


class MutationPolicy(Enum):
    OPTIMISTIC = "optimistic"
    CONFIRM_THEN_APPLY = "confirm_then_apply"


# Delete removes locally first and repairs with a full reload on failure;
# everything else waits for the directory before touching local state.
MUTATION_POLICY: dict[Operation, MutationPolicy] = {
    Operation.INSERT: MutationPolicy.CONFIRM_THEN_APPLY,
    Operation.DELETE: MutationPolicy.OPTIMISTIC,
    Operation.RENAME: MutationPolicy.CONFIRM_THEN_APPLY,
    Operation.INCREMENT_CLICK: MutationPolicy.CONFIRM_THEN_APPLY,
}
