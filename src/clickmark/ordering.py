"""Ordering of an entry collection. Every function returns a new list."""

from __future__ import annotations

import locale
import logging
import random
from collections.abc import Sequence

from clickmark.entries import Entry, SortKey
from clickmark.formatting import normalize_for_display

logger = logging.getLogger(__name__)


def use_system_collation() -> str | None:
    """Adopt the user's collation locale for alphabetical sorting.

    Returns the locale name, or None when the environment names one the
    platform does not have (collation then stays codepoint order).
    """
    try:
        return locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.warning("Collation locale unavailable, sorting by codepoint: %s", e)
        return None


def _collation_key(url: str) -> tuple[str, str]:
    display = normalize_for_display(url)
    return (locale.strxfrm(display.casefold()), display)


def newest_first(entries: Sequence[Entry]) -> list[Entry]:
    """Default order after a load: ``inserted_at`` descending."""
    return sorted(entries, key=lambda e: e.inserted_at, reverse=True)


def sort_alphabetical(entries: Sequence[Entry], ascending: bool) -> list[Entry]:
    return sorted(entries, key=lambda e: _collation_key(e.url), reverse=not ascending)


def sort_click_count(entries: Sequence[Entry], ascending: bool) -> list[Entry]:
    return sorted(entries, key=lambda e: e.click_count, reverse=not ascending)


def sort_last_visit(
    entries: Sequence[Entry],
    ascending: bool,
    now: int,
    never_clicked_first: bool = True,
) -> list[Entry]:
    """Order by time elapsed since the last click.

    Never-clicked entries are kept together as one block, placed before or
    after the clicked ones regardless of direction. Ascending means the
    most recently clicked entry comes first.
    """
    never = [e for e in entries if e.last_clicked is None]
    clicked = [e for e in entries if e.last_clicked is not None]
    clicked.sort(key=lambda e: now - e.last_clicked, reverse=not ascending)
    if never_clicked_first:
        return never + clicked
    return clicked + never


def sort_entries(
    entries: Sequence[Entry],
    key: SortKey,
    ascending: bool,
    now: int,
    never_clicked_first: bool = True,
) -> list[Entry]:
    if key is SortKey.ALPHABETICAL:
        return sort_alphabetical(entries, ascending)
    if key is SortKey.CLICK_COUNT:
        return sort_click_count(entries, ascending)
    if key is SortKey.LAST_VISIT:
        return sort_last_visit(entries, ascending, now, never_clicked_first)
    raise ValueError(f"Unknown sort key: {key!r}")


def shuffle_entries(entries: Sequence[Entry], rng: random.Random | None = None) -> list[Entry]:
    """Fisher-Yates shuffle into a new list."""
    rng = rng or random.Random()
    shuffled = list(entries)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
