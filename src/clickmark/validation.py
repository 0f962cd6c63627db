"""Checks run on a URL before it is sent to the directory."""

from __future__ import annotations

from collections.abc import Collection

from clickmark.errors import CapacityExceeded, DuplicateEntry, EmptyInput, InputTooLong
from clickmark.formatting import normalize_input

DEFAULT_CAPACITY = 200
MAX_URL_LENGTH = 2083


def check_url(raw: str, max_length: int = MAX_URL_LENGTH) -> str:
    """Validate the text of a URL and return its normalized form."""
    text = raw.strip()
    if not text:
        raise EmptyInput("Please enter a URL.")
    if len(text) > max_length:
        raise InputTooLong(f"URL is longer than {max_length} characters.")
    return normalize_input(text)


def check_new_entry(
    raw: str,
    existing: Collection[str],
    size: int,
    capacity: int = DEFAULT_CAPACITY,
    max_length: int = MAX_URL_LENGTH,
) -> str:
    """Run the insert pipeline in order and return the URL to store.

    ``size`` counts entries already held plus inserts still in flight;
    ``existing`` holds the URLs of both.
    """
    if size >= capacity:
        raise CapacityExceeded(f"You can only save up to {capacity} URLs.")
    url = check_url(raw, max_length)
    if url in existing:
        raise DuplicateEntry(f"{url} is already added.")
    return url
