"""Pure helpers for presenting and normalizing URLs."""

from __future__ import annotations

import re

_SCHEME_PREFIX = re.compile(r"^https?://(www\.)?")
_HAS_SCHEME = re.compile(r"^(http://|https://)")

_UNITS = (
    (86400, "d"),
    (3600, "h"),
    (60, "m"),
)


def normalize_for_display(url: str) -> str:
    """Strip the scheme, a following ``www.`` and one trailing slash.

    Used for rendering and alphabetical comparison only; the stored URL is
    never rewritten with this.
    """
    stripped = _SCHEME_PREFIX.sub("", url, count=1)
    if stripped.endswith("/"):
        stripped = stripped[:-1]
    return stripped


def normalize_input(raw: str) -> str:
    """Trim user input and prefix ``https://`` when no http(s) scheme is given."""
    text = raw.strip()
    if _HAS_SCHEME.match(text):
        return text
    return f"https://{text}"


def elapsed_label(last_clicked: int | None, now: int) -> str | None:
    """Return the largest whole unit since ``last_clicked``: ``3d``, ``5h``, ``12m``, ``40s``."""
    if last_clicked is None:
        return None
    elapsed = max(0, int(now) - int(last_clicked))
    for size, suffix in _UNITS:
        if elapsed >= size:
            return f"{elapsed // size}{suffix}"
    return f"{elapsed}s"
