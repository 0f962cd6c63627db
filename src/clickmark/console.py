"""Terminal shell: a line-oriented view controller over the entry store."""

from __future__ import annotations

import asyncio
import logging
import shlex
import time
import webbrowser
from collections.abc import Callable
from typing import TYPE_CHECKING

from clickmark.entries import EntryRow, Identity, SortKey, SortState
from clickmark.errors import NotAuthenticated, RemoteError, ValidationError
from clickmark.formatting import elapsed_label, normalize_for_display

if TYPE_CHECKING:
    from clickmark.store import EntryStore

logger = logging.getLogger(__name__)

PROMPT = "clickmark> "
_QUIT = frozenset({"quit", "exit", "q"})

_SORT_KEYS = {
    "abc": SortKey.ALPHABETICAL,
    "clicks": SortKey.CLICK_COUNT,
    "visit": SortKey.LAST_VISIT,
}

HELP = """\
Commands:
  add URL             save a bookmark
  open N              open entry N in the browser and count the click
  del N               delete entry N
  sort abc|clicks|visit
  shuffle             random order
  edit                enter/leave edit mode (leaving saves changed fields)
  set N URL           change entry N's URL field (edit mode)
  reload              fetch everything from the directory again
  login [NAME TOKEN]  log in; logout
  list, help, quit"""


def sort_bar(state: SortState) -> str:
    """Labels of the three sort controls, showing the direction each will use next."""
    clicks = "Clicks ↓" if state.count_ascending else "Clicks ↑"
    visit = "Last Visit ↑" if state.last_visit_ascending else "Last Visit ↓"
    alpha = "ABC" if state.alpha_ascending else "CBA"
    return f"[{clicks}] [{visit}] [{alpha}]"


def identity_line(identity: Identity) -> str:
    """Who is logged in, with the code the user checks against their account."""
    return f"{identity.principal} (Anti-phishing code: {identity.principal[-3:]})"


def render_row(index: int, row: EntryRow, now: int) -> str:
    entry = row.entry
    label = elapsed_label(entry.last_clicked, now) or "N/A"
    line = f"{index:>3}. {normalize_for_display(entry.url)} ({entry.click_count}, {label})"
    if row.busy:
        line += " …"
    return line


class Shell:
    """Interactive REPL: reads commands from stdin, prints the collection."""

    def __init__(
        self,
        store: EntryStore,
        *,
        identity: Identity | None = None,
        opener: Callable[[str], object] = webbrowser.open,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._identity = identity
        self._opener = opener
        self._clock = clock
        self._running = False

    def render(self) -> str:
        store = self._store
        if store.identity is None:
            return "Please log in (login NAME TOKEN)."
        now = int(self._clock())
        lines = [
            identity_line(store.identity),
            sort_bar(store.sort_state) + ("  [editing]" if store.edit_mode else ""),
        ]
        for i, row in enumerate(store.snapshot(), start=1):
            if store.edit_mode:
                lines.append(f"{i:>3}. {store.edit_value(row.entry.url)}")
            else:
                lines.append(render_row(i, row, now))
        if len(lines) == 2:
            lines.append("  (no bookmarks yet)")
        return "\n".join(lines)

    def _url_at(self, arg: str) -> str:
        rows = self._store.snapshot()
        try:
            index = int(arg)
        except ValueError:
            raise ValueError(f"Not an entry number: {arg}") from None
        if not 1 <= index <= len(rows):
            raise ValueError(f"No entry {index}")
        return rows[index - 1].entry.url

    async def handle(self, line: str) -> str:
        """Run one command line and return the text to show."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            return f"Error: {e}"
        if not parts:
            return ""
        cmd, args = parts[0].lower(), parts[1:]

        try:
            message = await self._dispatch(cmd, args)
        except ValidationError as e:
            return str(e)
        except NotAuthenticated as e:
            return str(e)
        except RemoteError as e:
            return f"Error: {e} (try again)"
        except ValueError as e:
            return str(e)

        if message is None:
            return self.render()
        return message

    async def _dispatch(self, cmd: str, args: list[str]) -> str | None:
        store = self._store
        if cmd == "help":
            return HELP
        if cmd in ("list", "ls"):
            return None
        if cmd == "login":
            if len(args) >= 2:
                self._identity = Identity(principal=args[0], token=args[1])
            if self._identity is None:
                return "Usage: login NAME TOKEN"
            store.login(self._identity)
            await store.load()
            return None
        if cmd == "logout":
            store.logout()
            self._identity = None
            return "Logged out."
        if cmd == "reload":
            await store.load()
            return None
        if cmd == "add":
            if not args:
                return "Usage: add URL"
            entry = await store.insert(" ".join(args))
            if entry is None:
                return "Please log in (login NAME TOKEN)."
            return None
        if cmd in ("del", "rm"):
            url = self._url_at(args[0] if args else "")
            if not await store.delete(url):
                return self.render() + "\nDelete failed; entries reloaded from the directory."
            return None
        if cmd == "open":
            url = self._url_at(args[0] if args else "")
            self._opener(url)
            if not await store.increment_click(url):
                logger.info("Click on %s not counted", url)
            return None
        if cmd == "sort":
            key = _SORT_KEYS.get(args[0].lower() if args else "")
            if key is None:
                return "Usage: sort abc|clicks|visit"
            store.sort(key)
            return None
        if cmd == "shuffle":
            store.shuffle()
            return None
        if cmd == "edit":
            await store.toggle_edit_mode()
            return None
        if cmd == "set":
            if not store.edit_mode:
                return "Enter edit mode first (edit)."
            if len(args) < 2:
                return "Usage: set N URL"
            url = self._url_at(args[0])
            store.set_edit(url, args[1])
            await store.commit_edit(url)
            return None
        return f"Unknown command: {cmd} (try help)"

    async def start(self) -> None:
        """Read commands until quit or end of input."""
        self._running = True
        loop = asyncio.get_running_loop()

        print("clickmark: bookmarks kept in sync with your directory.")
        print("Commands are listed by help; leave with quit.")
        if self._identity is not None:
            print(await self.handle("login"))

        while self._running:
            line = await loop.run_in_executor(None, self._read_input)
            if line is None or line.strip().lower() in _QUIT:
                break
            output = await self.handle(line)
            if output:
                print(output)
        print("Session closed.")

    def _read_input(self) -> str | None:
        try:
            return input(PROMPT)
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False
