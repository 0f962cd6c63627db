"""Entry point: python -m clickmark [shell]

- No args / "shell": interactive bookmark shell
  - with directory.base_url configured it talks to the HTTP directory
  - without one it runs against a throwaway in-memory directory
"""

from __future__ import annotations

import asyncio
import logging
import sys

from clickmark.config import ClickmarkConfig, load_config

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_directory(config: ClickmarkConfig):
    if config.directory.base_url:
        from clickmark.directory.http import HttpDirectory

        return HttpDirectory(
            config.directory.base_url,
            token=config.directory.token,
            timeout=config.directory.timeout,
        )

    from clickmark.directory.memory import InMemoryDirectory

    logger.warning("No directory.base_url configured; using an in-memory directory (not saved)")
    return InMemoryDirectory()


async def _shell(config: ClickmarkConfig) -> None:
    from clickmark.console import Shell
    from clickmark.entries import Identity
    from clickmark.store import EntryStore

    directory = _build_directory(config)
    store = EntryStore(directory, config.store, call_timeout=config.directory.timeout)

    identity = None
    if config.principal:
        identity = Identity(principal=config.principal, token=config.directory.token)

    shell = Shell(store, identity=identity)
    try:
        await shell.start()
    finally:
        await shell.stop()
        close = getattr(directory, "close", None)
        if close and callable(close):
            await close()


def _run_shell() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from clickmark.ordering import use_system_collation

    use_system_collation()
    try:
        asyncio.run(_shell(config))
    except KeyboardInterrupt:
        pass


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "shell"

    if cmd == "shell":
        _run_shell()
    else:
        print("Usage: python -m clickmark [shell]")
        print("  shell  Interactive bookmark shell (default)")
        sys.exit(1)


if __name__ == "__main__":
    main()
