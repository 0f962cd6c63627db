"""JSON-over-HTTP directory client built on aiohttp.

Wire format:
    GET  /entries                -> {"entries": [{"url", "clickCount", "lastClicked", "insertedAt"}]}
    POST /entries                {"url"}
    POST /entries/delete         {"url"}
    POST /entries/rename         {"oldUrl", "newUrl"}
    POST /entries/click          {"url"}

Requests carry ``Authorization: Bearer <token>``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from clickmark.directory.base import RemoteRecord
from clickmark.errors import RemoteRejected, RemoteUnavailable

logger = logging.getLogger(__name__)

# Statuses that mean "try again later" rather than "this request is wrong".
_UNAVAILABLE_STATUSES = {401, 403, 408, 429}


def _parse_record(item: dict[str, Any]) -> RemoteRecord:
    last_clicked = item.get("lastClicked")
    return RemoteRecord(
        url=str(item["url"]),
        click_count=int(item.get("clickCount", 0)),
        last_clicked=int(last_clicked) if last_clicked is not None else None,
        inserted_at=int(item.get("insertedAt", 0)),
    )


class HttpDirectory:
    """Remote directory reached over a small REST API."""

    def __init__(self, base_url: str, token: str = "", timeout: float = 30) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    def set_token(self, token: str | None) -> None:
        self._token = token or ""

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        url = f"{self._base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(
                method, url, json=payload, headers=self._headers()
            ) as resp:
                if resp.status in _UNAVAILABLE_STATUSES or resp.status >= 500:
                    text = await resp.text()
                    raise RemoteUnavailable(f"{method} {path}: HTTP {resp.status} {text[:200]}")
                if resp.status >= 400:
                    text = await resp.text()
                    raise RemoteRejected(f"{method} {path}: HTTP {resp.status} {text[:200]}")
                if resp.content_type == "application/json":
                    return await resp.json()
                return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("Directory request %s %s failed: %s", method, path, e)
            raise RemoteUnavailable(f"{method} {path}: {e}") from e

    # ── RemoteDirectory ──────────────────────────────────────

    async def list(self) -> list[RemoteRecord]:
        body = await self._request("GET", "/entries")
        if not isinstance(body, dict) or not isinstance(body.get("entries"), list):
            raise RemoteUnavailable("GET /entries: malformed response")
        try:
            return [_parse_record(item) for item in body["entries"]]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteUnavailable(f"GET /entries: malformed entry ({e})") from e

    async def insert(self, url: str) -> None:
        await self._request("POST", "/entries", {"url": url})

    async def delete(self, url: str) -> None:
        await self._request("POST", "/entries/delete", {"url": url})

    async def rename(self, old_url: str, new_url: str) -> None:
        await self._request("POST", "/entries/rename", {"oldUrl": old_url, "newUrl": new_url})

    async def increment_click(self, url: str) -> None:
        await self._request("POST", "/entries/click", {"url": url})
