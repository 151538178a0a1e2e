"""HTTP client for the Dreamlo leaderboard backend.

Dreamlo's wire protocol is fixed by the third party:

- read:  ``GET {scheme}://{host}/lb/{public_code}/json``
- write: ``GET {scheme}://{host}/lb/{private_code}/add/{name}/{score}[/{seconds}]``

Many boards have no working TLS, so reads try https first and fall back to
http, and writes go over http unless configured otherwise.
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable
from urllib.parse import quote

import requests

from leaderboard_relay.entities.leaderboard import LeaderboardEntry
from leaderboard_relay.errors import MisconfiguredError, UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = "LeaderboardRelay/1.0"
_BODY_PREVIEW = 500


class _InvalidEnvelope(ValueError):
    pass


def format_number(value: float) -> str:
    """Render integral values without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class DreamloClient:
    public_code: str = ""
    private_code: str = ""
    host: str = "www.dreamlo.com"
    timeout_seconds: float = 8.0
    cooldown_seconds: float = 1.5
    retry_delay_seconds: float = 0.5
    submit_secure: bool = False
    session: Any | None = None
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _last_fetch_started: float | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    @property
    def can_read(self) -> bool:
        return bool(self.public_code)

    @property
    def can_write(self) -> bool:
        return bool(self.private_code)

    def read_url(self, scheme: str) -> str:
        return f"{scheme}://{self.host}/lb/{self.public_code}/json"

    def add_url(self, name: str, score: float, seconds: float | None = None) -> str:
        scheme = "https" if self.submit_secure else "http"
        url = (
            f"{scheme}://{self.host}/lb/{self.private_code}/add/"
            f"{quote(name, safe='')}/{format_number(score)}"
        )
        if seconds is not None:
            url += f"/{format_number(seconds)}"
        return url

    async def fetch_all(self) -> list[LeaderboardEntry]:
        if not self.can_read:
            raise MisconfiguredError("DREAMLO_PUBLIC_CODE is not set")

        await self._respect_cooldown()

        try:
            return await self._fetch_from(self.read_url("https"))
        except UpstreamError as exc:
            logger.warning("dreamlo https read failed (%s), retrying over http", exc.message)

        return await self._fetch_from(self.read_url("http"))

    async def submit_entry(self, name: str, score: float, seconds: float | None = None) -> str:
        if not self.can_write:
            raise MisconfiguredError("DREAMLO_PRIVATE_CODE is not set")

        url = self.add_url(name, score, seconds)
        try:
            return await self._submit(url)
        except UpstreamError as exc:
            if exc.status is not None and exc.status < 500:
                raise
            logger.warning(
                "dreamlo submit failed (%s), retrying in %.2fs",
                exc.message, self.retry_delay_seconds,
            )

        await self.sleep(self.retry_delay_seconds)
        return await self._submit(url)

    async def _respect_cooldown(self) -> None:
        if self._last_fetch_started is not None:
            wait = self.cooldown_seconds - (self.clock() - self._last_fetch_started)
            if wait > 0:
                logger.debug("dreamlo cooldown sleeping %.3fs", wait)
                await self.sleep(wait)
        self._last_fetch_started = self.clock()

    async def _fetch_from(self, url: str) -> list[LeaderboardEntry]:
        status, body = await self._get(url)
        if not 200 <= status < 300:
            raise UpstreamError(f"dreamlo read returned {status}", status=status, body=body[:_BODY_PREVIEW])
        try:
            return parse_entries(json.loads(body))
        except ValueError as exc:
            raise UpstreamError(
                f"unparseable dreamlo response: {exc}", status=status, body=body[:_BODY_PREVIEW]
            ) from exc

    async def _submit(self, url: str) -> str:
        status, body = await self._get(url)
        if not 200 <= status < 300:
            raise UpstreamError(f"dreamlo submit returned {status}", status=status, body=body[:_BODY_PREVIEW])
        return body

    async def _get(self, url: str) -> tuple[int, str]:
        try:
            response = await asyncio.to_thread(
                self.session.get,
                url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"dreamlo request failed: {exc}") from exc
        return response.status_code, response.text


def parse_entries(payload: Any) -> list[LeaderboardEntry]:
    if not isinstance(payload, dict) or "dreamlo" not in payload:
        raise _InvalidEnvelope("missing dreamlo envelope")

    envelope = payload["dreamlo"]
    if not isinstance(envelope, dict):
        raise _InvalidEnvelope("dreamlo envelope is not an object")

    # An empty board comes back as {"leaderboard": null}.
    leaderboard = envelope.get("leaderboard")
    if leaderboard is None:
        return []
    if not isinstance(leaderboard, dict):
        raise _InvalidEnvelope("dreamlo.leaderboard is not an object")

    rows = leaderboard.get("entry")
    if rows is None:
        return []
    # A board with exactly one entry returns an object instead of a list.
    if isinstance(rows, dict):
        rows = [rows]
    if not isinstance(rows, list):
        raise _InvalidEnvelope("leaderboard.entry is not a list")

    entries: list[LeaderboardEntry] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            entries.append(_entry_from_row(row))
        except (TypeError, ValueError):
            logger.warning("skipping dreamlo entry with bad numbers: %r", row)
    return entries


def _entry_from_row(row: dict[str, Any]) -> LeaderboardEntry:
    score = float(row.get("score"))
    seconds_raw = row.get("seconds")
    seconds = float(seconds_raw) if seconds_raw not in (None, "") else 0.0
    if not math.isfinite(score) or not math.isfinite(seconds):
        raise ValueError("non-finite number")

    return LeaderboardEntry(
        name=str(row.get("name") or ""),
        score=int(score),
        seconds=int(seconds) if seconds.is_integer() else seconds,
        date=str(row.get("date") or ""),
        text=str(row.get("text") or ""),
    )
