from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from leaderboard_relay.errors import (
    InvalidNameError,
    InvalidScoreError,
    MisconfiguredError,
    NameNotAllowedError,
    RateLimitedError,
)
from leaderboard_relay.moderation.filter import NameModerator
from leaderboard_relay.moderation.normalizer import clean_name, normalize_name
from leaderboard_relay.services.rate_limiter import FixedWindowRateLimiter
from leaderboard_relay.upstream.dreamlo import DreamloClient

logger = logging.getLogger(__name__)

UNKNOWN_IDENTITY = "unknown"


@dataclass(frozen=True)
class SubmissionResult:
    name: str
    upstream_body: str = ""


def resolve_client_identity(forwarded_for: str | None, remote_addr: str | None) -> str:
    """Best-effort client address: first X-Forwarded-For hop, then the socket peer."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if remote_addr:
        return remote_addr
    return UNKNOWN_IDENTITY


def _as_finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class SubmissionService:
    """Rate limit, moderate and validate a score before relaying it to Dreamlo."""

    def __init__(
        self,
        client: DreamloClient,
        rate_limiter: FixedWindowRateLimiter,
        moderator: NameModerator,
        max_score: float = 1_000_000,
    ):
        self.client = client
        self.rate_limiter = rate_limiter
        self.moderator = moderator
        self.max_score = max_score

    async def submit(self, payload: dict[str, Any], identity: str) -> SubmissionResult:
        if not self.client.can_write:
            raise MisconfiguredError("DREAMLO_PRIVATE_CODE is not set")

        if self.rate_limiter.check_and_record(identity):
            raise RateLimitedError("Too Many Requests")

        name = self._resolve_name(payload.get("name"))
        score = self._validate_score(payload.get("score"))
        seconds = self._validate_seconds(payload.get("seconds"))

        body = await self.client.submit_entry(name, score, seconds)
        logger.info("submitted score=%s seconds=%s identity=%s", score, seconds, identity)
        return SubmissionResult(name=name, upstream_body=body)

    def _resolve_name(self, raw: Any) -> str:
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidNameError("Bad name")

        cleaned = clean_name(raw)
        if not cleaned.strip():
            raise InvalidNameError("Bad name")

        decision = self.moderator.decide(normalize_name(raw))
        if decision.allowed:
            return cleaned
        if decision.replacement_name is None:
            raise NameNotAllowedError("name_not_allowed")
        return decision.replacement_name

    def _validate_score(self, raw: Any) -> float:
        score = _as_finite_number(raw)
        if score is None or score < 0 or score > self.max_score:
            raise InvalidScoreError("Bad score")
        return score

    def _validate_seconds(self, raw: Any) -> float | None:
        # Invalid seconds are dropped, not rejected.
        seconds = _as_finite_number(raw)
        if seconds is None or seconds < 0:
            return None
        return seconds
