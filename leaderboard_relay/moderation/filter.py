from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass

from leaderboard_relay.errors import MisconfiguredError

logger = logging.getLogger(__name__)

_URL_RE = re.compile(
    r"https?://|www\.|\.(?:com|net|org|io|gg|xyz|ru|info|biz)\b"
)
# One character followed by three or more copies of itself.
_REPEAT_RE = re.compile(r"(.)\1{3,}")


@dataclass(frozen=True)
class ModerationDecision:
    allowed: bool
    replacement_name: str | None = None


@dataclass(frozen=True)
class ModerationRules:
    substrings: tuple[str, ...] = ()
    pattern: re.Pattern[str] | None = None

    @classmethod
    def from_config(cls, substrings: tuple[str, ...], pattern: str = "") -> "ModerationRules":
        compiled = None
        if pattern:
            try:
                compiled = re.compile(pattern, re.IGNORECASE)
            except re.error as exc:
                raise MisconfiguredError(f"invalid PROHIBITED_REGEX: {exc}") from exc
        cleaned = tuple(s.strip().lower() for s in substrings if s and s.strip())
        return cls(substrings=cleaned, pattern=compiled)


class NameModerator:
    """Decides whether a normalized name may be shown on the board."""

    def __init__(
        self,
        rules: ModerationRules,
        replace_on_violation: bool = False,
        rng: random.Random | None = None,
    ):
        self.rules = rules
        self.replace_on_violation = replace_on_violation
        self._rng = rng or random.Random()

    def violation(self, normalized: str) -> str | None:
        """Return the name of the first rule the name breaks, or None."""
        if self.rules.pattern is not None and self.rules.pattern.search(normalized):
            return "pattern"
        for sub in self.rules.substrings:
            if sub in normalized:
                return "substring"
        if _URL_RE.search(normalized):
            return "url"
        if _REPEAT_RE.search(normalized):
            return "repetition"
        return None

    def decide(self, normalized: str) -> ModerationDecision:
        rule = self.violation(normalized)
        if rule is None:
            return ModerationDecision(allowed=True)

        if not self.replace_on_violation:
            logger.info("name rejected rule=%s", rule)
            return ModerationDecision(allowed=False)

        replacement = f"Anonymous{self._rng.randint(1000, 9999)}"
        logger.info("name replaced rule=%s replacement=%s", rule, replacement)
        return ModerationDecision(allowed=False, replacement_name=replacement)
