from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    score: int
    seconds: float = 0
    date: str = ""
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "seconds": self.seconds,
            "date": self.date,
            "text": self.text,
        }


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """One complete fetch result. Replaced wholesale, never mutated."""

    entries: tuple[LeaderboardEntry, ...] = ()
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "updatedAt": self.updated_at.isoformat(timespec="milliseconds"),
            "entries": [entry.to_dict() for entry in self.entries],
        }


@dataclass(frozen=True)
class CacheSlot:
    fetched_at: float                # monotonic clock reading
    snapshot: LeaderboardSnapshot


@dataclass(frozen=True)
class CachedRead:
    snapshot: LeaderboardSnapshot
    stale: bool = False
