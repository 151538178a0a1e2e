from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubmissionRequest(BaseModel):
    """Inbound score submission.

    Fields stay untyped so the submission service answers with
    ``invalid_name`` / ``invalid_score`` rather than a generic 422.
    """

    name: Any = None
    score: Any = None
    seconds: Any = None

    model_config = ConfigDict(extra="ignore")


class LeaderboardEntryPayload(BaseModel):
    name: str
    score: int
    seconds: int | float = 0
    date: str = ""
    text: str = ""


class LeaderboardPayload(BaseModel):
    updatedAt: str
    entries: list[LeaderboardEntryPayload]
    stale: bool | None = None


class LeaderboardErrorPayload(BaseModel):
    error: str
    detail: str | None = None
    entries: list[LeaderboardEntryPayload] = Field(default_factory=list)


class SubmissionAccepted(BaseModel):
    ok: bool = True
    name: str


class ErrorPayload(BaseModel):
    error: str

    model_config = ConfigDict(extra="allow")
