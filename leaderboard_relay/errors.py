"""Error kinds surfaced by the relay.

Each error carries a stable ``kind`` string (rendered as ``{"error": kind}``)
and the HTTP status the worker answers with.
"""
from __future__ import annotations

from typing import Any


class RelayError(Exception):
    kind = "relay_error"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.kind}


class UpstreamError(RelayError):
    """Network failure, non-success status or unparseable body from Dreamlo."""

    kind = "upstream_error"
    status_code = 502

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.kind, "detail": self.message}
        if self.status is not None:
            payload["status"] = self.status
        if self.body is not None:
            payload["body"] = self.body
        return payload


class RateLimitedError(RelayError):
    kind = "rate_limited"
    status_code = 429


class InvalidNameError(RelayError):
    kind = "invalid_name"
    status_code = 400


class NameNotAllowedError(RelayError):
    kind = "name_not_allowed"
    status_code = 400


class InvalidScoreError(RelayError):
    kind = "invalid_score"
    status_code = 400


class MisconfiguredError(RelayError):
    kind = "misconfigured"
    status_code = 500
