from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Annotated, Any

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from leaderboard_relay.config.runtime import RelaySettings
from leaderboard_relay.errors import MisconfiguredError, RelayError, UpstreamError
from leaderboard_relay.moderation.filter import ModerationRules, NameModerator
from leaderboard_relay.schemas import (
    LeaderboardErrorPayload,
    LeaderboardPayload,
    SubmissionAccepted,
    SubmissionRequest,
)
from leaderboard_relay.services.leaderboard_cache import LeaderboardCache
from leaderboard_relay.services.rate_limiter import FixedWindowRateLimiter
from leaderboard_relay.services.submission import SubmissionService, resolve_client_identity
from leaderboard_relay.upstream.dreamlo import DreamloClient

logger = logging.getLogger(__name__)


@dataclass
class RelayServices:
    """Process-wide state shared by every request handled by one app."""

    settings: RelaySettings
    cache: LeaderboardCache
    submissions: SubmissionService


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        force=True,
    )


def build_services(
    settings: RelaySettings,
    client: DreamloClient | None = None,
) -> RelayServices:
    client = client or DreamloClient(
        public_code=settings.dreamlo_public_code,
        private_code=settings.dreamlo_private_code,
        host=settings.dreamlo_host,
        timeout_seconds=settings.upstream_timeout_seconds,
        cooldown_seconds=settings.fetch_cooldown_seconds,
        retry_delay_seconds=settings.submit_retry_delay_seconds,
        submit_secure=settings.submit_secure,
    )
    rules = ModerationRules.from_config(
        settings.prohibited_substrings, settings.prohibited_regex
    )
    return RelayServices(
        settings=settings,
        cache=LeaderboardCache(client, ttl_seconds=settings.cache_ttl_seconds),
        submissions=SubmissionService(
            client=client,
            rate_limiter=FixedWindowRateLimiter(
                window_seconds=settings.rate_limit_window_seconds,
                max_requests=settings.rate_limit_max_requests,
            ),
            moderator=NameModerator(rules, replace_on_violation=settings.replace_profanity),
            max_score=settings.max_score,
        ),
    )


def get_services(request: Request) -> RelayServices:
    return request.app.state.services


def create_app(
    settings: RelaySettings | None = None,
    services: RelayServices | None = None,
) -> FastAPI:
    settings = settings or (services.settings if services else RelaySettings.from_env())
    services = services or build_services(settings)

    app = FastAPI(title="Leaderboard Relay")
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
        if isinstance(exc, UpstreamError):
            logger.warning("%s %s upstream error: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "server_error"},
        )

    @app.get("/healthz")
    def healthcheck(
        relay: Annotated[RelayServices, Depends(get_services)],
    ) -> dict[str, Any]:
        return {"status": "ok", "cached": relay.cache.peek() is not None}

    # Browser preflights are answered by CORSMiddleware; bare OPTIONS lands here.
    @app.options("/api/list")
    @app.options("/api/submit")
    def options_no_content() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/list")
    async def list_leaderboard(
        relay: Annotated[RelayServices, Depends(get_services)],
    ) -> JSONResponse:
        try:
            result = await relay.cache.read()
        except MisconfiguredError:
            payload = LeaderboardErrorPayload(error=MisconfiguredError.kind)
            return JSONResponse(status_code=status.HTTP_200_OK, content=payload.model_dump(exclude_none=True))
        except UpstreamError as exc:
            payload = LeaderboardErrorPayload(error=exc.kind, detail=exc.message)
            return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=payload.model_dump(exclude_none=True))

        payload = LeaderboardPayload.model_validate(
            {**result.snapshot.to_dict(), "stale": True if result.stale else None}
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=payload.model_dump(exclude_none=True))

    @app.post("/api/submit")
    async def submit_score(
        request: Request,
        relay: Annotated[RelayServices, Depends(get_services)],
    ) -> JSONResponse:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = {}
        if not isinstance(body, dict):
            body = {}

        submission = SubmissionRequest.model_validate(body)
        identity = resolve_client_identity(
            request.headers.get("x-forwarded-for"),
            request.client.host if request.client else None,
        )
        result = await relay.submissions.submit(submission.model_dump(), identity)

        payload = SubmissionAccepted(name=result.name)
        return JSONResponse(status_code=status.HTTP_200_OK, content=payload.model_dump())

    return app


if __name__ == "__main__":
    settings = RelaySettings.from_env()
    configure_logging(settings.log_level)
    logger.info("leaderboard relay bootstrap host=%s port=%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
