from __future__ import annotations

from dataclasses import dataclass
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(p.strip().lower() for p in raw.split(",") if p.strip())


@dataclass(frozen=True)
class RelaySettings:
    dreamlo_public_code: str = ""
    dreamlo_private_code: str = ""
    dreamlo_host: str = "www.dreamlo.com"
    cors_origin: str = "*"
    cache_ttl_seconds: float = 1.5
    fetch_cooldown_seconds: float = 1.5
    upstream_timeout_seconds: float = 8.0
    submit_retry_delay_seconds: float = 0.5
    submit_secure: bool = False
    rate_limit_window_seconds: float = 15.0
    rate_limit_max_requests: int = 5
    max_score: float = 1_000_000
    prohibited_substrings: tuple[str, ...] = ()
    prohibited_regex: str = ""
    replace_profanity: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            dreamlo_public_code=os.getenv("DREAMLO_PUBLIC_CODE", "").strip(),
            dreamlo_private_code=os.getenv("DREAMLO_PRIVATE_CODE", "").strip(),
            dreamlo_host=os.getenv("DREAMLO_HOST", "www.dreamlo.com").strip(),
            cors_origin=os.getenv("CORS_ORIGIN", "*"),
            cache_ttl_seconds=float(os.getenv("CACHE_TTL_SECONDS", "1.5")),
            fetch_cooldown_seconds=float(os.getenv("FETCH_COOLDOWN_SECONDS", "1.5")),
            upstream_timeout_seconds=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "8")),
            submit_retry_delay_seconds=float(os.getenv("SUBMIT_RETRY_DELAY_SECONDS", "0.5")),
            submit_secure=_env_flag("SUBMIT_SECURE"),
            rate_limit_window_seconds=float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "15")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "5")),
            max_score=float(os.getenv("MAX_SCORE", "1000000")),
            prohibited_substrings=_env_list("PROHIBITED_SUBSTRINGS"),
            prohibited_regex=os.getenv("PROHIBITED_REGEX", "").strip(),
            replace_profanity=_env_flag("REPLACE_PROFANITY"),
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=int(os.getenv("RELAY_PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
