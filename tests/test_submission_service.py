from __future__ import annotations

import asyncio
import re
import unittest
from unittest.mock import AsyncMock, MagicMock

from leaderboard_relay.errors import (
    InvalidNameError,
    InvalidScoreError,
    MisconfiguredError,
    NameNotAllowedError,
    RateLimitedError,
    UpstreamError,
)
from leaderboard_relay.moderation.filter import ModerationRules, NameModerator
from leaderboard_relay.services.rate_limiter import FixedWindowRateLimiter
from leaderboard_relay.services.submission import SubmissionService, resolve_client_identity

MAX_SCORE = 1000


def _make_service(replace: bool = False, limiter: FixedWindowRateLimiter | None = None):
    client = MagicMock()
    client.can_write = True
    client.submit_entry = AsyncMock(return_value="OK")
    service = SubmissionService(
        client=client,
        rate_limiter=(
            limiter if limiter is not None
            else FixedWindowRateLimiter(window_seconds=15, max_requests=5)
        ),
        moderator=NameModerator(
            ModerationRules.from_config(("badword",)),
            replace_on_violation=replace,
        ),
        max_score=MAX_SCORE,
    )
    return service, client


def _submit(service, payload, identity="10.0.0.1"):
    return asyncio.run(service.submit(payload, identity))


class TestResolveClientIdentity(unittest.TestCase):
    def test_first_forwarded_hop_wins(self):
        self.assertEqual(resolve_client_identity("1.1.1.1, 2.2.2.2", "9.9.9.9"), "1.1.1.1")

    def test_falls_back_to_remote_addr(self):
        self.assertEqual(resolve_client_identity(None, "9.9.9.9"), "9.9.9.9")
        self.assertEqual(resolve_client_identity(" , ", "9.9.9.9"), "9.9.9.9")

    def test_unknown_sentinel(self):
        self.assertEqual(resolve_client_identity(None, None), "unknown")


class TestSubmissionService(unittest.TestCase):
    def test_valid_submission_is_relayed(self):
        service, client = _make_service()

        result = _submit(service, {"name": "A B", "score": 42, "seconds": 7})

        self.assertEqual(result.name, "A B")
        self.assertEqual(result.upstream_body, "OK")
        client.submit_entry.assert_awaited_once_with("A B", 42.0, 7.0)

    def test_name_is_cleaned_but_not_folded(self):
        service, client = _make_service()

        result = _submit(service, {"name": "  L33t <Gamer>  ", "score": 1})

        self.assertEqual(result.name, "L33t Gamer")
        client.submit_entry.assert_awaited_once_with("L33t Gamer", 1.0, None)

    def test_long_name_truncated_to_twenty_chars(self):
        service, client = _make_service()

        result = _submit(service, {"name": "x" * 3 + "abcdefghij" * 2 + "y" * 7, "score": 1})

        self.assertEqual(len(result.name), 20)
        self.assertEqual(client.submit_entry.await_args.args[0], result.name)

    def test_sixth_submission_in_window_is_rate_limited(self):
        service, client = _make_service()
        payload = {"name": "ann", "score": 1}

        for _ in range(5):
            _submit(service, payload)
        with self.assertRaises(RateLimitedError):
            _submit(service, payload)

        self.assertEqual(client.submit_entry.await_count, 5)

    def test_rate_limit_resets_after_window(self):
        now = [0.0]
        limiter = FixedWindowRateLimiter(window_seconds=15, max_requests=5, clock=lambda: now[0])
        service, _ = _make_service(limiter=limiter)
        payload = {"name": "ann", "score": 1}

        for _ in range(5):
            _submit(service, payload)
        with self.assertRaises(RateLimitedError):
            _submit(service, payload)
        now[0] = 15.01
        self.assertEqual(_submit(service, payload).name, "ann")

    def test_injected_empty_limiter_is_used(self):
        limiter = FixedWindowRateLimiter(window_seconds=15, max_requests=5)
        service, _ = _make_service(limiter=limiter)

        _submit(service, {"name": "ann", "score": 1}, identity="203.0.113.7")

        self.assertIs(service.rate_limiter, limiter)
        self.assertEqual(limiter.bucket_count, 1)

    def test_rate_limit_runs_before_validation(self):
        service, _ = _make_service()
        for _ in range(5):
            with self.assertRaises(InvalidNameError):
                _submit(service, {"score": 1})
        with self.assertRaises(RateLimitedError):
            _submit(service, {"score": 1})

    def test_missing_or_blank_names_are_invalid(self):
        for name in (None, "", "   ", 12, "!!!<>"):
            service, client = _make_service()
            with self.assertRaises(InvalidNameError, msg=repr(name)):
                _submit(service, {"name": name, "score": 1})
            client.submit_entry.assert_not_awaited()

    def test_disallowed_name_rejected_without_replace_policy(self):
        service, client = _make_service()

        with self.assertRaises(NameNotAllowedError):
            _submit(service, {"name": "b4dword", "score": 1})

        client.submit_entry.assert_not_awaited()

    def test_disallowed_name_replaced_with_replace_policy(self):
        service, client = _make_service(replace=True)

        result = _submit(service, {"name": "b4dword", "score": 1})

        self.assertRegex(result.name, re.compile(r"^Anonymous\d{4}$"))
        self.assertEqual(client.submit_entry.await_args.args[0], result.name)

    def test_score_bounds(self):
        for score in (0, MAX_SCORE, "42", 12.5):
            service, _ = _make_service()
            self.assertEqual(_submit(service, {"name": "ann", "score": score}).name, "ann")

        for score in (-1, MAX_SCORE + 1, None, "abc", True, float("nan"), float("inf"), [1]):
            service, client = _make_service()
            with self.assertRaises(InvalidScoreError, msg=repr(score)):
                _submit(service, {"name": "ann", "score": score})
            client.submit_entry.assert_not_awaited()

    def test_invalid_seconds_are_omitted(self):
        for seconds in (-3, "soon", float("inf"), None):
            service, client = _make_service()
            _submit(service, {"name": "ann", "score": 1, "seconds": seconds})
            client.submit_entry.assert_awaited_once_with("ann", 1.0, None)

    def test_upstream_error_propagates(self):
        service, client = _make_service()
        client.submit_entry = AsyncMock(side_effect=UpstreamError("down", status=500, body="x"))

        with self.assertRaises(UpstreamError):
            _submit(service, {"name": "ann", "score": 1})

    def test_missing_private_code_is_misconfiguration(self):
        limiter = FixedWindowRateLimiter()
        service, client = _make_service(limiter=limiter)
        client.can_write = False

        with self.assertRaises(MisconfiguredError):
            _submit(service, {"name": "ann", "score": 1})

        self.assertEqual(limiter.bucket_count, 0)


if __name__ == "__main__":
    unittest.main()
