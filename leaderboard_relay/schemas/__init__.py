from leaderboard_relay.schemas.payload_contracts import (
    ErrorPayload,
    LeaderboardEntryPayload,
    LeaderboardErrorPayload,
    LeaderboardPayload,
    SubmissionAccepted,
    SubmissionRequest,
)

__all__ = [
    "ErrorPayload",
    "LeaderboardEntryPayload",
    "LeaderboardErrorPayload",
    "LeaderboardPayload",
    "SubmissionAccepted",
    "SubmissionRequest",
]
