"""Failure taxonomy for the leaderboard client."""

from __future__ import annotations


class LeaderboardError(Exception):
    pass


class TransportError(LeaderboardError):
    """One network attempt failed. Always retryable."""

    KINDS = ("timeout", "script_error", "http_error", "parse_error")

    def __init__(self, kind: str, message: str = ""):
        if kind not in self.KINDS:
            raise ValueError(f"unknown transport error kind: {kind}")
        self.kind = kind
        self.message = message or kind
        super().__init__(f"{kind}: {self.message}")


class FormatError(LeaderboardError):
    """The endpoint answered, but not in a shape we understand."""


class ValidationError(LeaderboardError):
    """Local input (score or name) rejected before any network call."""


class AmbiguousResponseError(LeaderboardError):
    """A submission response carried neither `success` nor `error`."""


class RetryExhausted(LeaderboardError):
    def __init__(self, last_error: TransportError, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"gave up after {attempts} attempts: {last_error}")

