"""Ranking records handed to the display and game-loop collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RankingEntry:
    rank: int
    score: int
    name: str
    date: str = ""


@dataclass(frozen=True)
class RankingSnapshot:
    entries: tuple[RankingEntry, ...]
    fetched_at: float

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def total_players(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict:
        return {
            "ranking": [
                {"rank": e.rank, "score": e.score, "name": e.name, "date": e.date} for e in self.entries
            ],
            "fetchedAt": self.fetched_at,
            "totalPlayers": self.total_players,
        }


@dataclass(frozen=True)
class QualificationDecision:
    should_post: bool
    reason: str


@dataclass(frozen=True)
class SubmissionOutcome:
    success: bool
    rank: int | None
    message: str
    # Confirmation re-fetch after a successful submission.
    snapshot: RankingSnapshot | None = field(default=None, compare=False)

    @classmethod
    def failed(cls, message: str) -> "SubmissionOutcome":
        return cls(success=False, rank=None, message=message)
