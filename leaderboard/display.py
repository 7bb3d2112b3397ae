"""Plain-text rendering of rankings and submission results."""

from __future__ import annotations

from typing import Any

from leaderboard.ranking.models import RankingSnapshot, SubmissionOutcome

MEDALS = {1: "🥇", 2: "🥈", 3: "🥉"}


def rank_label(rank: int) -> str:
    return MEDALS.get(rank, f"{rank}.")


def format_score(score: Any) -> str:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return "---"
    return f"{score:,}"


def render_snapshot(snapshot: RankingSnapshot | None) -> str:
    if snapshot is None:
        return "Ranking unavailable"
    if not snapshot.entries:
        return "No rankings yet"
    lines = []
    for e in snapshot.entries:
        lines.append(f"{rank_label(e.rank):>4} {e.name or '---':<10} {format_score(e.score):>12}  {e.date}".rstrip())
    return "\n".join(lines)


def render_outcome(outcome: SubmissionOutcome) -> str:
    if outcome.success:
        if outcome.rank is not None:
            return f"Ranked #{outcome.rank}! {outcome.message}".rstrip()
        return outcome.message
    return f"Not submitted: {outcome.message}"
