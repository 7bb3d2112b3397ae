from __future__ import annotations

from leaderboard.display import format_score, rank_label, render_outcome, render_snapshot
from leaderboard.ranking.models import RankingEntry, RankingSnapshot, SubmissionOutcome


def test_rank_labels() -> None:
    assert rank_label(1) == "🥇"
    assert rank_label(3) == "🥉"
    assert rank_label(4) == "4."


def test_format_score() -> None:
    assert format_score(1234567) == "1,234,567"
    assert format_score(12) == "12"
    assert format_score(None) == "---"
    assert format_score("12") == "---"


def test_render_snapshot() -> None:
    snap = RankingSnapshot(
        entries=(
            RankingEntry(1, 12000, "ann", "2024/1/1"),
            RankingEntry(4, 300, "bob"),
        ),
        fetched_at=0.0,
    )
    lines = render_snapshot(snap).splitlines()
    assert len(lines) == 2
    assert "ann" in lines[0] and "12,000" in lines[0] and "2024/1/1" in lines[0]
    assert lines[1].strip().startswith("4.")

    assert render_snapshot(None) == "Ranking unavailable"
    assert render_snapshot(RankingSnapshot(entries=(), fetched_at=0.0)) == "No rankings yet"


def test_render_outcome() -> None:
    assert render_outcome(SubmissionOutcome(True, 2, "ok")) == "Ranked #2! ok"
    assert render_outcome(SubmissionOutcome.failed("invalid name")) == "Not submitted: invalid name"
