"""Input checks, rank lookup and the qualification rule."""

from __future__ import annotations

import re
from typing import Any

from leaderboard.errors import ValidationError
from leaderboard.ranking.models import QualificationDecision, RankingSnapshot

NAME_MAX_LENGTH = 10
QUALIFY_TOP_N = 5

_NAME_RE = re.compile(r"[A-Za-z0-9]+")


def validate_player_name(name: Any, max_length: int = NAME_MAX_LENGTH) -> str:
    """Return `name` unchanged if it can be submitted, else raise ValidationError.

    Names are 1..max_length ASCII letters or digits. Case is preserved.
    """
    if not isinstance(name, str) or name == "":
        raise ValidationError("please enter a name")
    if len(name) > max_length:
        raise ValidationError(f"name must be at most {max_length} characters")
    if not _NAME_RE.fullmatch(name):
        raise ValidationError("name may only contain letters and digits")
    return name


def validate_score(score: Any) -> int:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("score must be a positive integer")
    if isinstance(score, float):
        if not score.is_integer():
            raise ValidationError("score must be a positive integer")
        score = int(score)
    if score <= 0:
        raise ValidationError("score must be a positive integer")
    return score


def get_user_rank(score: int, snapshot: RankingSnapshot | None) -> int | None:
    if snapshot is None:
        return None
    for i, entry in enumerate(snapshot.entries):
        if entry.score <= score:
            return i + 1
    return len(snapshot.entries) + 1


def should_post_to_ranking(
    score: int, snapshot: RankingSnapshot | None, top_n: int = QUALIFY_TOP_N
) -> QualificationDecision:
    if snapshot is None:
        return QualificationDecision(True, "ranking unavailable, letting the server decide")
    if len(snapshot.entries) < top_n:
        return QualificationDecision(True, f"fewer than {top_n} entries")
    cutoff = snapshot.entries[top_n - 1].score
    if score > cutoff:
        return QualificationDecision(True, f"beats #{top_n} score {cutoff}")
    return QualificationDecision(False, f"needs more than {cutoff} to enter the top {top_n}")
