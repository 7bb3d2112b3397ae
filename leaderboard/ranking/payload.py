"""Wire payload shapes + normalization.

The endpoint answers a fetch in one of two shapes:

  {"top5": [{"score": 500, "name": "ann", "date": "2024-01-01"}, ...]}
  {"ranking": [{"rank": 1, "score": 500, "name": "ann", "date": "..."}, ...]}

The first row of a "top5" list may be the spreadsheet's header row
({"score": "Score", "name": "Name", ...}), which is dropped.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from leaderboard.errors import AmbiguousResponseError, FormatError
from leaderboard.ranking.models import RankingEntry, RankingSnapshot, SubmissionOutcome

DEFAULT_DATE_FORMAT = "{year}/{month}/{day}"


def _is_num(v: Any) -> bool:
    # JSON true/false decode to bool, which is an int subclass.
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _int(v: Any) -> int:
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, int):
        return v
    raise FormatError(f"expected an integer, got {v!r}")


def _is_header_row(row: Any) -> bool:
    return isinstance(row, dict) and isinstance(row.get("score"), str) and isinstance(row.get("name"), str)


@dataclass
class TopListPayload:
    rows: list[dict[str, Any]]

    @classmethod
    def parse(cls, data: Any) -> "TopListPayload":
        if not isinstance(data, list):
            raise FormatError("top5 must be a list")
        rows = list(data)
        if rows and _is_header_row(rows[0]):
            rows = rows[1:]
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                raise FormatError(f"top5[{i}] must be an object")
            if not _is_num(row.get("score")):
                raise FormatError(f"top5[{i}].score must be a number")
            if not isinstance(row.get("name"), str):
                raise FormatError(f"top5[{i}].name must be a string")
            if not isinstance(row.get("date"), str):
                raise FormatError(f"top5[{i}].date must be a string")
        return cls(rows=rows)


@dataclass
class RankedPayload:
    rows: list[dict[str, Any]]

    @classmethod
    def parse(cls, data: Any) -> "RankedPayload":
        if not isinstance(data, list):
            raise FormatError("ranking must be a list")
        for i, row in enumerate(data):
            if not isinstance(row, dict):
                raise FormatError(f"ranking[{i}] must be an object")
            if not _is_num(row.get("rank")):
                raise FormatError(f"ranking[{i}].rank must be a number")
            if not _is_num(row.get("score")):
                raise FormatError(f"ranking[{i}].score must be a number")
            if not isinstance(row.get("name"), str):
                raise FormatError(f"ranking[{i}].name must be a string")
        return cls(rows=list(data))


def classify(raw: Any) -> TopListPayload | RankedPayload:
    if not isinstance(raw, dict):
        raise FormatError("payload must be an object")
    if isinstance(raw.get("top5"), list):
        return TopListPayload.parse(raw["top5"])
    if isinstance(raw.get("ranking"), list):
        return RankedPayload.parse(raw["ranking"])
    raise FormatError("payload has neither a top5 nor a ranking list")


def format_date(value: Any, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Turn an ISO-8601 timestamp into a short display date.

    Unparseable input is returned unchanged so the row still displays.
    """
    if not isinstance(value, str) or not value:
        return ""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return value
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return date_format.format(year=dt.year, month=dt.month, day=dt.day)


def normalize(
    payload: TopListPayload | RankedPayload,
    *,
    date_format: str = DEFAULT_DATE_FORMAT,
    now: Callable[[], float] = time.time,
) -> RankingSnapshot:
    entries = []
    if isinstance(payload, TopListPayload):
        for i, row in enumerate(payload.rows):
            entries.append(
                RankingEntry(
                    rank=i + 1,
                    score=_int(row["score"]),
                    name=row["name"],
                    date=format_date(row["date"], date_format),
                )
            )
    else:
        for row in payload.rows:
            entries.append(
                RankingEntry(
                    rank=_int(row["rank"]),
                    score=_int(row["score"]),
                    name=row["name"],
                    date=format_date(row.get("date"), date_format),
                )
            )
    return RankingSnapshot(entries=tuple(entries), fetched_at=now())


def parse_ranking(raw: Any, **kwargs) -> RankingSnapshot:
    return normalize(classify(raw), **kwargs)


def parse_submission(raw: Any) -> SubmissionOutcome:
    if not isinstance(raw, dict):
        raise AmbiguousResponseError("submission response must be an object")
    success = raw.get("success")
    error = raw.get("error")
    if success is None and error is None:
        raise AmbiguousResponseError("submission response has neither success nor error")

    message = raw.get("message")
    if not isinstance(message, str):
        message = ""

    if success is True:
        rank = raw.get("rank")
        if isinstance(rank, float):
            rank = int(rank) if rank.is_integer() else None
        elif not _is_num(rank):
            rank = None
        return SubmissionOutcome(success=True, rank=rank, message=message or "score submitted")

    reason = error if isinstance(error, str) and error else message
    return SubmissionOutcome.failed(reason or "submission rejected")
